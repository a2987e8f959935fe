"""
=============================================================================
Kelurahan Chatbot AI Server - Django 설정 모듈 (Settings Module)
=============================================================================

`pydantic-settings`로 환경변수를 타입 안전하게 로드하고 검증한 뒤 Django 설정으로 매핑합니다.
잘못된 값이 들어오면 서버가 시작되지 않습니다.

주요 환경변수:
    - `GEMINI_API_KEY`, `GEMINI_API_KEY_2`, `GEMINI_API_KEY_3`, `GEMINI_API_KEYS`: Gemini 키 풀
    - `GEMINI_MODEL`, `GEMINI_FALLBACK_MODELS`: 기본 모델과 폴백 모델 목록
    - `KNOWLEDGE_FILES`: 지식 JSON 파일 경로 (콤마 구분)
    - `REDIS_URL`: 설정 시 응답 캐시를 Redis(django-redis)에 저장
    - `RATE_LIMIT_PER_MINUTE`: 분당 Gemini 호출 상한
=============================================================================
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# -----------------------------------------------------------------------------
# 1. 환경변수 스키마 정의 (Pydantic Settings)
# -----------------------------------------------------------------------------
# 프로젝트 루트 디렉토리 (manage.py 위치)
BASE_DIR = Path(__file__).resolve().parent.parent


class EnvSettings(BaseSettings):
    """
    환경변수 로딩 및 검증을 위한 Pydantic 모델.
    모든 환경변수는 이 클래스를 통해 접근해야 합니다.
    """
    # Django 핵심 설정
    DJANGO_SECRET_KEY: SecretStr = Field(
        default="django-insecure-dev-only-do-not-use-in-production",
        description="Django 시크릿 키"
    )
    DJANGO_DEBUG: bool = Field(default=False, description="디버그 모드")
    DJANGO_ALLOWED_HOSTS: List[str] = Field(
        default=["localhost", "127.0.0.1", "0.0.0.0", "testserver"],
        description="허용 호스트 목록"
    )

    # Gemini 설정
    GEMINI_API_KEY: Optional[SecretStr] = None
    GEMINI_API_KEY_2: Optional[SecretStr] = None
    GEMINI_API_KEY_3: Optional[SecretStr] = None
    GEMINI_API_KEYS: str = Field(default="", description="추가 키 (콤마 구분)")
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_FALLBACK_MODELS: List[str] = Field(default=["gemini-2.0-flash", "gemini-1.5-flash"])

    AI_DISABLE_LLM: bool = False
    AI_TIMEOUT_MS: int = Field(default=8000, gt=0)
    AI_ATTEMPTS_PER_MODEL: int = Field(default=2, ge=1)
    AI_MAX_OUTPUT_TOKENS: int = Field(default=500, gt=0)
    AI_TEMPERATURE: float = Field(default=0.7, ge=0.0, le=2.0)
    AI_HISTORY_TURNS: int = Field(default=4, ge=0)
    RATE_LIMIT_PER_MINUTE: int = Field(default=15, ge=1)
    AI_MAX_RATE_WAIT_SEC: float = Field(default=10.0, ge=0.0)

    # 지식 베이스 / 검색 설정
    KNOWLEDGE_FILES: str = "data/train.json,data/kosakata_jawa.json"
    KNOWLEDGE_DEDUPE: bool = False
    KNOWLEDGE_AUTO_RELOAD: bool = False
    RETRIEVAL_TOP_K: int = Field(default=3, ge=1)
    SEMANTIC_FALLBACK_ENABLED: bool = True
    SEMANTIC_MIN_SIMILARITY: float = Field(default=0.35, ge=0.0, le=1.0)

    # 캐시 (Redis) 설정
    REDIS_URL: Optional[str] = None
    CACHE_TTL_SEC: int = Field(default=21600, gt=0)
    CACHE_MAX_ITEMS: int = Field(default=500, ge=1)
    CACHE_PREFIX: str = "v1"

    # CORS 설정
    CORS_ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="CORS 허용 오리진"
    )

    # 보안 설정 (Prod)
    SECURE_SSL_REDIRECT: bool = False
    SECURE_HSTS_SECONDS: int = 31536000

    # 로깅 레벨
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        extra="ignore",  # 정의되지 않은 환경변수는 무시
        case_sensitive=True
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"지원하지 않는 LOG_LEVEL: {value}")
        return level


# 설정 로드 (싱글톤)
try:
    env = EnvSettings()
except Exception as e:
    # 설정 로드 실패 시 치명적 오류로 간주하고 프로세스 종료
    print("=================================================================")
    print(" [CRITICAL] 환경변수 설정 로드 실패")
    print(" .env 파일 또는 환경변수를 확인해주세요.")
    print(f" Error: {e}")
    print("=================================================================")
    sys.exit(1)


# -----------------------------------------------------------------------------
# 2. Django 설정 매핑
# -----------------------------------------------------------------------------

SECRET_KEY = env.DJANGO_SECRET_KEY.get_secret_value()
DEBUG = env.DJANGO_DEBUG
ALLOWED_HOSTS = env.DJANGO_ALLOWED_HOSTS

# -----------------------------------------------------------------------------
# 애플리케이션 정의
# -----------------------------------------------------------------------------
INSTALLED_APPS = [
    # Django 기본 앱
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",

    # 서드파티 앱
    "rest_framework",               # Django REST Framework
    "drf_spectacular",              # OpenAPI 스키마
    "corsheaders",                  # CORS

    # 프로젝트 앱
    "kelurahan_ai.ai_core",
]

MIDDLEWARE = [
    # 보안 (가장 먼저)
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",  # 정적 파일 (API 문서 화면)

    # CORS (CommonMiddleware보다 먼저)
    "corsheaders.middleware.CorsMiddleware",

    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "kelurahan_ai.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
            ],
        },
    }
]

WSGI_APPLICATION = "kelurahan_ai.wsgi.application"
ASGI_APPLICATION = "kelurahan_ai.asgi.application"

# 영속 데이터는 없으며, Django 내부 용도로만 sqlite를 둔다.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": str(BASE_DIR / "db.sqlite3"),
    }
}

# -----------------------------------------------------------------------------
# 국제화 및 시간대
# -----------------------------------------------------------------------------
LANGUAGE_CODE = "id"
TIME_ZONE = "Asia/Makassar"
USE_I18N = True
USE_TZ = True

# -----------------------------------------------------------------------------
# 정적 파일 (Static Files)
# -----------------------------------------------------------------------------
STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
STORAGES = {
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------------------------------------------------------
# CORS 설정
# -----------------------------------------------------------------------------
CORS_ALLOW_ALL_ORIGINS = DEBUG  # 개발 모드일 때만 전체 허용
CORS_ALLOWED_ORIGINS = env.CORS_ALLOWED_ORIGINS
CORS_ALLOW_METHODS = ["GET", "OPTIONS", "POST"]
CORS_ALLOW_HEADERS = [
    "accept", "accept-encoding", "content-type",
    "dnt", "origin", "user-agent", "x-requested-with",
]

# -----------------------------------------------------------------------------
# Django REST Framework
# -----------------------------------------------------------------------------
REST_FRAMEWORK = {
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "UNICODE_JSON": True,
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [],
    "UNAUTHENTICATED_USER": None,
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
    ],
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ] + (["rest_framework.renderers.BrowsableAPIRenderer"] if DEBUG else []),
    "EXCEPTION_HANDLER": "rest_framework.views.exception_handler",
}

# -----------------------------------------------------------------------------
# OpenAPI (Swagger) 설정
# -----------------------------------------------------------------------------
SPECTACULAR_SETTINGS = {
    "TITLE": "Kelurahan Chatbot AI API",
    "DESCRIPTION": "Asisten Virtual Kelurahan REST API (Generated by drf-spectacular)",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
    "COMPONENT_SPLIT_REQUEST": True,
}

# -----------------------------------------------------------------------------
# 로깅 (Logging)
# -----------------------------------------------------------------------------
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "[{asctime}] {levelname} {name} {module}:{lineno} - {message}",
            "style": "{",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        "json": {
            "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "level": "DEBUG",
            "class": "logging.StreamHandler",
            "formatter": "verbose" if DEBUG else "json",
            "stream": sys.stdout,
        },
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "kelurahan_ai": {"handlers": ["console"], "level": env.LOG_LEVEL, "propagate": False},
        "": {"handlers": ["console"], "level": env.LOG_LEVEL},
    },
}

# -----------------------------------------------------------------------------
# 캐시 설정
# -----------------------------------------------------------------------------
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "kelurahan-response-cache",
        "TIMEOUT": env.CACHE_TTL_SEC,
        "OPTIONS": {"MAX_ENTRIES": env.CACHE_MAX_ITEMS},
    }
}

if env.REDIS_URL:
    CACHES["default"] = {
        "BACKEND": "django_redis.cache.RedisCache",
        "LOCATION": env.REDIS_URL,
        "TIMEOUT": env.CACHE_TTL_SEC,
        "OPTIONS": {"CLIENT_CLASS": "django_redis.client.DefaultClient"},
    }

# -----------------------------------------------------------------------------
# AI 관련 설정 (전역 변수로 노출)
# -----------------------------------------------------------------------------
GEMINI_API_KEY = env.GEMINI_API_KEY.get_secret_value() if env.GEMINI_API_KEY else ""
GEMINI_API_KEY_2 = env.GEMINI_API_KEY_2.get_secret_value() if env.GEMINI_API_KEY_2 else ""
GEMINI_API_KEY_3 = env.GEMINI_API_KEY_3.get_secret_value() if env.GEMINI_API_KEY_3 else ""
GEMINI_API_KEYS = env.GEMINI_API_KEYS
GEMINI_MODEL = env.GEMINI_MODEL
GEMINI_FALLBACK_MODELS = env.GEMINI_FALLBACK_MODELS

AI_DISABLE_LLM = env.AI_DISABLE_LLM
AI_TIMEOUT_MS = env.AI_TIMEOUT_MS
AI_ATTEMPTS_PER_MODEL = env.AI_ATTEMPTS_PER_MODEL
AI_MAX_OUTPUT_TOKENS = env.AI_MAX_OUTPUT_TOKENS
AI_TEMPERATURE = env.AI_TEMPERATURE
AI_HISTORY_TURNS = env.AI_HISTORY_TURNS
RATE_LIMIT_PER_MINUTE = env.RATE_LIMIT_PER_MINUTE
AI_MAX_RATE_WAIT_SEC = env.AI_MAX_RATE_WAIT_SEC

KNOWLEDGE_FILES = env.KNOWLEDGE_FILES
KNOWLEDGE_DEDUPE = env.KNOWLEDGE_DEDUPE
KNOWLEDGE_AUTO_RELOAD = env.KNOWLEDGE_AUTO_RELOAD
RETRIEVAL_TOP_K = env.RETRIEVAL_TOP_K
SEMANTIC_FALLBACK_ENABLED = env.SEMANTIC_FALLBACK_ENABLED
SEMANTIC_MIN_SIMILARITY = env.SEMANTIC_MIN_SIMILARITY

REDIS_URL = env.REDIS_URL
CACHE_TTL_SEC = env.CACHE_TTL_SEC
CACHE_MAX_ITEMS = env.CACHE_MAX_ITEMS
CACHE_PREFIX = env.CACHE_PREFIX

# -----------------------------------------------------------------------------
# 운영 환경 보안 설정
# -----------------------------------------------------------------------------
if not DEBUG:
    SECURE_SSL_REDIRECT = env.SECURE_SSL_REDIRECT
    SECURE_HSTS_SECONDS = env.SECURE_HSTS_SECONDS
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SECURE_HSTS_PRELOAD = True
    SECURE_CONTENT_TYPE_NOSNIFF = True
    SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
