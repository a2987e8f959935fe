from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, List, Optional

from django.conf import settings as django_settings

from kelurahan_ai.ai_core.client.gemini_client import GeminiClient, GenerationConfig
from kelurahan_ai.ai_core.config.model_router import DEFAULT_FALLBACKS, ModelRouter
from kelurahan_ai.ai_core.repository.knowledge_store import KnowledgeStore, split_paths
from kelurahan_ai.ai_core.repository.response_cache import build_response_cache
from kelurahan_ai.ai_core.service.chat.chat_service import ChatService
from kelurahan_ai.ai_core.service.generation.key_pool import ApiKeyPool
from kelurahan_ai.ai_core.service.generation.rate_limiter import SlidingWindowRateLimiter
from kelurahan_ai.ai_core.service.generation.remote_generator import RemoteGenerator
from kelurahan_ai.ai_core.service.retrieval.semantic_fallback import SemanticFallback

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_service: Optional[ChatService] = None


def _resolve_paths(settings: Any) -> List[Path]:
    """
    @param settings Django 설정.
    @returns BASE_DIR 기준으로 해석한 지식 파일 경로.
    """
    base_dir = Path(getattr(settings, "BASE_DIR", "."))
    paths = []
    for raw in split_paths(getattr(settings, "KNOWLEDGE_FILES", "")):
        path = Path(raw)
        paths.append(path if path.is_absolute() else base_dir / path)
    return paths


def build_chat_service(settings: Any = None) -> ChatService:
    """
    설정값으로 지식 저장소, 캐시, 키 풀, 속도 제한기, 생성기, 의미 폴백을 조립한다.

    @param settings Django 설정 (None이면 django.conf.settings).
    @returns 구성된 ChatService.
    """
    settings = settings or django_settings
    knowledge = KnowledgeStore(
        _resolve_paths(settings),
        dedupe=settings.KNOWLEDGE_DEDUPE,
        auto_reload=settings.KNOWLEDGE_AUTO_RELOAD,
    )
    cache = build_response_cache(
        backend="django" if settings.REDIS_URL else "memory",
        ttl_seconds=settings.CACHE_TTL_SEC,
        max_items=settings.CACHE_MAX_ITEMS,
    )
    client = GeminiClient(
        timeout_ms=settings.AI_TIMEOUT_MS,
        config=GenerationConfig(
            temperature=settings.AI_TEMPERATURE,
            max_output_tokens=settings.AI_MAX_OUTPUT_TOKENS,
        ),
    )
    generator = RemoteGenerator(
        client=client,
        keys=ApiKeyPool.from_settings(settings),
        limiter=SlidingWindowRateLimiter.from_settings(settings),
        router=ModelRouter(settings.GEMINI_MODEL, settings.GEMINI_FALLBACK_MODELS or DEFAULT_FALLBACKS),
        attempts_per_model=settings.AI_ATTEMPTS_PER_MODEL,
        history_turns=settings.AI_HISTORY_TURNS,
        enabled=not settings.AI_DISABLE_LLM,
        max_rate_wait_seconds=settings.AI_MAX_RATE_WAIT_SEC,
    )
    semantic = SemanticFallback(
        knowledge.entries,
        min_similarity=settings.SEMANTIC_MIN_SIMILARITY,
        enabled=settings.SEMANTIC_FALLBACK_ENABLED,
    )
    logger.info(
        "챗 서비스 구성 완료",
        extra={
            "entries": knowledge.size,
            "keys": generator.keys.size,
            "models": generator.candidates(),
            "cache_backend": cache.backend_name,
        },
    )
    return ChatService(
        knowledge=knowledge,
        cache=cache,
        generator=generator,
        semantic=semantic,
        top_k=settings.RETRIEVAL_TOP_K,
        cache_prefix=settings.CACHE_PREFIX,
        cache_ttl_seconds=settings.CACHE_TTL_SEC,
    )


def get_chat_service() -> ChatService:
    """
    @returns 프로세스 전역 ChatService (최초 호출 시 생성).
    """
    global _service
    if _service is None:
        with _lock:
            if _service is None:
                _service = build_chat_service()
    return _service


def set_chat_service(service: Optional[ChatService]) -> None:
    """
    @param service 교체할 서비스 (None이면 다음 호출 때 다시 생성).
    @returns None
    """
    global _service
    with _lock:
        _service = service
