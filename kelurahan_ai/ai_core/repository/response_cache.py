# =============================================================================
# 응답 캐시 (Response Cache)
# =============================================================================
# 정규화된 질의의 SHA-1 해시를 키로 최종 답변 페이로드를 TTL 동안 보관한다.
#
# 구현체:
#   - InMemoryResponseCache : 프로세스 로컬, 삽입 순서 기준 용량 제한
#   - DjangoResponseCache   : Django CACHES (LocMem 또는 django-redis) 위임
#   - FallbackResponseCache : 1차 백엔드 오류 시 메모리 캐시로 전환
#
# 규칙:
#   - 같은 키가 살아 있는 동안에는 덮어쓰지 않는다 (첫 답변 유지).
#   - 만료 판정은 조회 시점에 이루어지며, 만료 엔트리는 그때 삭제된다.
# =============================================================================

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional

from kelurahan_ai.ai_core.common.hashing import stable_hash_text
from kelurahan_ai.ai_core.common.nlp.text_utils import normalize_query
from kelurahan_ai.ai_core.domain.cache_entry import CacheEntry

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 6 * 60 * 60
DEFAULT_MAX_ITEMS = 500
DEFAULT_PREFIX = "v1"


def make_cache_key(query: str, prefix: str = DEFAULT_PREFIX) -> Optional[str]:
    """
    @param query 사용자 질의.
    @param prefix 키 네임스페이스 (데이터 버전 교체용).
    @returns "{prefix}:q:{sha1}" 형식 키. 정규화 결과가 비어 있으면 None.
    """
    normalized = normalize_query(query)
    if not normalized:
        return None
    return f"{prefix}:q:{stable_hash_text(normalized, algorithm='sha1')}"


class ResponseCache(ABC):
    """응답 캐시 인터페이스."""

    backend_name = "abstract"

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        @param key 캐시 키.
        @returns 저장된 페이로드 또는 None (미존재/만료).
        """
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: Dict[str, Any], ttl_seconds: Optional[int] = None) -> bool:
        """
        @param key 캐시 키.
        @param value 저장할 페이로드.
        @param ttl_seconds 만료 시간(초). None이면 기본값.
        @returns 새로 저장했는지 여부 (이미 살아 있는 키면 False).
        """
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        """
        @returns None
        """
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> Dict[str, Any]:
        """
        @returns 상태 점검용 통계.
        """
        raise NotImplementedError

    def ping(self) -> bool:
        """
        @returns 백엔드가 응답하는지 여부.
        """
        return True


class InMemoryResponseCache(ResponseCache):
    """프로세스 로컬 TTL 캐시."""

    backend_name = "memory"

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_items: int = DEFAULT_MAX_ITEMS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        @param ttl_seconds 기본 만료 시간(초).
        @param max_items 최대 엔트리 수 (초과 시 가장 먼저 넣은 엔트리 제거).
        @param clock 현재 시각 함수 (테스트 주입용).
        @returns None
        """
        self._ttl = int(ttl_seconds)
        self._max_items = max(1, int(max_items))
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        @param key 캐시 키.
        @returns 살아 있는 페이로드 또는 None.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self.misses += 1
                return None
            self.hits += 1
            return entry.value

    def set(self, key: str, value: Dict[str, Any], ttl_seconds: Optional[int] = None) -> bool:
        """
        @param key 캐시 키.
        @param value 저장할 페이로드.
        @param ttl_seconds 만료 시간(초).
        @returns 새로 저장했는지 여부.
        """
        now = self._clock()
        ttl = self._ttl if ttl_seconds is None else int(ttl_seconds)
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None and not existing.is_expired(now):
                return False
            if existing is not None:
                del self._entries[key]
            while len(self._entries) >= self._max_items:
                self._entries.popitem(last=False)
            self._entries[key] = CacheEntry(key=key, value=value, created_at=now, expires_at=now + ttl)
            return True

    def size(self) -> int:
        """
        @returns 저장된 엔트리 수 (만료 대기 엔트리 포함).
        """
        return len(self._entries)

    def clear(self) -> None:
        """
        @returns None
        """
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        """
        @returns 백엔드 이름, 크기, 적중/실패 수.
        """
        total = self.hits + self.misses
        return {
            "backend": self.backend_name,
            "size": self.size(),
            "max_items": self._max_items,
            "ttl_seconds": self._ttl,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / total, 3) if total else 0.0,
        }


class DjangoResponseCache(ResponseCache):
    """Django 캐시 프레임워크(CACHES 설정)를 사용하는 캐시."""

    backend_name = "django"

    def __init__(self, alias: str = "default", ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        """
        @param alias CACHES 별칭.
        @param ttl_seconds 기본 만료 시간(초).
        @returns None
        """
        from django.core.cache import caches

        self._cache = caches[alias]
        self._alias = alias
        self._ttl = int(ttl_seconds)
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        @param key 캐시 키.
        @returns 저장된 페이로드 또는 None.
        """
        value = self._cache.get(key)
        if value is None:
            self.misses += 1
            return None
        self.hits += 1
        return value

    def set(self, key: str, value: Dict[str, Any], ttl_seconds: Optional[int] = None) -> bool:
        """
        `cache.add`는 키가 없을 때만 저장하므로 첫 답변이 유지된다.

        @param key 캐시 키.
        @param value 저장할 페이로드.
        @param ttl_seconds 만료 시간(초).
        @returns 새로 저장했는지 여부.
        """
        ttl = self._ttl if ttl_seconds is None else int(ttl_seconds)
        return bool(self._cache.add(key, value, timeout=ttl))

    def ping(self) -> bool:
        """
        @returns 백엔드 왕복 성공 여부.
        """
        ping_key = "health:ping"
        self._cache.set(ping_key, "1", timeout=5)
        return self._cache.get(ping_key) == "1"

    def clear(self) -> None:
        """
        @returns None
        """
        self._cache.clear()

    def stats(self) -> Dict[str, Any]:
        """
        @returns 백엔드 정보와 적중/실패 수.
        """
        return {
            "backend": f"{self.backend_name}:{type(self._cache).__name__}",
            "alias": self._alias,
            "ttl_seconds": self._ttl,
            "hits": self.hits,
            "misses": self.misses,
        }


class FallbackResponseCache(ResponseCache):
    """1차 백엔드(예: Redis) 오류를 경고로 남기고 2차 메모리 캐시로 처리한다."""

    backend_name = "fallback"

    def __init__(self, primary: ResponseCache, secondary: Optional[ResponseCache] = None) -> None:
        """
        @param primary 1차 캐시.
        @param secondary 오류 시 사용할 캐시.
        @returns None
        """
        self._primary = primary
        self._secondary = secondary or InMemoryResponseCache()
        self.degraded = False

    def _mark_degraded(self, operation: str, exc: Exception) -> None:
        """
        @param operation 실패한 작업 이름.
        @param exc 원본 예외.
        @returns None
        """
        if not self.degraded:
            logger.warning(
                "캐시 백엔드 오류, 메모리 캐시로 전환",
                extra={"operation": operation, "backend": self._primary.backend_name, "error": str(exc)},
            )
        self.degraded = True

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        @param key 캐시 키.
        @returns 페이로드 또는 None.
        """
        try:
            value = self._primary.get(key)
        except Exception as exc:
            self._mark_degraded("get", exc)
            return self._secondary.get(key)
        if value is None and self.degraded:
            return self._secondary.get(key)
        return value

    def set(self, key: str, value: Dict[str, Any], ttl_seconds: Optional[int] = None) -> bool:
        """
        @param key 캐시 키.
        @param value 저장할 페이로드.
        @param ttl_seconds 만료 시간(초).
        @returns 새로 저장했는지 여부.
        """
        try:
            return self._primary.set(key, value, ttl_seconds)
        except Exception as exc:
            self._mark_degraded("set", exc)
            return self._secondary.set(key, value, ttl_seconds)

    def ping(self) -> bool:
        """
        @returns 1차 백엔드 응답 여부.
        """
        try:
            return self._primary.ping()
        except Exception as exc:
            self._mark_degraded("ping", exc)
            return False

    def clear(self) -> None:
        """
        @returns None
        """
        self._secondary.clear()
        try:
            self._primary.clear()
        except Exception as exc:
            self._mark_degraded("clear", exc)

    def stats(self) -> Dict[str, Any]:
        """
        @returns 1차/2차 캐시 통계.
        """
        try:
            primary_stats = self._primary.stats()
        except Exception as exc:
            primary_stats = {"backend": self._primary.backend_name, "error": str(exc)}
        return {
            "backend": primary_stats.get("backend"),
            "degraded": self.degraded,
            "primary": primary_stats,
            "secondary": self._secondary.stats(),
        }


def build_response_cache(
    backend: str = "memory",
    ttl_seconds: int = DEFAULT_TTL_SECONDS,
    max_items: int = DEFAULT_MAX_ITEMS,
    alias: str = "default",
) -> ResponseCache:
    """
    @param backend "memory" 또는 "django".
    @param ttl_seconds 기본 만료 시간(초).
    @param max_items 메모리 캐시 최대 엔트리 수.
    @param alias Django CACHES 별칭.
    @returns 설정에 맞는 ResponseCache.
    """
    memory = InMemoryResponseCache(ttl_seconds=ttl_seconds, max_items=max_items)
    if backend == "django":
        return FallbackResponseCache(DjangoResponseCache(alias=alias, ttl_seconds=ttl_seconds), memory)
    return memory
