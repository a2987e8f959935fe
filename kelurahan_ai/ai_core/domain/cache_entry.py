from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class CacheEntry:
    """응답 캐시 엔트리 (정규화 질의 해시 -> 응답 페이로드)."""

    key: str
    value: Dict[str, Any]
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        """
        @param now 현재 시각(초).
        @returns 만료 여부 (만료 시각을 지난 경우에만 True).
        """
        return now > self.expires_at
