from __future__ import annotations

import threading
from typing import Any, Dict, Iterable, List, Optional, Tuple

from kelurahan_ai.ai_core.common.errors import NoCredentials


def mask_key(key: str) -> str:
    """
    @param key API 키.
    @returns 앞 4자와 뒤 4자만 남긴 마스킹 문자열.
    """
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}...{key[-4:]}"


class ApiKeyPool:
    """API 키를 순서대로 돌려가며 제공하는 풀 (프로세스 전역, 스레드 안전)."""

    def __init__(self, keys: Iterable[Optional[str]]) -> None:
        """
        @param keys 키 목록. 빈 값과 중복은 제거되고 순서는 유지된다.
        @returns None
        """
        ordered: List[str] = []
        for key in keys:
            value = str(key or "").strip()
            if value and value not in ordered:
                ordered.append(value)
        self._keys: Tuple[str, ...] = tuple(ordered)
        self._cursor = 0
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Any) -> "ApiKeyPool":
        """
        @param settings GEMINI_API_KEY* 속성을 가진 설정 객체.
        @returns 설정된 키로 구성한 풀.
        """
        extra = [part for part in str(getattr(settings, "GEMINI_API_KEYS", "") or "").split(",")]
        return cls(
            [
                getattr(settings, "GEMINI_API_KEY", ""),
                getattr(settings, "GEMINI_API_KEY_2", ""),
                getattr(settings, "GEMINI_API_KEY_3", ""),
                *extra,
            ]
        )

    @property
    def size(self) -> int:
        """
        @returns 키 개수.
        """
        return len(self._keys)

    @property
    def cursor(self) -> int:
        """
        @returns 다음 next() 호출이 반환할 키의 위치.
        """
        return self._cursor

    def is_empty(self) -> bool:
        """
        @returns 키가 하나도 없는지 여부.
        """
        return not self._keys

    def next(self) -> Tuple[int, str]:
        """
        현재 커서의 키를 반환하고 커서를 한 칸 전진시킨다 (끝에서 처음으로 순환).

        @returns (키 위치, 키).
        """
        with self._lock:
            if not self._keys:
                raise NoCredentials("설정된 Gemini API 키가 없음")
            index = self._cursor
            self._cursor = (self._cursor + 1) % len(self._keys)
            return index, self._keys[index]

    def snapshot(self) -> Dict[str, Any]:
        """
        @returns 상태 점검용 정보 (키는 마스킹).
        """
        return {
            "total": self.size,
            "current_index": self._cursor,
            "keys": [mask_key(key) for key in self._keys],
        }
