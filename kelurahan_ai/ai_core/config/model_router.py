from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Optional, Sequence


class GeminiModel(str, Enum):
    """기본 후보 모델 목록 (앞에서부터 시도)."""

    FLASH_25 = "gemini-2.5-flash"
    FLASH_20 = "gemini-2.0-flash"
    FLASH_15 = "gemini-1.5-flash"


DEFAULT_PRIMARY = GeminiModel.FLASH_25.value
DEFAULT_FALLBACKS = (GeminiModel.FLASH_20.value, GeminiModel.FLASH_15.value)


def dedupe_models(models: Iterable[Optional[str]]) -> List[str]:
    """
    @param models 모델 이름 목록 (None/공백 포함 가능).
    @returns 처음 등장 순서를 유지한 중복 없는 목록.
    """
    ordered: List[str] = []
    for model in models:
        name = str(model or "").strip()
        if name and name not in ordered:
            ordered.append(name)
    return ordered


class ModelRouter:
    """원격 생성 시 시도할 모델 순서를 결정하는 라우터."""

    def __init__(self, primary: str = DEFAULT_PRIMARY, fallbacks: Sequence[str] = DEFAULT_FALLBACKS) -> None:
        """
        @param primary 설정된 기본 모델.
        @param fallbacks 기본 모델 실패 시 이어서 시도할 모델들.
        @returns None
        """
        self._primary = primary or DEFAULT_PRIMARY
        self._fallbacks = tuple(fallbacks)

    @property
    def primary(self) -> str:
        """
        @returns 기본 모델 이름.
        """
        return self._primary

    def candidates(self, override: Optional[Sequence[str]] = None) -> List[str]:
        """
        @param override 호출자가 지정한 후보 목록 (있으면 그대로 사용).
        @returns 중복을 제거한 시도 순서.
        """
        if override:
            return dedupe_models(override)
        return dedupe_models([self._primary, *self._fallbacks])
