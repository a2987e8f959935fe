from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


def build_output(text: str) -> Dict[str, Any]:
    """
    @param text 답변 텍스트.
    @returns Gemini 호환 candidates 구조.
    """
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@dataclass
class ChatAnswer:
    """오케스트레이터가 최종적으로 선택한 답변."""

    model: str
    stage: str
    output: Dict[str, Any]
    cached: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        """
        @returns 첫 번째 후보의 텍스트 (없으면 빈 문자열).
        """
        try:
            return self.output["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return ""

    @classmethod
    def from_text(cls, text: str, model: str, stage: str, metadata: Optional[Dict[str, Any]] = None) -> "ChatAnswer":
        """
        @param text 답변 텍스트.
        @param model 응답 모델/출처 라벨.
        @param stage 답변을 만든 파이프라인 단계.
        @param metadata 부가 정보.
        @returns ChatAnswer.
        """
        return cls(model=model, stage=stage, output=build_output(text), metadata=metadata or {})

    def cache_value(self) -> Dict[str, Any]:
        """
        @returns 캐시에 저장할 페이로드.
        """
        return {"model": self.model, "stage": self.stage, "output": self.output}

    @classmethod
    def from_cache(cls, value: Dict[str, Any]) -> "ChatAnswer":
        """
        @param value 캐시에서 읽은 페이로드.
        @returns cached=True 로 표시된 ChatAnswer.
        """
        return cls(
            model=str(value.get("model") or "cache"),
            stage=str(value.get("stage") or "cache"),
            output=value["output"],
            cached=True,
        )

    def to_payload(self) -> Dict[str, Any]:
        """
        @returns /chat 200 응답 본문.
        """
        return {"ok": True, "model": self.model, "output": self.output, "cached": self.cached}
