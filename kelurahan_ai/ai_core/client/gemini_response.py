# =============================================================================
# Gemini 생성 결과 데이터 모델
# =============================================================================
# 원격 생성 한 번의 성공 결과를 담는다. 답변 텍스트와 함께 어떤 모델/키로
# 몇 번 만에 성공했는지 기록하여 로깅과 상태 점검에 사용한다.
#
# 사용 예시:
#   result = generator.generate(prompt, history)
#   payload = result.to_output()
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from kelurahan_ai.ai_core.domain.chat_answer import build_output


@dataclass
class CompletionResult:
    """
    원격 생성 성공 결과.

    Attributes:
        text (str):
            모델이 생성한 답변 텍스트 (비어 있지 않음).
        model (str):
            답변을 생성한 모델 이름.
        attempts (int):
            성공까지의 전체 호출 횟수 (모든 모델 합산).
        key_index (Optional[int]):
            성공한 호출에 사용된 키의 풀 내 위치.
        elapsed_ms (float):
            generate() 전체 소요 시간(ms).
    """

    text: str
    """생성된 답변 텍스트."""

    model: str
    """답변을 생성한 모델 이름 (예: 'gemini-2.5-flash')."""

    attempts: int = 1
    """성공까지의 전체 호출 횟수."""

    key_index: Optional[int] = None
    """사용된 키의 풀 내 위치."""

    elapsed_ms: float = 0.0
    """전체 소요 시간(ms)."""

    created_at: datetime = field(default_factory=datetime.now)
    """결과 생성 시각."""

    def to_output(self) -> Dict[str, Any]:
        """
        @returns Gemini 호환 candidates 구조.
        """
        return build_output(self.text)

    def to_dict(self) -> Dict[str, Any]:
        """
        @returns 로깅용 딕셔너리 (답변 본문은 길이만 기록).
        """
        return {
            "model": self.model,
            "attempts": self.attempts,
            "key_index": self.key_index,
            "elapsed_ms": round(self.elapsed_ms, 1),
            "text_length": len(self.text),
            "created_at": self.created_at.isoformat(),
        }
