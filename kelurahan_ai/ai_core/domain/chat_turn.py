from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

ALLOWED_ROLES = ("user", "model")


@dataclass(frozen=True)
class ChatTurn:
    """대화 히스토리의 한 턴."""

    role: str
    text: str

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["ChatTurn"]:
        """
        `{role, parts:[{text}]}` 형태를 변환한다. 형식이 맞지 않으면 None.

        @param raw 클라이언트가 보낸 턴.
        @returns ChatTurn 또는 None.
        """
        if not isinstance(raw, dict):
            return None
        role = raw.get("role")
        if role == "assistant":
            role = "model"
        if role not in ALLOWED_ROLES:
            return None
        parts = raw.get("parts")
        if not isinstance(parts, list):
            return None
        texts = [str(part.get("text")) for part in parts if isinstance(part, dict) and part.get("text")]
        text = "\n".join(texts).strip()
        if not text:
            return None
        return cls(role=role, text=text)

    def to_dict(self) -> Dict[str, Any]:
        """
        @returns Gemini contents 형식 딕셔너리.
        """
        return {"role": self.role, "parts": [{"text": self.text}]}


def parse_history(raw_history: Optional[Iterable[Any]]) -> List[ChatTurn]:
    """
    @param raw_history 요청 본문의 history 값 (리스트가 아니면 무시).
    @returns 형식이 올바른 턴만 남긴 리스트.
    """
    if not isinstance(raw_history, (list, tuple)):
        return []
    turns = []
    for raw in raw_history:
        turn = ChatTurn.from_raw(raw)
        if turn is not None:
            turns.append(turn)
    return turns
