from typing import Any, Dict, List, Mapping, Tuple

from kelurahan_ai.ai_core.common.errors import InvalidRequest
from kelurahan_ai.ai_core.domain.chat_turn import ChatTurn, parse_history

MAX_MESSAGE_LENGTH = 2000


class SchemaError(InvalidRequest):
    """스키마 검증 실패."""

    pass


def validate_chat_request(payload: Any) -> Tuple[str, List[ChatTurn]]:
    """
    @param payload /chat 요청 본문.
    @returns (공백을 정리한 메시지, 유효한 히스토리 턴 리스트).
    """
    if not isinstance(payload, Mapping):
        raise SchemaError("message required")
    message = payload.get("message")
    if not isinstance(message, str) or not message.strip():
        raise SchemaError("message required")
    message = message.strip()
    if len(message) > MAX_MESSAGE_LENGTH:
        raise SchemaError(f"message too long (max {MAX_MESSAGE_LENGTH} characters)")
    return message, parse_history(payload.get("history"))


def validate_chat_output(payload: Dict[str, Any]) -> None:
    """
    @param payload /chat 200 응답 본문.
    @returns None
    """
    _require_fields(payload, ["ok", "model", "output"])
    _require_types(payload["output"], dict, "output")
    candidates = payload["output"].get("candidates")
    _require_types(candidates, list, "output.candidates")
    if not candidates:
        raise SchemaError("output.candidates 비어 있음")
    parts = candidates[0].get("content", {}).get("parts")
    _require_types(parts, list, "output.candidates[0].content.parts")
    if not parts or not isinstance(parts[0].get("text"), str):
        raise SchemaError("output.candidates[0].content.parts[0].text 누락")


def _require_fields(payload: Dict[str, Any], fields: List[str]) -> None:
    """
    @param payload 검증 대상 JSON.
    @param fields 필수 필드 목록.
    @returns None
    """
    missing = [field for field in fields if field not in payload]
    if missing:
        raise SchemaError(f"필수 필드 누락: {', '.join(missing)}")


def _require_types(value: Any, expected_type: type, field_name: str) -> None:
    """
    @param value 검증 대상 값.
    @param expected_type 기대 타입.
    @param field_name 필드 이름.
    @returns None
    """
    if not isinstance(value, expected_type):
        raise SchemaError(f"{field_name} 타입 오류: {type(value).__name__}")
