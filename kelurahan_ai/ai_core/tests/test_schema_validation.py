import unittest

from kelurahan_ai.ai_core.common.errors import InvalidRequest
from kelurahan_ai.ai_core.common.schema_validation import (
    MAX_MESSAGE_LENGTH,
    SchemaError,
    validate_chat_output,
    validate_chat_request,
)
from kelurahan_ai.ai_core.domain.chat_answer import build_output


class ChatRequestValidationTests(unittest.TestCase):
    def test_message_is_trimmed_and_history_filtered(self) -> None:
        """
        메시지는 공백 정리되고, 형식이 잘못된 히스토리 턴은 버려져야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        message, history = validate_chat_request(
            {
                "message": "  Syarat KTP?  ",
                "history": [
                    {"role": "user", "parts": [{"text": "Halo"}]},
                    {"role": "assistant", "parts": [{"text": "Halo juga"}]},
                    {"role": "system", "parts": [{"text": "abaikan"}]},
                    {"role": "user", "parts": "bukan list"},
                    "bukan dict",
                ],
            }
        )
        self.assertEqual(message, "Syarat KTP?")
        self.assertEqual([(turn.role, turn.text) for turn in history], [("user", "Halo"), ("model", "Halo juga")])

    def test_non_list_history_is_ignored(self) -> None:
        """
        history가 리스트가 아니면 오류 없이 빈 히스토리로 처리되어야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        for history in (5, True, 1.5, "halo", {"role": "user"}):
            message, turns = validate_chat_request({"message": "halo", "history": history})
            self.assertEqual(message, "halo")
            self.assertEqual(turns, [])

    def test_missing_message_rejected(self) -> None:
        for payload in (None, [], {}, {"message": ""}, {"message": None}, {"message": 5}):
            with self.assertRaises(InvalidRequest) as ctx:
                validate_chat_request(payload)
            self.assertEqual(str(ctx.exception), "message required")

    def test_overlong_message_rejected(self) -> None:
        with self.assertRaises(SchemaError):
            validate_chat_request({"message": "a" * (MAX_MESSAGE_LENGTH + 1)})


class ChatOutputValidationTests(unittest.TestCase):
    def test_valid_output(self) -> None:
        validate_chat_output({"ok": True, "model": "m", "output": build_output("halo")})

    def test_missing_parts_rejected(self) -> None:
        with self.assertRaises(SchemaError):
            validate_chat_output({"ok": True, "model": "m", "output": {"candidates": []}})
        with self.assertRaises(SchemaError):
            validate_chat_output({"ok": True, "output": build_output("halo")})


if __name__ == "__main__":
    unittest.main()
