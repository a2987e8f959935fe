import unittest
from types import SimpleNamespace

import httpx
from google.genai import errors as genai_errors

from kelurahan_ai.ai_core.client.gemini_client import GeminiClient, build_contents, classify_error
from kelurahan_ai.ai_core.common.errors import QuotaExceeded, RateLimited, RemoteTimeout, UpstreamError
from kelurahan_ai.ai_core.domain.chat_turn import ChatTurn


def _api_error(code: int, status: str, message: str) -> genai_errors.APIError:
    payload = {"error": {"code": code, "message": message, "status": status}}
    if code >= 500:
        return genai_errors.ServerError(code, payload)
    return genai_errors.ClientError(code, payload)


class FakeModels:
    def __init__(self, outcome) -> None:
        """
        generate_content 호출을 기록하는 가짜 models 네임스페이스를 초기화합니다.

        @param outcome 반환할 텍스트 또는 발생시킬 예외.
        @returns {None} 호출 인자를 보관합니다.
        """
        self.outcome = outcome
        self.requests = []

    def generate_content(self, model, contents, config):
        self.requests.append({"model": model, "contents": contents, "config": config})
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return SimpleNamespace(text=self.outcome)


class ClassifyErrorTests(unittest.TestCase):
    def test_quota_message_maps_to_quota_exceeded(self) -> None:
        """
        429 + quota 메시지는 QuotaExceeded로 분류되어야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        error = classify_error(_api_error(429, "RESOURCE_EXHAUSTED", "You exceeded your current quota"), "m")
        self.assertIsInstance(error, QuotaExceeded)
        self.assertEqual(error.model, "m")

    def test_plain_429_maps_to_rate_limited(self) -> None:
        error = classify_error(_api_error(429, "RESOURCE_EXHAUSTED", "Too many requests"))
        self.assertIsInstance(error, RateLimited)
        self.assertNotIsInstance(error, QuotaExceeded)

    def test_timeouts(self) -> None:
        """
        네트워크 제한 시간과 504/DEADLINE_EXCEEDED는 RemoteTimeout이어야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        self.assertIsInstance(classify_error(httpx.ReadTimeout("slow")), RemoteTimeout)
        self.assertIsInstance(classify_error(_api_error(504, "DEADLINE_EXCEEDED", "deadline")), RemoteTimeout)

    def test_other_failures_are_upstream_errors(self) -> None:
        self.assertIsInstance(classify_error(_api_error(500, "INTERNAL", "boom")), UpstreamError)
        self.assertIsInstance(classify_error(_api_error(400, "INVALID_ARGUMENT", "bad")), UpstreamError)
        self.assertIsInstance(classify_error(ConnectionError("reset")), UpstreamError)


class GeminiClientTests(unittest.TestCase):
    def test_generate_returns_stripped_text(self) -> None:
        """
        응답 텍스트를 공백 제거 후 반환하고, 히스토리 뒤에 사용자 턴을 붙여야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        models = FakeModels("  Silakan datang ke kantor kelurahan.  ")
        client = GeminiClient(client_factory=lambda key: SimpleNamespace(models=models))
        history = [ChatTurn(role="user", text="Halo"), ChatTurn(role="model", text="Halo juga")]

        text = client.generate("key-1", "gemini-2.5-flash", "Syarat KTP?", history, system_instruction="persona")

        self.assertEqual(text, "Silakan datang ke kantor kelurahan.")
        request = models.requests[0]
        self.assertEqual(request["model"], "gemini-2.5-flash")
        self.assertEqual([content.role for content in request["contents"]], ["user", "model", "user"])
        self.assertEqual(request["contents"][-1].parts[0].text, "Syarat KTP?")
        self.assertEqual(request["config"].system_instruction, "persona")
        self.assertEqual(request["config"].max_output_tokens, 500)

    def test_empty_text_is_upstream_error(self) -> None:
        client = GeminiClient(client_factory=lambda key: SimpleNamespace(models=FakeModels("   ")))
        with self.assertRaises(UpstreamError):
            client.generate("key-1", "gemini-2.5-flash", "halo")

    def test_provider_error_is_classified(self) -> None:
        """
        SDK 예외는 분류된 도메인 예외로 다시 발생해야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        models = FakeModels(_api_error(429, "RESOURCE_EXHAUSTED", "quota exceeded"))
        client = GeminiClient(client_factory=lambda key: SimpleNamespace(models=models))
        with self.assertRaises(QuotaExceeded) as ctx:
            client.generate("key-1", "gemini-2.0-flash", "halo")
        self.assertEqual(ctx.exception.model, "gemini-2.0-flash")
        self.assertIsInstance(ctx.exception.__cause__, genai_errors.APIError)

    def test_client_is_created_once_per_key(self) -> None:
        created = []

        def factory(key):
            created.append(key)
            return SimpleNamespace(models=FakeModels("ok"))

        client = GeminiClient(client_factory=factory)
        client.generate("key-1", "m", "a")
        client.generate("key-1", "m", "b")
        client.generate("key-2", "m", "c")
        self.assertEqual(created, ["key-1", "key-2"])

    def test_build_contents_without_history(self) -> None:
        contents = build_contents("halo")
        self.assertEqual(len(contents), 1)
        self.assertEqual(contents[0].role, "user")


if __name__ == "__main__":
    unittest.main()
