import unittest

from kelurahan_ai.ai_core.common.errors import (
    AllRemoteExhausted,
    NoCredentials,
    QuotaExceeded,
    RateLimited,
    RateWaitExceeded,
    RemoteTimeout,
)
from kelurahan_ai.ai_core.config.model_router import ModelRouter
from kelurahan_ai.ai_core.domain.chat_turn import ChatTurn
from kelurahan_ai.ai_core.service.generation.key_pool import ApiKeyPool
from kelurahan_ai.ai_core.service.generation.rate_limiter import SlidingWindowRateLimiter
from kelurahan_ai.ai_core.service.generation.remote_generator import RemoteGenerator


class ScriptedTransport:
    def __init__(self, outcomes) -> None:
        """
        미리 정한 결과를 순서대로 돌려주는 가짜 전송 계층을 초기화합니다.

        @param outcomes 호출마다 반환할 문자열 또는 발생시킬 예외 목록.
        @returns {None} 호출 기록을 보관합니다.
        """
        self.outcomes = list(outcomes)
        self.calls = []

    def generate(self, api_key, model, prompt, history=(), system_instruction=None):
        self.calls.append({"key": api_key, "model": model, "history": list(history), "system": system_instruction})
        outcome = self.outcomes.pop(0) if self.outcomes else "jawaban"
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _generator(transport, keys=("k1", "k2", "k3"), attempts=2, **kwargs):
    return RemoteGenerator(
        client=transport,
        keys=ApiKeyPool(keys),
        limiter=SlidingWindowRateLimiter(max_per_window=100, sleep=lambda seconds: None),
        router=ModelRouter(primary="model-a", fallbacks=["model-b"]),
        attempts_per_model=attempts,
        **kwargs,
    )


class RemoteGeneratorTests(unittest.TestCase):
    def test_first_success_is_returned(self) -> None:
        """
        첫 시도에 성공하면 1차 모델 결과를 그대로 반환해야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        transport = ScriptedTransport(["Datang ke kelurahan."])
        result = _generator(transport).generate("Syarat KTP?", system_instruction="persona")
        self.assertEqual(result.text, "Datang ke kelurahan.")
        self.assertEqual(result.model, "model-a")
        self.assertEqual(result.attempts, 1)
        self.assertEqual(transport.calls[0]["system"], "persona")

    def test_rate_limit_retries_with_next_key(self) -> None:
        """
        속도 제한 오류는 같은 모델로 다음 키를 사용해 재시도해야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        transport = ScriptedTransport([RateLimited("429"), "ok"])
        result = _generator(transport).generate("halo")
        self.assertEqual([call["key"] for call in transport.calls], ["k1", "k2"])
        self.assertEqual([call["model"] for call in transport.calls], ["model-a", "model-a"])
        self.assertEqual(result.attempts, 2)
        self.assertEqual(result.key_index, 1)

    def test_quota_exhaustion_moves_to_next_model(self) -> None:
        """
        모델당 시도 횟수를 소진하면 다음 모델로 넘어가야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        transport = ScriptedTransport([QuotaExceeded("quota"), RateLimited("429"), "dari model b"])
        result = _generator(transport).generate("halo")
        self.assertEqual([call["model"] for call in transport.calls], ["model-a", "model-a", "model-b"])
        self.assertEqual(result.model, "model-b")
        self.assertEqual(result.attempts, 3)

    def test_all_models_exhausted(self) -> None:
        transport = ScriptedTransport([RateLimited("429")] * 4)
        with self.assertRaises(AllRemoteExhausted) as ctx:
            _generator(transport).generate("halo")
        self.assertEqual(ctx.exception.attempts, 4)
        self.assertEqual(len(transport.calls), 4)

    def test_timeout_propagates_without_retry(self) -> None:
        """
        제한 시간 초과는 재시도 없이 호출자에게 전파되어야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        transport = ScriptedTransport([RemoteTimeout("timeout", model="model-a")])
        with self.assertRaises(RemoteTimeout):
            _generator(transport).generate("halo")
        self.assertEqual(len(transport.calls), 1)

    def test_saturated_limiter_stops_at_wait_cap(self) -> None:
        """
        속도 제한 대기가 요청당 상한을 넘으면 호출 없이 RateWaitExceeded가 전파되어야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        sleeps = []
        limiter = SlidingWindowRateLimiter(max_per_window=1, window_seconds=60, clock=lambda: 0.0, sleep=sleeps.append)
        limiter.acquire()
        transport = ScriptedTransport(["ok"])
        generator = RemoteGenerator(
            client=transport,
            keys=ApiKeyPool(["k1"]),
            limiter=limiter,
            router=ModelRouter(primary="model-a", fallbacks=["model-b"]),
            max_rate_wait_seconds=10.0,
        )

        with self.assertRaises(RateWaitExceeded):
            generator.generate("halo")
        self.assertEqual(transport.calls, [])
        self.assertEqual(sleeps, [])

    def test_no_keys_fails_before_any_call(self) -> None:
        transport = ScriptedTransport([])
        with self.assertRaises(NoCredentials):
            _generator(transport, keys=()).generate("halo")
        self.assertEqual(transport.calls, [])

    def test_disabled_generator_never_calls(self) -> None:
        transport = ScriptedTransport([])
        generator = _generator(transport, enabled=False)
        self.assertFalse(generator.is_available)
        with self.assertRaises(NoCredentials):
            generator.generate("halo")
        self.assertEqual(transport.calls, [])

    def test_history_is_trimmed_to_recent_turns(self) -> None:
        """
        최근 history_turns 개의 턴만 전송되어야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        history = [ChatTurn(role="user" if i % 2 == 0 else "model", text=f"turn {i}") for i in range(6)]
        transport = ScriptedTransport(["ok"])
        _generator(transport, history_turns=4).generate("halo", history)
        self.assertEqual([turn.text for turn in transport.calls[0]["history"]], ["turn 2", "turn 3", "turn 4", "turn 5"])

    def test_candidate_override(self) -> None:
        transport = ScriptedTransport(["ok"])
        result = _generator(transport).generate("halo", model_candidates=["model-x"])
        self.assertEqual(result.model, "model-x")


if __name__ == "__main__":
    unittest.main()
