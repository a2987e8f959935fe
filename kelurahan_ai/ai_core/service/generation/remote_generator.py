# =============================================================================
# 원격 생성 서비스 (Remote Generator)
# =============================================================================
# 후보 모델을 순서대로 시도하며, 모델마다 속도 제한/할당량 오류에 한해
# 키를 바꿔 가며 정해진 횟수만큼 재시도한다.
#
# 정책:
#   - 키 풀이 비어 있으면 어떤 호출도 하기 전에 NoCredentials.
#   - 시도마다: 다음 키 선택 -> 속도 제한 대기 -> 호출 1회.
#   - RateLimited/QuotaExceeded: 같은 모델로 재시도 (모델당 최대 N회), 이후 다음 모델.
#   - RemoteTimeout/UpstreamError: 즉시 전파 (호출자가 로컬 폴백으로 전환).
#   - 요청당 속도 제한 대기 합계가 max_rate_wait_seconds를 넘으면 RateWaitExceeded (즉시 전파).
#   - 모든 모델 소진: AllRemoteExhausted.
# =============================================================================

from __future__ import annotations

import logging
import time
from typing import Any, List, Optional, Sequence

from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt

from kelurahan_ai.ai_core.client.gemini_client import GeminiClient
from kelurahan_ai.ai_core.client.gemini_response import CompletionResult
from kelurahan_ai.ai_core.common.errors import AllRemoteExhausted, NoCredentials, RateLimited
from kelurahan_ai.ai_core.config.model_router import ModelRouter
from kelurahan_ai.ai_core.domain.chat_turn import ChatTurn
from kelurahan_ai.ai_core.service.generation.key_pool import ApiKeyPool
from kelurahan_ai.ai_core.service.generation.rate_limiter import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS_PER_MODEL = 2
DEFAULT_HISTORY_TURNS = 4
DEFAULT_MAX_RATE_WAIT_SECONDS = 10.0


class RemoteGenerator:
    """
    다중 모델/다중 키 원격 생성기.

    Attributes:
        attempts_per_model (int): 모델당 최대 시도 횟수.
        history_turns (int): 요청에 포함할 최근 히스토리 턴 수.

    Example:
        >>> generator = RemoteGenerator(client, ApiKeyPool(["k1", "k2"]), SlidingWindowRateLimiter())
        >>> result = generator.generate("Syarat membuat KTP?", history=[])
        >>> result.model
        'gemini-2.5-flash'
    """

    def __init__(
        self,
        client: GeminiClient,
        keys: ApiKeyPool,
        limiter: SlidingWindowRateLimiter,
        router: Optional[ModelRouter] = None,
        attempts_per_model: int = DEFAULT_ATTEMPTS_PER_MODEL,
        history_turns: int = DEFAULT_HISTORY_TURNS,
        enabled: bool = True,
        max_rate_wait_seconds: Optional[float] = DEFAULT_MAX_RATE_WAIT_SECONDS,
    ) -> None:
        """
        @param client 단일 호출 전송 클라이언트.
        @param keys API 키 풀.
        @param limiter 공유 속도 제한기.
        @param router 후보 모델 라우터.
        @param attempts_per_model 모델당 최대 시도 횟수.
        @param history_turns 포함할 최근 히스토리 턴 수.
        @param enabled False면 원격 생성을 시도하지 않는다 (AI_DISABLE_LLM).
        @param max_rate_wait_seconds 요청당 속도 제한 대기 합계 상한 (None이면 무제한).
        @returns None
        """
        self._client = client
        self._keys = keys
        self._limiter = limiter
        self._router = router or ModelRouter()
        self.attempts_per_model = max(1, int(attempts_per_model))
        self.history_turns = max(0, int(history_turns))
        self.enabled = enabled
        self.max_rate_wait_seconds = max_rate_wait_seconds

    @property
    def keys(self) -> ApiKeyPool:
        """
        @returns 사용 중인 키 풀.
        """
        return self._keys

    @property
    def limiter(self) -> SlidingWindowRateLimiter:
        """
        @returns 사용 중인 속도 제한기.
        """
        return self._limiter

    @property
    def is_available(self) -> bool:
        """
        @returns 활성화되어 있고 키가 하나 이상인지 여부.
        """
        return self.enabled and not self._keys.is_empty()

    def candidates(self, model_candidates: Optional[Sequence[str]] = None) -> List[str]:
        """
        @param model_candidates 호출자가 지정한 후보 (없으면 설정값).
        @returns 시도 순서대로의 모델 목록.
        """
        return self._router.candidates(model_candidates)

    def _remaining_wait(self, waited: float) -> Optional[float]:
        """
        @param waited 이번 요청에서 이미 대기한 시간(초).
        @returns 남은 허용 대기 시간 (상한이 없으면 None).
        """
        if self.max_rate_wait_seconds is None:
            return None
        return max(0.0, self.max_rate_wait_seconds - waited)

    def generate(
        self,
        prompt: str,
        history: Sequence[ChatTurn] = (),
        model_candidates: Optional[Sequence[str]] = None,
        system_instruction: Optional[str] = None,
    ) -> CompletionResult:
        """
        후보 모델을 순서대로 시도해 첫 성공 결과를 반환한다.

        Args:
            prompt: 현재 사용자 메시지.
            history: 이전 대화 턴 (최근 history_turns개만 사용).
            model_candidates: 후보 모델 목록 재지정.
            system_instruction: 페르소나 + 그라운딩 지시문.

        Returns:
            CompletionResult: 성공한 모델/시도 정보가 담긴 결과.

        Raises:
            NoCredentials: 비활성화 상태이거나 키가 없음.
            RemoteTimeout / UpstreamError: 호출 실패 (즉시 전파).
            RateWaitExceeded: 속도 제한 대기 상한 초과 (즉시 전파).
            AllRemoteExhausted: 모든 모델이 속도 제한/할당량으로 실패.
        """
        if not self.enabled:
            raise NoCredentials("원격 생성이 비활성화됨")
        if self._keys.is_empty():
            raise NoCredentials("설정된 Gemini API 키가 없음")

        trimmed: List[Any] = list(history)[-self.history_turns:] if self.history_turns else []
        models = self.candidates(model_candidates)
        started = time.monotonic()
        total_attempts = 0
        rate_waited = 0.0
        last_error: Optional[RateLimited] = None

        for model in models:
            retrying = Retrying(
                stop=stop_after_attempt(self.attempts_per_model),
                retry=retry_if_exception_type(RateLimited),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            )
            key_index: Optional[int] = None
            text = ""
            try:
                for attempt in retrying:
                    with attempt:
                        total_attempts += 1
                        key_index, api_key = self._keys.next()
                        rate_waited += self._limiter.acquire(max_wait=self._remaining_wait(rate_waited))
                        logger.info(
                            "원격 생성 시도",
                            extra={
                                "model": model,
                                "key_index": key_index,
                                "attempt": attempt.retry_state.attempt_number,
                            },
                        )
                        text = self._client.generate(
                            api_key,
                            model,
                            prompt,
                            trimmed,
                            system_instruction=system_instruction,
                        )
            except RateLimited as exc:
                last_error = exc
                logger.warning(
                    "모델 시도 소진, 다음 모델로 전환",
                    extra={"model": model, "error_type": type(exc).__name__},
                )
                continue

            result = CompletionResult(
                text=text,
                model=model,
                attempts=total_attempts,
                key_index=key_index,
                elapsed_ms=(time.monotonic() - started) * 1000,
            )
            logger.info("원격 생성 성공", extra=result.to_dict())
            return result

        raise AllRemoteExhausted(
            f"모든 모델 시도 실패 ({', '.join(models)}): {last_error}",
            attempts=total_attempts,
        )
