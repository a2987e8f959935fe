# =============================================================================
# Google Gemini API 클라이언트 (전송 계층)
# =============================================================================
# 지정한 API 키와 모델로 generateContent 호출을 정확히 한 번 수행한다.
# 재시도/키 회전/모델 폴백은 상위 RemoteGenerator가 담당하며, 이 클래스는
# 공급자 오류를 도메인 예외로 분류하는 역할까지만 한다.
#
# 오류 분류:
#   - 429 또는 RESOURCE_EXHAUSTED + "quota" 메시지 -> QuotaExceeded
#   - 그 밖의 429                                   -> RateLimited
#   - 제한 시간 초과                                -> RemoteTimeout
#   - 그 밖의 모든 실패 / 빈 응답                   -> UpstreamError
#
# 사용 예시:
#   client = GeminiClient(timeout_ms=8000)
#   text = client.generate(api_key, "gemini-2.5-flash", contents, system_instruction)
# =============================================================================

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from kelurahan_ai.ai_core.common.errors import (
    QuotaExceeded,
    RateLimited,
    RemoteGenerationError,
    RemoteTimeout,
    UpstreamError,
)
from kelurahan_ai.ai_core.domain.chat_turn import ChatTurn

logger = logging.getLogger(__name__)


# =============================================================================
# 설정 데이터클래스
# =============================================================================

@dataclass
class GenerationConfig:
    """
    텍스트 생성 설정.

    Attributes:
        temperature (float):
            응답의 무작위성.
        max_output_tokens (int):
            최대 출력 토큰 수.
    """

    temperature: float = 0.7
    """응답의 무작위성 (0.0=결정적)."""

    max_output_tokens: int = 500
    """최대 출력 토큰 수."""

    def to_dict(self) -> Dict[str, Any]:
        """설정을 딕셔너리로 변환합니다."""
        return {
            "temperature": self.temperature,
            "max_output_tokens": self.max_output_tokens,
        }


# =============================================================================
# 오류 분류
# =============================================================================

def classify_error(exc: BaseException, model: Optional[str] = None) -> RemoteGenerationError:
    """
    공급자/네트워크 예외를 도메인 예외로 변환한다.

    @param exc 원본 예외.
    @param model 호출한 모델 이름.
    @returns RemoteGenerationError 하위 예외 인스턴스.
    """
    if isinstance(exc, RemoteGenerationError):
        return exc
    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return RemoteTimeout(f"Gemini 호출 시간 초과: {exc}", model=model)
    if isinstance(exc, genai_errors.APIError):
        code = getattr(exc, "code", None)
        status = str(getattr(exc, "status", "") or "").upper()
        message = str(getattr(exc, "message", "") or exc)
        if code == 429 or status == "RESOURCE_EXHAUSTED":
            if "quota" in message.lower():
                return QuotaExceeded(message, model=model)
            return RateLimited(message, model=model)
        if code in (408, 504) or status == "DEADLINE_EXCEEDED":
            return RemoteTimeout(message, model=model)
        return UpstreamError(f"Gemini API 오류 {code}: {message}", model=model)
    return UpstreamError(f"Gemini 호출 실패: {exc}", model=model)


def build_contents(prompt: str, history: Sequence[ChatTurn] = ()) -> List[Any]:
    """
    @param prompt 현재 턴 프롬프트 (그라운딩 데이터 포함 가능).
    @param history 이전 대화 턴.
    @returns genai Content 리스트 (히스토리 뒤에 사용자 턴).
    """
    contents = [
        genai_types.Content(role=turn.role, parts=[genai_types.Part(text=turn.text)])
        for turn in history
    ]
    contents.append(genai_types.Content(role="user", parts=[genai_types.Part(text=prompt)]))
    return contents


# =============================================================================
# Gemini 클라이언트 클래스
# =============================================================================

class GeminiClient:
    """
    google-genai SDK 기반 단일 호출 클라이언트.

    키마다 genai.Client 인스턴스를 하나씩 만들어 재사용한다.

    Attributes:
        timeout_ms (int): 호출당 제한 시간(ms).
        config (GenerationConfig): 생성 설정.

    Example:
        >>> client = GeminiClient(timeout_ms=8000)
        >>> client.generate("AIza...", "gemini-2.5-flash", "Halo", [], "Anda adalah ...")
        'Halo! Ada yang bisa saya bantu?'
    """

    DEFAULT_TIMEOUT_MS = 8000
    """기본 제한 시간(ms)."""

    def __init__(
        self,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        config: Optional[GenerationConfig] = None,
        client_factory: Optional[Callable[[str], Any]] = None,
    ) -> None:
        """
        @param timeout_ms 호출당 제한 시간(ms).
        @param config 생성 설정.
        @param client_factory api_key -> genai.Client 생성 함수 (테스트 주입용).
        @returns None
        """
        self.timeout_ms = int(timeout_ms)
        self.config = config or GenerationConfig()
        self._client_factory = client_factory or self._default_factory
        self._clients: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def _default_factory(self, api_key: str) -> Any:
        """
        @param api_key Gemini API 키.
        @returns 제한 시간이 설정된 genai.Client.
        """
        return genai.Client(
            api_key=api_key,
            http_options=genai_types.HttpOptions(timeout=self.timeout_ms),
        )

    def _client_for(self, api_key: str) -> Any:
        """
        @param api_key Gemini API 키.
        @returns 키별로 캐시된 genai.Client.
        """
        with self._lock:
            client = self._clients.get(api_key)
            if client is None:
                client = self._client_factory(api_key)
                self._clients[api_key] = client
            return client

    def generate(
        self,
        api_key: str,
        model: str,
        prompt: str,
        history: Sequence[ChatTurn] = (),
        system_instruction: Optional[str] = None,
    ) -> str:
        """
        generateContent를 한 번 호출한다.

        Args:
            api_key: 이번 호출에 사용할 키.
            model: 모델 이름.
            prompt: 현재 사용자 턴 프롬프트.
            history: 이전 대화 턴 (호출자가 이미 잘라서 전달).
            system_instruction: 페르소나 지시문.

        Returns:
            str: 비어 있지 않은 답변 텍스트.

        Raises:
            RateLimited / QuotaExceeded / RemoteTimeout / UpstreamError
        """
        try:
            response = self._client_for(api_key).models.generate_content(
                model=model,
                contents=build_contents(prompt, history),
                config=genai_types.GenerateContentConfig(
                    system_instruction=system_instruction,
                    **self.config.to_dict(),
                ),
            )
        except Exception as exc:
            error = classify_error(exc, model=model)
            logger.warning(
                "Gemini 호출 실패",
                extra={"model": model, "error_type": type(error).__name__, "error": str(exc)[:200]},
            )
            raise error from exc

        text = (getattr(response, "text", "") or "").strip()
        if not text:
            raise UpstreamError("Gemini 응답 텍스트가 비어 있음", model=model)
        return text
