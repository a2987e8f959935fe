"""
챗봇 파이프라인 전역에서 사용하는 예외 계층.

원격 생성 계층의 예외는 오케스트레이터에서 모두 잡혀 다음 폴백 단계로 전환되며,
HTTP 계층까지 올라가는 것은 요청 검증 실패(InvalidRequest)와 예상하지 못한 예외뿐이다.
"""

from __future__ import annotations

from typing import Optional


class KelurahanAIError(Exception):
    """모든 도메인 예외의 기반 클래스."""


class InvalidRequest(KelurahanAIError, ValueError):
    """요청 형식 위반 (HTTP 400)."""


class NoCredentials(KelurahanAIError):
    """API 키 풀이 비어 있어 원격 생성을 시도할 수 없음."""


class InternalFault(KelurahanAIError):
    """데이터 파일/캐시 백엔드 등 내부 자원 장애 (기능 저하 상태로 계속 동작)."""


class RemoteGenerationError(KelurahanAIError):
    """원격 LLM 호출 실패의 공통 기반 클래스."""

    def __init__(self, message: str, model: Optional[str] = None) -> None:
        """
        @param message 오류 메시지.
        @param model 실패한 모델 이름.
        @returns None
        """
        super().__init__(message)
        self.model = model


class RateLimited(RemoteGenerationError):
    """공급자 429 응답 (요청 속도 초과)."""


class QuotaExceeded(RateLimited):
    """공급자 할당량 소진 (429/RESOURCE_EXHAUSTED + quota 메시지)."""


class RateWaitExceeded(RemoteGenerationError):
    """로컬 속도 제한 대기가 요청당 허용 시간을 넘김 (다른 모델로도 재시도하지 않음)."""


class RemoteTimeout(RemoteGenerationError):
    """원격 호출이 제한 시간을 넘김."""


class UpstreamError(RemoteGenerationError):
    """예상하지 못한 공급자 응답 또는 네트워크 오류."""


class AllRemoteExhausted(RemoteGenerationError):
    """모든 후보 모델에서 할당량/속도 제한으로 실패."""

    def __init__(self, message: str, attempts: int = 0) -> None:
        """
        @param message 오류 메시지.
        @param attempts 전체 시도 횟수.
        @returns None
        """
        super().__init__(message)
        self.attempts = attempts
