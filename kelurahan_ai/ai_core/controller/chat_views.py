from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from drf_spectacular.utils import OpenApiExample, extend_schema
from rest_framework import status
from rest_framework.exceptions import ParseError
from rest_framework.response import Response
from rest_framework.views import APIView

from kelurahan_ai import __version__
from kelurahan_ai.ai_core.common.errors import InvalidRequest
from kelurahan_ai.ai_core.common.schema_validation import validate_chat_request
from kelurahan_ai.ai_core.controller.serializers import (
    ChatRequestSerializer,
    ChatResponseSerializer,
    ErrorResponseSerializer,
    HealthCheckSerializer,
    ServiceBannerSerializer,
    StatusSerializer,
)
from kelurahan_ai.ai_core.service.chat.dependencies import get_chat_service

logger = logging.getLogger(__name__)

SERVICE_NAME = "Kelurahan Chatbot AI"
INTERNAL_ERROR_MESSAGE = "Terjadi kesalahan pada sistem. Silakan coba beberapa saat lagi."

_STARTED_AT = time.monotonic()


def _error(message: str, http_status: int) -> Response:
    """
    @param message 사용자에게 보여줄 오류 문구.
    @param http_status HTTP 상태 코드.
    @returns {ok:false, error} 응답.
    """
    return Response({"ok": False, "error": message}, status=http_status)


class ChatAPIView(APIView):
    """
    시민 질문에 답하는 챗 엔드포인트.

    캐시 -> 원격 생성 -> 로컬 폴백 순서로 처리하며, 요청 형식 오류가 아니면
    항상 200과 답변 텍스트를 반환합니다.
    """

    @extend_schema(
        summary="챗 답변",
        request=ChatRequestSerializer,
        responses={200: ChatResponseSerializer, 400: ErrorResponseSerializer, 500: ErrorResponseSerializer},
        examples=[
            OpenApiExample(
                "ktp",
                value={"message": "Bagaimana cara membuat KTP?", "history": []},
                request_only=True,
            )
        ],
    )
    def post(self, request) -> Response:
        """
        @param {Request} request - DRF 요청 객체 ({message, history?}).
        @returns {Response} 답변 페이로드 또는 오류 응답.
        """
        try:
            payload = request.data
        except ParseError:
            payload = None
        try:
            message, history = validate_chat_request(payload)
        except InvalidRequest as exc:
            return _error(str(exc), status.HTTP_400_BAD_REQUEST)

        try:
            answer = get_chat_service().answer(message, history)
        except Exception:
            logger.exception("챗 처리 중 예기치 못한 오류")
            return _error(INTERNAL_ERROR_MESSAGE, status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response(answer.to_payload())


class HealthCheckAPIView(APIView):
    """
    API 헬스체크 엔드포인트.

    지식 코퍼스, 캐시 백엔드, API 키, Gemini 사용 가능 여부를 확인합니다.
    하나라도 실패하면 degraded 상태와 503을 반환합니다.
    """

    @extend_schema(
        summary="헬스체크",
        responses={200: HealthCheckSerializer, 503: HealthCheckSerializer},
    )
    def get(self, request) -> Response:
        """
        @param {Request} request - DRF 요청 객체.
        @returns {Response} 점검 결과.
        """
        service = get_chat_service()
        try:
            cache_ok = bool(service.cache.ping())
        except Exception as exc:
            logger.warning("캐시 헬스체크 실패", extra={"error": str(exc)})
            cache_ok = False
        generator = service.generator
        checks = {
            "knowledge": service.knowledge.size > 0,
            "cache": cache_ok,
            "credentials": bool(generator and not generator.keys.is_empty()),
            "genai": bool(generator and generator.is_available),
        }
        healthy = all(checks.values())
        payload = {
            "status": "healthy" if healthy else "degraded",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        serializer = HealthCheckSerializer(payload)
        return Response(
            serializer.data,
            status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        )


class StatusAPIView(APIView):
    """속도 제한 사용량, 모델 목록, 키/캐시/데이터 상태를 반환합니다."""

    @extend_schema(summary="운영 상태", responses={200: StatusSerializer})
    def get(self, request) -> Response:
        """
        @param {Request} request - DRF 요청 객체.
        @returns {Response} 구성 요소 상태.
        """
        snapshot = get_chat_service().status()
        payload = {
            "server": {
                "service": SERVICE_NAME,
                "version": __version__,
                "uptime_seconds": round(time.monotonic() - _STARTED_AT, 1),
                "remote_enabled": snapshot.pop("remote_enabled"),
            },
            **snapshot,
        }
        return Response(StatusSerializer(payload).data)


class ServiceBannerAPIView(APIView):
    """서비스 이름과 버전을 반환하는 루트 엔드포인트."""

    @extend_schema(summary="서비스 정보", responses={200: ServiceBannerSerializer})
    def get(self, request) -> Response:
        """
        @param {Request} request - DRF 요청 객체.
        @returns {Response} 서비스 배너.
        """
        payload = {"service": SERVICE_NAME, "version": __version__, "status": "online"}
        return Response(ServiceBannerSerializer(payload).data)
