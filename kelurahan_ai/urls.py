from django.urls import path

from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView, SpectacularSwaggerView

from kelurahan_ai.ai_core.controller.chat_views import (
    ChatAPIView,
    HealthCheckAPIView,
    ServiceBannerAPIView,
    StatusAPIView,
)

API_PREFIXES = ("", "api/")

urlpatterns = [
    path("", ServiceBannerAPIView.as_view(), name="service-banner"),
    # OpenAPI 스키마 및 문서
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("api/redoc/", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
]

for prefix in API_PREFIXES:
    name_suffix = prefix.strip("/") or "root"
    urlpatterns.extend(
        [
            path(f"{prefix}chat", ChatAPIView.as_view(), name=f"chat-{name_suffix}"),
            path(f"{prefix}health", HealthCheckAPIView.as_view(), name=f"health-{name_suffix}"),
            path(f"{prefix}status", StatusAPIView.as_view(), name=f"status-{name_suffix}"),
        ]
    )
