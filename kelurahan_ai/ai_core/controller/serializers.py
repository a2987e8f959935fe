from __future__ import annotations

from rest_framework import serializers


class TurnPartSerializer(serializers.Serializer):
    text = serializers.CharField(allow_blank=True)


class ChatTurnSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=["user", "model"])
    parts = TurnPartSerializer(many=True)


class ChatRequestSerializer(serializers.Serializer):
    message = serializers.CharField()
    history = ChatTurnSerializer(many=True, required=False)


class CandidateContentSerializer(serializers.Serializer):
    parts = TurnPartSerializer(many=True)


class CandidateSerializer(serializers.Serializer):
    content = CandidateContentSerializer()


class ChatOutputSerializer(serializers.Serializer):
    candidates = CandidateSerializer(many=True)


class ChatResponseSerializer(serializers.Serializer):
    ok = serializers.BooleanField()
    model = serializers.CharField()
    output = ChatOutputSerializer()
    cached = serializers.BooleanField()


class ErrorResponseSerializer(serializers.Serializer):
    ok = serializers.BooleanField()
    error = serializers.CharField()


class HealthChecksSerializer(serializers.Serializer):
    knowledge = serializers.BooleanField()
    cache = serializers.BooleanField()
    credentials = serializers.BooleanField()
    genai = serializers.BooleanField()


class HealthCheckSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=["healthy", "degraded"])
    checks = HealthChecksSerializer()
    timestamp = serializers.CharField()


class StatusSerializer(serializers.Serializer):
    server = serializers.JSONField()
    rate_limit = serializers.JSONField(allow_null=True)
    models = serializers.ListField(child=serializers.CharField())
    keys = serializers.JSONField()
    cache = serializers.JSONField()
    data = serializers.JSONField()
    semantic = serializers.JSONField()


class ServiceBannerSerializer(serializers.Serializer):
    service = serializers.CharField()
    version = serializers.CharField()
    status = serializers.CharField()
