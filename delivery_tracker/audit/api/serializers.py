from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

from delivery_tracker.audit.models import AuditLog

User = get_user_model()


class AuditActorSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "username", "name"]


class AuditLogSerializer(serializers.ModelSerializer):
    actor = AuditActorSerializer(allow_null=True, read_only=True)
    target = serializers.SerializerMethodField()

    class Meta:
        model = AuditLog
        fields = [
            "id",
            "action",
            "actor",
            "actor_role",
            "target",
            "message",
            "before",
            "after",
            "created_at",
        ]
        read_only_fields = fields

    def get_target(self, obj: AuditLog) -> dict[str, str] | None:
        if not obj.model_name:
            return None
        return {"model": obj.model_name, "id": obj.record_id}
