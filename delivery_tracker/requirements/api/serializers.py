from rest_framework import serializers

from delivery_tracker.requirements.models import RequirementTemplate
from delivery_tracker.requirements.rules import RulesError
from delivery_tracker.requirements.rules import parse_rules


class RequirementTemplateSerializer(serializers.ModelSerializer):
    created_by = serializers.PrimaryKeyRelatedField(read_only=True)
    rules = serializers.JSONField(required=False)

    class Meta:
        model = RequirementTemplate
        fields = [
            "id",
            "name",
            "description",
            "rules",
            "active",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_by", "created_at", "updated_at"]

    def validate_rules(self, value):
        try:
            return parse_rules(value)
        except RulesError as exc:
            raise serializers.ValidationError(exc.errors) from exc

    def create(self, validated_data):
        # Omitted rules mean "all defaults".
        validated_data.setdefault("rules", parse_rules({}))
        return super().create(validated_data)
