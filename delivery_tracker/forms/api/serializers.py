from rest_framework import serializers

from delivery_tracker.forms.models import FormTemplate
from delivery_tracker.forms.schema import SchemaError
from delivery_tracker.forms.schema import parse_schema


class FormTemplateSerializer(serializers.ModelSerializer):
    created_by = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = FormTemplate
        fields = [
            "id",
            "name",
            "description",
            "status",
            "schema",
            "created_by",
            "published_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "status",
            "created_by",
            "published_at",
            "created_at",
            "updated_at",
        ]

    def validate_schema(self, value):
        try:
            parse_schema(value)
        except SchemaError as exc:
            raise serializers.ValidationError(str(exc)) from exc
        return value

    def validate(self, attrs):
        instance = self.instance
        if (
            instance is not None
            and "schema" in attrs
            and not instance.is_draft
            and attrs["schema"] != instance.schema
        ):
            raise serializers.ValidationError(
                {"schema": "Only draft templates can change their schema."},
            )
        return attrs
