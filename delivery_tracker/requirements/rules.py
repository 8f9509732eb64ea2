"""Delivery requirement rules attached to packages through a checklist.

Rules are stored normalized (every default filled in) so that the hash
recorded on a checklist identifies exactly the rules it was created under.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from rest_framework import serializers

STAGES = ["pending", "picked_up", "in_transit", "delivered", "failed"]
PHOTO_STAGES = ["picked_up", "in_transit", "delivered"]
RECIPIENT_FIELDS = [
    "recipient_name",
    "recipient_phone",
    "recipient_email",
    "recipient_address",
]
LABEL_FORMATS = ["CODE128", "QR"]


class RulesError(ValueError):
    def __init__(self, errors):
        self.errors = errors
        super().__init__(f"Invalid requirement rules: {errors}")


class GeofenceSerializer(serializers.Serializer):
    lat = serializers.FloatField()
    lng = serializers.FloatField()
    radius_meters = serializers.FloatField(min_value=5)


class RequirementRulesSerializer(serializers.Serializer):
    required_stages = serializers.ListField(
        child=serializers.ChoiceField(choices=STAGES),
        default=lambda: ["picked_up", "delivered"],
    )
    require_photo_at_stages = serializers.DictField(
        child=serializers.IntegerField(min_value=1),
        default=dict,
    )
    require_signature_at_delivery = serializers.BooleanField(default=False)
    disallow_status_backwards = serializers.BooleanField(default=True)
    required_fields = serializers.ListField(
        child=serializers.ChoiceField(choices=RECIPIENT_FIELDS),
        default=list,
    )
    geofence = GeofenceSerializer(required=False)
    label_format = serializers.ChoiceField(choices=LABEL_FORMATS, default="CODE128")
    max_weight_kg = serializers.FloatField(required=False)

    def validate_require_photo_at_stages(self, value):
        unknown = sorted(stage for stage in value if stage not in PHOTO_STAGES)
        if unknown:
            msg = f"Photos can only be required at {', '.join(PHOTO_STAGES)}."
            raise serializers.ValidationError(msg)
        return value

    def validate_max_weight_kg(self, value):
        if value <= 0:
            msg = "Ensure this value is greater than 0."
            raise serializers.ValidationError(msg)
        return value


def parse_rules(raw: Any) -> dict[str, Any]:
    """Validate ``raw`` and return the rules with defaults filled in."""
    if not isinstance(raw, dict):
        raise RulesError({"non_field_errors": ["Expected an object."]})
    serializer = RequirementRulesSerializer(data=raw)
    if not serializer.is_valid():
        raise RulesError(serializer.errors)
    # Round-trip through JSON so the result is plain dicts and lists.
    return json.loads(json.dumps(serializer.validated_data))


def rules_hash(rules: dict[str, Any]) -> str:
    canonical = json.dumps(rules, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode()).hexdigest()
