from rest_framework import serializers

from delivery_tracker.packages.models import DeliveryEvent
from delivery_tracker.packages.models import Package
from delivery_tracker.users.models import User


class LocationSerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)


class RecipientSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    phone = serializers.CharField(max_length=40, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    address = serializers.CharField(min_length=3)


def _drivers():
    return User.objects.filter(role=User.Role.DRIVER, is_active=True)


class PackageSerializer(serializers.ModelSerializer):
    recipient = serializers.SerializerMethodField()
    location = serializers.SerializerMethodField()
    checklist = serializers.SerializerMethodField()

    class Meta:
        model = Package
        fields = [
            "id",
            "barcode",
            "status",
            "recipient",
            "driver",
            "location",
            "metadata",
            "form_template",
            "checklist",
            "delivered_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_recipient(self, obj: Package) -> dict:
        return {
            "name": obj.recipient_name,
            "phone": obj.recipient_phone,
            "email": obj.recipient_email,
            "address": obj.recipient_address,
        }

    def get_location(self, obj: Package) -> dict | None:
        return obj.location

    def get_checklist(self, obj: Package) -> dict | None:
        checklist = getattr(obj, "checklist", None)
        if checklist is None:
            return None
        return {
            "template": str(checklist.template_id),
            "rules_hash": checklist.rules_hash,
            "progress": checklist.progress,
        }


class PackageCreateSerializer(serializers.Serializer):
    barcode = serializers.CharField(min_length=3, max_length=64)
    status = serializers.ChoiceField(
        choices=Package.Status.choices,
        default=Package.Status.PENDING,
    )
    recipient = RecipientSerializer()
    driver = serializers.PrimaryKeyRelatedField(
        queryset=_drivers(),
        required=False,
        allow_null=True,
    )
    location = LocationSerializer(required=False, allow_null=True)
    metadata = serializers.JSONField(required=False, allow_null=True)
    form_template = serializers.UUIDField(required=False, allow_null=True)
    requirement_template = serializers.UUIDField(required=False, allow_null=True)


class PackageUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Package.Status.choices, required=False)
    driver = serializers.PrimaryKeyRelatedField(
        queryset=_drivers(),
        required=False,
        allow_null=True,
    )
    location = LocationSerializer(required=False, allow_null=True)
    metadata = serializers.JSONField(required=False, allow_null=True)


class ScanSerializer(serializers.Serializer):
    barcode = serializers.CharField(min_length=1, max_length=64)
    stage = serializers.ChoiceField(choices=DeliveryEvent.Type.choices)
    gps = LocationSerializer(required=False, allow_null=True)
    device_info = serializers.JSONField(required=False, allow_null=True)


class DeliveryEventSerializer(serializers.ModelSerializer):
    location = serializers.SerializerMethodField()

    class Meta:
        model = DeliveryEvent
        fields = [
            "id",
            "package",
            "type",
            "source",
            "actor",
            "location",
            "payload",
            "timestamp",
        ]
        read_only_fields = fields

    def get_location(self, obj: DeliveryEvent) -> dict | None:
        if obj.location_lat is None or obj.location_lng is None:
            return None
        return {"lat": obj.location_lat, "lng": obj.location_lng}
