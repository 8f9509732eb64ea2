import uuid

from django.conf import settings
from django.db import models


class Package(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        PICKED_UP = "picked_up", "Picked up"
        IN_TRANSIT = "in_transit", "In transit"
        DELIVERED = "delivered", "Delivered"
        FAILED = "failed", "Failed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    barcode = models.CharField(max_length=64, unique=True)
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )
    recipient_name = models.CharField(max_length=200)
    recipient_phone = models.CharField(max_length=40, blank=True)
    recipient_email = models.EmailField(blank=True)
    recipient_address = models.TextField()
    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_packages",
    )
    location_lat = models.FloatField(null=True, blank=True)
    location_lng = models.FloatField(null=True, blank=True)
    # Normalized output of the form template's validator, when one was chosen.
    metadata = models.JSONField(null=True, blank=True)
    form_template = models.ForeignKey(
        "forms.FormTemplate",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="packages",
    )
    delivered_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.barcode} ({self.status})"

    @property
    def location(self) -> dict | None:
        if self.location_lat is None or self.location_lng is None:
            return None
        return {"lat": self.location_lat, "lng": self.location_lng}


class DeliveryEvent(models.Model):
    """Append-only history of scans and status changes for a package."""

    class Type(models.TextChoices):
        PACKAGE_SCANNED = "package_scanned", "Package scanned"
        STATUS_UPDATED = "status_updated", "Status updated"
        DELIVERY_COMPLETED = "delivery_completed", "Delivery completed"

    class Source(models.TextChoices):
        SCANNER = "scanner", "Scanner"
        MANUAL = "manual", "Manual"
        SYSTEM = "system", "System"

    package = models.ForeignKey(
        Package,
        on_delete=models.CASCADE,
        related_name="events",
    )
    type = models.CharField(max_length=32, choices=Type.choices)
    source = models.CharField(max_length=16, choices=Source.choices, default=Source.SCANNER)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    location_lat = models.FloatField(null=True, blank=True)
    location_lng = models.FloatField(null=True, blank=True)
    payload = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-timestamp", "-id"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.package_id}: {self.type}"
