from django.conf import settings
from django.db import models


class AuditLog(models.Model):
    """Who changed which package, template or user, with before/after snapshots."""

    action = models.CharField(max_length=100)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_entries",
    )
    # Role held when the action ran; users can be promoted later.
    actor_role = models.CharField(max_length=20, blank=True)
    message = models.TextField(blank=True)
    # App label form, e.g. ``packages.Package``.
    model_name = models.CharField(max_length=150, blank=True)
    # Packages and templates use UUID keys, users use integers.
    record_id = models.CharField(max_length=64, blank=True)
    before = models.JSONField(null=True, blank=True)
    after = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["model_name", "record_id"], name="audit_record_idx"),
            models.Index(fields=["action", "-created_at"], name="audit_action_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        who = self.actor_id or "system"
        target = f"{self.model_name}:{self.record_id}" if self.model_name else "-"
        return f"[{self.created_at:%Y-%m-%d %H:%M}] {who} {self.action} {target}"
