import uuid

from django.conf import settings
from django.db import models

from .rules import parse_rules
from .rules import rules_hash


class RequirementTemplate(models.Model):
    """Reusable delivery rules. Deleting one only deactivates it."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    rules = models.JSONField(default=dict)
    active = models.BooleanField(default=True, db_index=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="requirement_templates",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.name if self.active else f"{self.name} (inactive)"

    def get_rules(self) -> dict:
        return parse_rules(self.rules)


class PackageChecklist(models.Model):
    package = models.OneToOneField(
        "packages.Package",
        on_delete=models.CASCADE,
        related_name="checklist",
    )
    template = models.ForeignKey(
        RequirementTemplate,
        on_delete=models.PROTECT,
        related_name="checklists",
    )
    # sha256 of the normalized rules the package was created under.
    rules_hash = models.CharField(max_length=64)
    progress = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.package_id} / {self.template_id}"

    @classmethod
    def start(cls, package, template: RequirementTemplate, rules: dict):
        return cls.objects.create(
            package=package,
            template=template,
            rules_hash=rules_hash(rules),
            progress={},
        )
