import uuid

from django.conf import settings
from django.db import models

from .schema import FormSchema
from .schema import parse_schema
from .validator import Validator
from .validator import compile_schema


def empty_schema() -> dict:
    return {"version": 1, "fields": []}


class FormTemplate(models.Model):
    """A named form schema moving draft -> published -> archived.

    Only published templates may be chosen for new packages, and the schema
    is frozen once the template leaves draft.
    """

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        PUBLISHED = "published", "Published"
        ARCHIVED = "archived", "Archived"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
    )
    schema = models.JSONField(default=empty_schema)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="form_templates",
    )
    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.name} ({self.status})"

    @property
    def is_draft(self) -> bool:
        return self.status == self.Status.DRAFT

    @property
    def is_published(self) -> bool:
        return self.status == self.Status.PUBLISHED

    def get_schema(self) -> FormSchema:
        return parse_schema(self.schema)

    def get_validator(self) -> Validator:
        return compile_schema(self.get_schema())
