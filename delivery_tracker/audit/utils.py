from __future__ import annotations

from typing import Any

from django.contrib.auth import get_user_model
from django.db import models

from .models import AuditLog


def describe_target(target: models.Model | None) -> tuple[str, str]:
    """Return the ``(app_label.Model, pk)`` pair stored for ``target``."""
    if target is None:
        return "", ""
    return target._meta.label, "" if target.pk is None else str(target.pk)


def log_action(  # noqa: PLR0913
    action: str,
    *,
    actor: Any = None,
    target: models.Model | None = None,
    message: str = "",
    model_name: str = "",
    record_id: Any = None,
    before: dict | list | None = None,
    after: dict | list | None = None,
) -> AuditLog:
    """Record an audit entry.

    ``target`` fills ``model_name`` and ``record_id`` from a model instance;
    explicit values win. Anonymous or non-user actors are stored as system.
    """
    target_label, target_pk = describe_target(target)
    if not model_name:
        model_name = target_label
    if record_id is None:
        record_id = target_pk

    actor_user = actor if isinstance(actor, get_user_model()) else None
    actor_role = ""
    if actor_user is not None:
        actor_role = "admin" if actor_user.is_superuser else actor_user.role
    return AuditLog.objects.create(
        action=action,
        actor=actor_user,
        actor_role=actor_role,
        message=message,
        model_name=model_name,
        record_id="" if record_id is None else str(record_id),
        before=before,
        after=after,
    )
