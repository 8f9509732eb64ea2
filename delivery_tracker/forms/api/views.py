from __future__ import annotations

import logging

from django.utils import timezone
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import status
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import SAFE_METHODS
from rest_framework.response import Response

from delivery_tracker.audit.utils import log_action
from delivery_tracker.forms.api.serializers import FormTemplateSerializer
from delivery_tracker.forms.models import FormTemplate
from delivery_tracker.forms.schema import SchemaError
from delivery_tracker.users.api.permissions import IsAdminRole
from delivery_tracker.users.api.permissions import IsManagerOrAbove

logger = logging.getLogger(__name__)


def _snapshot(template: FormTemplate) -> dict:
    return {
        "name": template.name,
        "status": template.status,
        "schema": template.schema,
    }


@extend_schema_view(
    list=extend_schema(summary="List form templates"),
    retrieve=extend_schema(summary="Get a form template"),
    create=extend_schema(summary="Create a draft template"),
    update=extend_schema(summary="Update a template"),
    partial_update=extend_schema(summary="Update a template"),
    destroy=extend_schema(summary="Archive a template", responses={204: None}),
)
class FormTemplateViewSet(viewsets.ModelViewSet):
    queryset = FormTemplate.objects.select_related("created_by")
    serializer_class = FormTemplateSerializer

    def get_permissions(self):
        # Managers read published templates to pick one when creating packages.
        if self.request.method in SAFE_METHODS:
            return [IsManagerOrAbove()]
        return [IsAdminRole()]

    def get_queryset(self):
        qs = super().get_queryset()
        wanted = self.request.query_params.get("status")
        if wanted:
            if wanted not in FormTemplate.Status.values:
                raise ValidationError({"status": f"Unknown status {wanted!r}."})
            qs = qs.filter(status=wanted)
        return qs

    def perform_create(self, serializer):
        obj = serializer.save(
            created_by=self.request.user,
            status=FormTemplate.Status.DRAFT,
        )
        log_action(
            "form_template_created",
            actor=self.request.user,
            target=obj,
            after=_snapshot(obj),
        )

    def perform_update(self, serializer):
        before = _snapshot(serializer.instance)
        obj = serializer.save()
        log_action(
            "form_template_updated",
            actor=self.request.user,
            target=obj,
            before=before,
            after=_snapshot(obj),
        )

    def destroy(self, request, *args, **kwargs):
        """Archive rather than delete; packages keep pointing at the template."""
        template = self.get_object()
        before = _snapshot(template)
        template.status = FormTemplate.Status.ARCHIVED
        template.save(update_fields=["status", "updated_at"])
        log_action(
            "form_template_archived",
            actor=request.user,
            target=template,
            before=before,
            after=_snapshot(template),
        )
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=None, responses=FormTemplateSerializer)
    @action(detail=True, methods=["post"])
    def publish(self, request, pk=None):
        template = self.get_object()
        if template.status == FormTemplate.Status.ARCHIVED:
            return Response(
                {"error": "invalid_transition", "detail": "Archived templates cannot be published."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            template.get_schema()
        except SchemaError as exc:
            return Response(
                {"error": "invalid_schema", "detail": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        before = _snapshot(template)
        if template.is_draft:
            template.status = FormTemplate.Status.PUBLISHED
            template.published_at = timezone.now()
            template.save(update_fields=["status", "published_at", "updated_at"])
            logger.info("Form template %s published", template.id)
        log_action(
            "form_template_published",
            actor=request.user,
            target=template,
            before=before,
            after=_snapshot(template),
        )
        return Response(self.get_serializer(template).data)
