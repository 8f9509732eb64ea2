from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import status
from rest_framework import viewsets
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from delivery_tracker.audit.utils import log_action
from delivery_tracker.requirements.api.serializers import RequirementTemplateSerializer
from delivery_tracker.requirements.models import RequirementTemplate
from delivery_tracker.users.api.permissions import IsAdminRole

BOOLEAN_PARAMS = {"true": True, "1": True, "false": False, "0": False}


def _snapshot(template: RequirementTemplate) -> dict:
    return {"name": template.name, "active": template.active, "rules": template.rules}


@extend_schema_view(
    list=extend_schema(
        summary="List requirement templates",
        parameters=[OpenApiParameter("active", bool)],
    ),
    retrieve=extend_schema(summary="Get a requirement template"),
    create=extend_schema(summary="Create a requirement template"),
    update=extend_schema(summary="Update a requirement template"),
    partial_update=extend_schema(summary="Update a requirement template"),
    destroy=extend_schema(summary="Deactivate a requirement template", responses={204: None}),
)
class RequirementTemplateViewSet(viewsets.ModelViewSet):
    queryset = RequirementTemplate.objects.select_related("created_by")
    serializer_class = RequirementTemplateSerializer
    permission_classes = [IsAdminRole]

    def get_queryset(self):
        qs = super().get_queryset()
        raw = self.request.query_params.get("active")
        if raw is not None:
            if raw.lower() not in BOOLEAN_PARAMS:
                raise ValidationError({"active": "Must be true or false."})
            qs = qs.filter(active=BOOLEAN_PARAMS[raw.lower()])
        return qs

    def update(self, request, *args, **kwargs):
        # Every field is optional on update; omitted rules stay as they are.
        kwargs["partial"] = True
        return super().update(request, *args, **kwargs)

    def perform_create(self, serializer):
        obj = serializer.save(created_by=self.request.user)
        log_action(
            "requirement_template_created",
            actor=self.request.user,
            target=obj,
            after=_snapshot(obj),
        )

    def perform_update(self, serializer):
        before = _snapshot(serializer.instance)
        obj = serializer.save()
        log_action(
            "requirement_template_updated",
            actor=self.request.user,
            target=obj,
            before=before,
            after=_snapshot(obj),
        )

    def destroy(self, request, *args, **kwargs):
        template = self.get_object()
        before = _snapshot(template)
        template.active = False
        template.save(update_fields=["active", "updated_at"])
        log_action(
            "requirement_template_deleted",
            actor=request.user,
            target=template,
            before=before,
            after=_snapshot(template),
        )
        return Response(status=status.HTTP_204_NO_CONTENT)
