from __future__ import annotations

import uuid

from drf_spectacular.utils import OpenApiParameter
from drf_spectacular.utils import extend_schema
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from delivery_tracker.audit.api.serializers import AuditLogSerializer
from delivery_tracker.audit.models import AuditLog
from delivery_tracker.users.api.permissions import IsManagerOrAbove

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
# query param -> AuditLog field
FILTERS = (("model", "model_name"), ("record", "record_id"), ("action", "action"))


def _limit(request) -> int:
    try:
        limit = int(request.query_params.get("limit", DEFAULT_LIMIT))
    except (TypeError, ValueError):
        limit = DEFAULT_LIMIT
    return max(1, min(limit, MAX_LIMIT))


def _page(qs, limit: int) -> Response:
    rows = list(qs.select_related("actor")[:limit])
    data = AuditLogSerializer(rows, many=True).data
    return Response({"results": data, "limit": limit})


@extend_schema(
    summary="Recent audit entries",
    parameters=[
        OpenApiParameter("limit", int, description=f"1-{MAX_LIMIT}, default {DEFAULT_LIMIT}"),
        OpenApiParameter("model", str, description="e.g. packages.Package"),
        OpenApiParameter("record", str),
        OpenApiParameter("action", str),
    ],
    responses={200: AuditLogSerializer(many=True)},
)
class RecentAuditView(APIView):
    permission_classes = [IsManagerOrAbove]

    def get(self, request):
        params = request.query_params
        qs = AuditLog.objects.all()
        for param, field in FILTERS:
            value = params.get(param)
            if value:
                qs = qs.filter(**{field: value})
        return _page(qs, _limit(request))


@extend_schema(
    summary="Audit trail of one package",
    responses={200: AuditLogSerializer(many=True)},
)
class PackageAuditView(APIView):
    """Package history as recorded by the audit log, newest first.

    Entries survive deletion of the package itself.
    """

    permission_classes = [IsManagerOrAbove]

    def get(self, request, package_id: str):
        try:
            package_id = uuid.UUID(package_id)
        except ValueError as exc:
            raise ValidationError({"package": "Must be a valid UUID."}) from exc
        qs = AuditLog.objects.filter(model_name="packages.Package", record_id=str(package_id))
        return _page(qs, _limit(request))
