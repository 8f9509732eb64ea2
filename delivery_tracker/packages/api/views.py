from __future__ import annotations

import logging
import uuid

from django.db.models import Q
from django.utils.dateparse import parse_datetime
from drf_spectacular.utils import OpenApiParameter
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import status
from rest_framework import viewsets
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from delivery_tracker.packages import services
from delivery_tracker.packages.api.serializers import DeliveryEventSerializer
from delivery_tracker.packages.api.serializers import PackageCreateSerializer
from delivery_tracker.packages.api.serializers import PackageSerializer
from delivery_tracker.packages.api.serializers import PackageUpdateSerializer
from delivery_tracker.packages.api.serializers import ScanSerializer
from delivery_tracker.packages.models import DeliveryEvent
from delivery_tracker.packages.models import Package
from delivery_tracker.users.api.permissions import HasRole
from delivery_tracker.users.api.permissions import IsDriverOrAbove
from delivery_tracker.users.api.permissions import ReadViewerWriteRole
from delivery_tracker.users.models import User

logger = logging.getLogger(__name__)


def _error_response(exc: services.PackageError) -> Response:
    if isinstance(exc, services.MetadataValidationError):
        return Response(
            {"error": "invalid_metadata", "fields": exc.errors},
            status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )
    if isinstance(exc, services.DuplicateBarcode):
        return Response(
            {"error": "conflict", "field": "barcode"},
            status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, services.InvalidItemTemplate):
        return Response(
            {"error": "invalid_item_template"},
            status=status.HTTP_400_BAD_REQUEST,
        )
    if isinstance(exc, services.InvalidRequirementTemplate):
        return Response(
            {"error": "invalid_template"},
            status=status.HTTP_400_BAD_REQUEST,
        )
    if isinstance(exc, services.PackageNotFound):
        return Response(
            {"error": "package_not_found"},
            status=status.HTTP_404_NOT_FOUND,
        )
    raise exc


@extend_schema_view(
    list=extend_schema(
        summary="List packages",
        parameters=[
            OpenApiParameter("status", str),
            OpenApiParameter("driver", int),
            OpenApiParameter("q", str, description="Barcode or recipient name"),
        ],
    ),
    retrieve=extend_schema(summary="Get a package"),
    create=extend_schema(
        summary="Create a package",
        request=PackageCreateSerializer,
        responses={201: PackageSerializer},
    ),
    update=extend_schema(summary="Update a package", request=PackageUpdateSerializer),
    partial_update=extend_schema(
        summary="Update a package",
        request=PackageUpdateSerializer,
    ),
    destroy=extend_schema(summary="Delete a package"),
)
class PackageViewSet(viewsets.ModelViewSet):
    queryset = Package.objects.select_related("driver", "form_template", "checklist")
    serializer_class = PackageSerializer
    permission_classes = [ReadViewerWriteRole]
    throttle_scope = "package_create"

    def get_throttles(self):
        if self.action == "create":
            return [ScopedRateThrottle()]
        return super().get_throttles()

    def get_queryset(self):
        qs = super().get_queryset()
        params = self.request.query_params
        wanted = params.get("status")
        if wanted:
            if wanted not in Package.Status.values:
                raise ValidationError({"status": f"Unknown status {wanted!r}."})
            qs = qs.filter(status=wanted)
        driver = params.get("driver")
        if driver:
            if not driver.isdigit():
                raise ValidationError({"driver": "Must be a user id."})
            qs = qs.filter(driver_id=int(driver))
        term = (params.get("q") or "").strip()
        if term:
            qs = qs.filter(Q(barcode__icontains=term) | Q(recipient_name__icontains=term))
        return qs

    def create(self, request, *args, **kwargs):
        serializer = PackageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        try:
            package = services.create_package(
                actor=request.user,
                form_template_id=data.pop("form_template", None),
                requirement_template_id=data.pop("requirement_template", None),
                **data,
            )
        except services.PackageError as exc:
            return _error_response(exc)
        return Response(PackageSerializer(package).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        package = self.get_object()
        serializer = PackageUpdateSerializer(
            data=request.data,
            partial=kwargs.get("partial", False),
        )
        serializer.is_valid(raise_exception=True)
        try:
            package = services.update_package(
                package,
                actor=request.user,
                changes=dict(serializer.validated_data),
            )
        except services.PackageError as exc:
            return _error_response(exc)
        return Response(PackageSerializer(package).data)

    def perform_destroy(self, instance):
        services.delete_package(instance, actor=self.request.user)


@extend_schema(
    tags=["Scans"],
    request=ScanSerializer,
    responses={200: PackageSerializer},
)
class ScanView(APIView):
    permission_classes = [IsDriverOrAbove]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "scan"

    def post(self, request):
        serializer = ScanSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            outcome = services.apply_scan(actor=request.user, **serializer.validated_data)
        except services.PackageError as exc:
            return _error_response(exc)
        return Response(PackageSerializer(outcome.package).data)


@extend_schema(
    tags=["Scans"],
    parameters=[
        OpenApiParameter("package", str, required=True),
        OpenApiParameter("from", str, description="ISO-8601 lower bound"),
        OpenApiParameter("to", str, description="ISO-8601 upper bound"),
    ],
    responses={200: DeliveryEventSerializer(many=True)},
)
class ScanHistoryView(APIView):
    permission_classes = [HasRole(User.Role.VIEWER)]

    def get(self, request):
        params = request.query_params
        package_id = params.get("package")
        if not package_id:
            raise ValidationError({"package": "This query parameter is required."})
        try:
            package_id = uuid.UUID(package_id)
        except ValueError as exc:
            raise ValidationError({"package": "Must be a valid UUID."}) from exc
        qs = DeliveryEvent.objects.filter(package_id=package_id)
        for param, lookup in (("from", "timestamp__gte"), ("to", "timestamp__lte")):
            raw = params.get(param)
            if not raw:
                continue
            try:
                moment = parse_datetime(raw)
            except ValueError:
                moment = None
            if moment is None:
                raise ValidationError({param: "Enter a valid ISO-8601 datetime."})
            qs = qs.filter(**{lookup: moment})
        data = DeliveryEventSerializer(qs, many=True).data
        return Response({"items": data})
