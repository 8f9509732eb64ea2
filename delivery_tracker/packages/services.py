"""Package write paths.

Each write runs in one transaction and schedules its realtime events with
``transaction.on_commit`` so subscribers never hear about rolled-back rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field
from functools import partial
from typing import TYPE_CHECKING
from typing import Any

from django.db import IntegrityError
from django.db import transaction
from django.utils import timezone

from delivery_tracker.audit.utils import log_action
from delivery_tracker.forms.models import FormTemplate
from delivery_tracker.forms.schema import SchemaError
from delivery_tracker.packages.models import DeliveryEvent
from delivery_tracker.packages.models import Package
from delivery_tracker.realtime.events import packages as package_events
from delivery_tracker.requirements.models import PackageChecklist
from delivery_tracker.requirements.models import RequirementTemplate
from delivery_tracker.requirements.rules import RulesError

if TYPE_CHECKING:
    from delivery_tracker.realtime.dispatcher import DomainEvent

logger = logging.getLogger(__name__)

# Scan stage -> status the package moves to. ``status_updated`` only records.
STAGE_STATUS = {
    DeliveryEvent.Type.PACKAGE_SCANNED: Package.Status.IN_TRANSIT,
    DeliveryEvent.Type.DELIVERY_COMPLETED: Package.Status.DELIVERED,
    DeliveryEvent.Type.STATUS_UPDATED: None,
}


class PackageError(Exception):
    """Base class for package write failures mapped to API responses."""


class DuplicateBarcode(PackageError):
    pass


class InvalidItemTemplate(PackageError):
    pass


class InvalidRequirementTemplate(PackageError):
    pass


class PackageNotFound(PackageError):
    pass


class MetadataValidationError(PackageError):
    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        super().__init__("invalid_metadata")


@dataclass
class ScanOutcome:
    package: Package
    event: DeliveryEvent
    status_changed: bool
    domain_events: list[DomainEvent] = field(default_factory=list)


def _schedule(events: list[DomainEvent]) -> None:
    transaction.on_commit(partial(package_events.publish_events, events))


def _snapshot(package: Package) -> dict[str, Any]:
    return {
        "id": str(package.pk),
        "barcode": package.barcode,
        "status": package.status,
        "driver": package.driver_id,
    }


def validate_metadata(template: FormTemplate | None, metadata: Any) -> Any:
    """Check ``metadata`` against a published template and return it normalized.

    Without a template the metadata is stored as given.
    """
    if template is None:
        return metadata
    if not template.is_published:
        raise InvalidItemTemplate(str(template.pk))
    return _validate_against(template, metadata)


def _validate_against(template: FormTemplate, metadata: Any) -> Any:
    try:
        validator = template.get_validator()
    except SchemaError as exc:
        logger.error("Form template %s has an invalid schema: %s", template.pk, exc)
        raise InvalidItemTemplate(str(template.pk)) from exc
    result = validator.validate({} if metadata is None else metadata)
    if not result.ok:
        raise MetadataValidationError(result.errors)
    return result.data


def resolve_template(template_id) -> FormTemplate | None:
    if template_id is None:
        return None
    try:
        return FormTemplate.objects.get(pk=template_id)
    except FormTemplate.DoesNotExist as exc:
        raise InvalidItemTemplate(str(template_id)) from exc


def resolve_requirements(template_id) -> tuple[RequirementTemplate, dict] | None:
    """Return an active requirement template and its normalized rules."""
    if template_id is None:
        return None
    template = RequirementTemplate.objects.filter(pk=template_id, active=True).first()
    if template is None:
        raise InvalidRequirementTemplate(str(template_id))
    try:
        rules = template.get_rules()
    except RulesError as exc:
        logger.error("Requirement template %s has invalid rules: %s", template.pk, exc)
        raise InvalidRequirementTemplate(str(template_id)) from exc
    return template, rules


@transaction.atomic
def create_package(  # noqa: PLR0913
    *,
    actor,
    barcode: str,
    recipient: dict[str, str],
    status: str = Package.Status.PENDING,
    driver=None,
    location: dict[str, float] | None = None,
    metadata: Any = None,
    form_template_id=None,
    requirement_template_id=None,
) -> Package:
    if Package.objects.filter(barcode=barcode).exists():
        raise DuplicateBarcode(barcode)
    requirements = resolve_requirements(requirement_template_id)
    template = resolve_template(form_template_id)
    validated = validate_metadata(template, metadata)

    try:
        with transaction.atomic():
            package = Package.objects.create(
                barcode=barcode,
                status=status,
                recipient_name=recipient["name"],
                recipient_phone=recipient.get("phone") or "",
                recipient_email=recipient.get("email") or "",
                recipient_address=recipient["address"],
                driver=driver,
                location_lat=location["lat"] if location else None,
                location_lng=location["lng"] if location else None,
                metadata=validated,
                form_template=template,
                delivered_at=timezone.now() if status == Package.Status.DELIVERED else None,
            )
    except IntegrityError as exc:
        # Lost a race with a concurrent create of the same barcode.
        raise DuplicateBarcode(barcode) from exc
    if requirements is not None:
        PackageChecklist.start(package, *requirements)

    log_action(
        "package_created",
        actor=actor,
        target=package,
        after=_snapshot(package),
    )
    _schedule(package_events.created_events(package))
    return package


@transaction.atomic
def update_package(package: Package, *, actor, changes: dict[str, Any]) -> Package:
    """Apply a partial update.

    Metadata changes are checked against the package's own template, which
    stays authoritative even after it is archived.
    """
    before = _snapshot(package)
    if "metadata" in changes and package.form_template_id is not None:
        changes["metadata"] = _validate_against(package.form_template, changes["metadata"])

    for name in ("status", "driver", "metadata"):
        if name in changes:
            setattr(package, name, changes[name])
    if "location" in changes:
        location = changes["location"]
        package.location_lat = location["lat"] if location else None
        package.location_lng = location["lng"] if location else None
    if package.status == Package.Status.DELIVERED and package.delivered_at is None:
        package.delivered_at = timezone.now()
    package.save()

    log_action(
        "package_updated",
        actor=actor,
        target=package,
        before=before,
        after=_snapshot(package),
    )
    _schedule(package_events.updated_events(package))
    return package


@transaction.atomic
def delete_package(package: Package, *, actor) -> None:
    events = package_events.deleted_events(package)
    log_action(
        "package_deleted",
        actor=actor,
        target=package,
        before=_snapshot(package),
    )
    package.delete()
    _schedule(events)


@transaction.atomic
def apply_scan(
    *,
    actor,
    barcode: str,
    stage: str,
    gps: dict[str, float] | None = None,
    device_info: Any = None,
) -> ScanOutcome:
    try:
        package = Package.objects.select_for_update().get(barcode=barcode)
    except Package.DoesNotExist as exc:
        raise PackageNotFound(barcode) from exc

    new_status = STAGE_STATUS.get(stage)
    status_changed = new_status is not None and new_status != package.status
    previous_status = package.status
    if new_status is not None:
        package.status = new_status
        if new_status == Package.Status.DELIVERED and package.delivered_at is None:
            package.delivered_at = timezone.now()
    if gps:
        package.location_lat = gps["lat"]
        package.location_lng = gps["lng"]
    package.save()

    event = DeliveryEvent.objects.create(
        package=package,
        type=stage,
        source=DeliveryEvent.Source.SCANNER,
        actor=actor if getattr(actor, "is_authenticated", False) else None,
        location_lat=gps["lat"] if gps else None,
        location_lng=gps["lng"] if gps else None,
        payload={"deviceInfo": device_info} if device_info is not None else {},
    )
    log_action(
        stage,
        actor=actor,
        target=package,
        before={"status": previous_status},
        after={"status": package.status},
    )

    domain_events = package_events.scan_events(
        package,
        stage=stage,
        gps=gps,
        status_changed=status_changed,
    )
    _schedule(domain_events)
    return ScanOutcome(
        package=package,
        event=event,
        status_changed=status_changed,
        domain_events=domain_events,
    )
