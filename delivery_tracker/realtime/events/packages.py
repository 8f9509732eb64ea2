from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING
from typing import Any

from delivery_tracker.realtime.apps import publish_event
from delivery_tracker.realtime.dispatcher import DomainEvent
from delivery_tracker.realtime.dispatcher import EventType

if TYPE_CHECKING:  # import for type checking only
    from delivery_tracker.packages.models import Package


def package_event(
    event_type: EventType,
    package: Package,
    payload: dict[str, Any] | None = None,
) -> DomainEvent:
    return DomainEvent(
        type=event_type,
        package_id=package.pk,
        driver_id=package.driver_id,
        payload=payload or {},
    )


def created_events(package: Package) -> list[DomainEvent]:
    return [
        package_event(
            EventType.PACKAGE_CREATED,
            package,
            {"status": package.status, "barcode": package.barcode},
        ),
    ]


def updated_events(package: Package) -> list[DomainEvent]:
    return [package_event(EventType.PACKAGE_UPDATED, package, {"status": package.status})]


def deleted_events(package: Package) -> list[DomainEvent]:
    """Build before the row is deleted; the primary key is gone afterwards."""
    return [package_event(EventType.PACKAGE_DELETED, package, {"barcode": package.barcode})]


def scan_events(
    package: Package,
    *,
    stage: str,
    gps: dict | None,
    status_changed: bool,
) -> list[DomainEvent]:
    events = [package_event(EventType.SCAN_APPLIED, package, {"stage": stage})]
    if gps:
        events.append(package_event(EventType.LOCATION_CHANGED, package, {"gps": gps}))
    if status_changed:
        events.append(
            package_event(EventType.STATUS_UPDATED, package, {"status": package.status}),
        )
        if package.status == package.Status.DELIVERED:
            events.append(package_event(EventType.DELIVERY_COMPLETED, package))
    return events


def publish_events(events: Iterable[DomainEvent]) -> None:
    """Publish in order; meant to run from ``transaction.on_commit``."""
    for event in events:
        publish_event(event)
