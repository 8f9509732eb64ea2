"""Package domain events and how they reach subscribers.

Every event goes to ``package:<id>`` and ``admin``, plus ``driver:<id>`` when
the package has a driver. How hard delivery tries is a property of the event
type, looked up once in ``DELIVERY_CLASSES``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from datetime import UTC
from datetime import datetime
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING
from typing import Any

from asgiref.sync import async_to_sync
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

from .backends import FanoutMessage
from .rooms import ADMIN_ROOM
from .rooms import room_for_driver
from .rooms import room_for_package

if TYPE_CHECKING:
    from .socketio import RealtimeGateway

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    PACKAGE_CREATED = "package.created"
    PACKAGE_UPDATED = "package.updated"
    PACKAGE_DELETED = "package.deleted"
    SCAN_APPLIED = "scan.applied"
    STATUS_UPDATED = "status.updated"
    LOCATION_CHANGED = "location.changed"
    DELIVERY_COMPLETED = "delivery.completed"


class Delivery(StrEnum):
    RELIABLE = "reliable"
    # May be dropped when a connection is backed up; the next update supersedes it.
    BEST_EFFORT = "best_effort"


DELIVERY_CLASSES: Mapping[EventType, Delivery] = MappingProxyType(
    {
        EventType.PACKAGE_CREATED: Delivery.RELIABLE,
        EventType.PACKAGE_UPDATED: Delivery.RELIABLE,
        EventType.PACKAGE_DELETED: Delivery.RELIABLE,
        EventType.DELIVERY_COMPLETED: Delivery.RELIABLE,
        EventType.SCAN_APPLIED: Delivery.BEST_EFFORT,
        EventType.STATUS_UPDATED: Delivery.BEST_EFFORT,
        EventType.LOCATION_CHANGED: Delivery.BEST_EFFORT,
    },
)


@dataclass(frozen=True)
class DomainEvent:
    type: EventType
    package_id: str | None
    driver_id: str | None = None
    payload: Mapping[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=timezone.now)

    def __post_init__(self):
        object.__setattr__(self, "type", EventType(self.type))
        if self.package_id is not None:
            object.__setattr__(self, "package_id", str(self.package_id))
        if self.driver_id is not None:
            object.__setattr__(self, "driver_id", str(self.driver_id))

    @property
    def delivery(self) -> Delivery:
        return DELIVERY_CLASSES[self.type]


def target_rooms(event: DomainEvent) -> tuple[str, ...]:
    rooms = [room_for_package(event.package_id), ADMIN_ROOM]
    if event.driver_id:
        rooms.append(room_for_driver(event.driver_id))
    return tuple(rooms)


def iso_timestamp(moment: datetime) -> str:
    """Millisecond UTC timestamp with a ``Z`` suffix."""
    return (
        moment.astimezone(UTC)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class EventDispatcher:
    """Publishes domain events through a gateway.

    Local members are served first; the broadcast backend then carries the
    same message to other processes. Backend trouble never reaches the caller.
    """

    def __init__(self, gateway: RealtimeGateway, *, clock=timezone.now):
        self.gateway = gateway
        self._clock = clock

    def build_message(self, event: DomainEvent) -> FanoutMessage:
        data = json.loads(json.dumps(dict(event.payload), cls=DjangoJSONEncoder))
        # Reserved keys always win over payload fields of the same name.
        data.update(
            {
                "eventType": str(event.type),
                "packageId": event.package_id,
                "ts": iso_timestamp(self._clock()),
            },
        )
        return FanoutMessage(
            event=str(event.type),
            rooms=target_rooms(event),
            data=data,
            reliable=event.delivery is Delivery.RELIABLE,
            origin=self.gateway.node_id,
        )

    async def publish(self, event: DomainEvent) -> FanoutMessage | None:
        if not event.package_id:
            logger.error("Dropping %s event without a package id", event.type)
            return None
        message = self.build_message(event)
        delivered = self.gateway.deliver(message)
        logger.debug(
            "Published %s for package %s to %d local connection(s)",
            message.event,
            event.package_id,
            delivered,
        )
        await self.gateway.backend.publish(message)
        return message

    def publish_sync(self, event: DomainEvent) -> FanoutMessage | None:
        """Publish from synchronous Django code."""
        return async_to_sync(self.publish)(event)
