from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.apps import AppConfig
from django.apps import apps

if TYPE_CHECKING:
    from .dispatcher import DomainEvent
    from .dispatcher import EventDispatcher
    from .socketio import RealtimeGateway

logger = logging.getLogger(__name__)


class RealtimeConfig(AppConfig):
    """Holds the gateway built by the ASGI bootstrap.

    WSGI workers and management commands never attach one; publishing is then
    a logged no-op.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "delivery_tracker.realtime"
    gateway: RealtimeGateway | None = None

    def attach(self, gateway: RealtimeGateway | None) -> None:
        self.gateway = gateway

    @property
    def dispatcher(self) -> EventDispatcher | None:
        return self.gateway.dispatcher if self.gateway is not None else None


def publish_event(event: DomainEvent) -> None:
    """Publish ``event`` from synchronous code through the attached gateway."""
    dispatcher = apps.get_app_config("realtime").dispatcher
    if dispatcher is None:
        logger.debug("No realtime gateway attached; %s not published", event.type)
        return
    dispatcher.publish_sync(event)
