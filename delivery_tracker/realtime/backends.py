"""
Broadcast backends - cross-process delivery of room-targeted messages.

LocalBroadcastBackend: single process, nothing leaves the process.
RedisBroadcastBackend: Redis pub/sub channel shared by every process.

Membership never travels over the backend. Each process publishes the
message with its target rooms and every other process hands it to its own
local members.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from abc import ABC
from abc import abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field
from typing import Any

import redis.asyncio as aioredis
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.core.serializers.json import DjangoJSONEncoder
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

MessageHandler = Callable[["FanoutMessage"], None]


class BackendUnavailable(Exception):
    """The broadcast backend could not be reached."""


@dataclass(frozen=True)
class FanoutMessage:
    event: str
    rooms: tuple[str, ...]
    data: dict[str, Any] = field(default_factory=dict)
    reliable: bool = True
    origin: str = ""

    def to_json(self) -> str:
        return json.dumps(
            {
                "event": self.event,
                "rooms": list(self.rooms),
                "data": self.data,
                "reliable": self.reliable,
                "origin": self.origin,
            },
            cls=DjangoJSONEncoder,
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> FanoutMessage:
        try:
            doc = json.loads(raw)
        except (TypeError, ValueError) as exc:
            msg = "fan-out message is not valid JSON"
            raise ValueError(msg) from exc
        if not isinstance(doc, dict):
            msg = "fan-out message must be an object"
            raise ValueError(msg)  # noqa: TRY004
        event, rooms, data = doc.get("event"), doc.get("rooms"), doc.get("data", {})
        if not isinstance(event, str) or not event:
            msg = "fan-out message has no event name"
            raise ValueError(msg)
        if not isinstance(rooms, list) or not all(isinstance(r, str) for r in rooms):
            msg = "fan-out message rooms must be a list of strings"
            raise ValueError(msg)
        if not isinstance(data, dict):
            msg = "fan-out message data must be an object"
            raise ValueError(msg)  # noqa: TRY004
        return cls(
            event=event,
            rooms=tuple(rooms),
            data=data,
            reliable=bool(doc.get("reliable", True)),
            origin=str(doc.get("origin") or ""),
        )


class BroadcastBackend(ABC):
    """Abstract base class for cross-process broadcast backends."""

    name = "abstract"

    @abstractmethod
    async def start(self, on_message: MessageHandler) -> None:
        """Begin receiving messages; raises ``BackendUnavailable`` on failure."""

    @abstractmethod
    async def publish(self, message: FanoutMessage) -> None:
        """Send to other processes. Must not raise for transport errors."""

    @abstractmethod
    async def stop(self) -> None:
        pass


class LocalBroadcastBackend(BroadcastBackend):
    """
    Single-process backend.

    The gateway already delivered to local members, so publishing has
    nowhere else to go.
    """

    name = "local"

    async def start(self, on_message: MessageHandler) -> None:
        logger.debug("Realtime fan-out limited to this process")

    async def publish(self, message: FanoutMessage) -> None:
        return None

    async def stop(self) -> None:
        return None


class RedisBroadcastBackend(BroadcastBackend):
    """
    Redis pub/sub backend for multi-process deployments.

    Publishing is bounded by ``timeout`` so a slow server never holds up the
    request that produced the event.
    """

    name = "redis"
    retry_delay = 1.0

    def __init__(self, url: str, *, channel: str, timeout: float = 2.0):
        self.url = url
        self.channel = channel
        self.timeout = timeout
        self._client: aioredis.Redis | None = None
        self._pubsub = None
        self._listener: asyncio.Task | None = None

    async def start(self, on_message: MessageHandler) -> None:
        client = aioredis.Redis.from_url(
            self.url,
            socket_connect_timeout=self.timeout,
            decode_responses=True,
        )
        try:
            await asyncio.wait_for(client.ping(), self.timeout)
            pubsub = client.pubsub(ignore_subscribe_messages=True)
            await asyncio.wait_for(pubsub.subscribe(self.channel), self.timeout)
        except (RedisError, OSError, TimeoutError) as exc:
            await client.aclose()
            raise BackendUnavailable(str(exc) or type(exc).__name__) from exc
        self._client = client
        self._pubsub = pubsub
        self._listener = asyncio.create_task(
            self._listen(on_message),
            name="realtime-fanout-listener",
        )
        logger.info("Realtime fan-out subscribed to %s", self.channel)

    async def _listen(self, on_message: MessageHandler) -> None:
        while True:
            try:
                async for raw in self._pubsub.listen():
                    if raw.get("type") != "message":
                        continue
                    try:
                        message = FanoutMessage.from_json(raw["data"])
                    except ValueError as exc:
                        logger.warning("Ignoring malformed fan-out message: %s", exc)
                        continue
                    on_message(message)
            except (RedisError, OSError) as exc:
                logger.warning(
                    "Fan-out listener lost its connection (%s); retrying",
                    exc,
                )
            await asyncio.sleep(self.retry_delay)

    async def publish(self, message: FanoutMessage) -> None:
        if self._client is None:
            return
        try:
            await asyncio.wait_for(
                self._client.publish(self.channel, message.to_json()),
                self.timeout,
            )
        except (RedisError, OSError, TimeoutError) as exc:
            logger.warning(
                "Fan-out publish of %s failed (%s); delivered on this process only",
                message.event,
                exc,
            )

    async def stop(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._listener
            self._listener = None
        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def get_backend() -> BroadcastBackend:
    """
    Get the configured broadcast backend.

    Uses REALTIME_BACKEND setting: 'local' or 'redis'
    """
    backend_type = getattr(settings, "REALTIME_BACKEND", "local")

    if backend_type == "redis":
        url = getattr(settings, "REDIS_URL", "")
        if not url:
            msg = "REDIS_URL setting required for the redis realtime backend"
            raise ImproperlyConfigured(msg)
        return RedisBroadcastBackend(
            url,
            channel=getattr(settings, "REALTIME_CHANNEL", "delivery_tracker:rt"),
            timeout=getattr(settings, "REALTIME_BACKEND_TIMEOUT", 2.0),
        )
    if backend_type != "local":
        msg = f"Unknown REALTIME_BACKEND {backend_type!r}"
        raise ImproperlyConfigured(msg)
    return LocalBroadcastBackend()
