"""Socket.IO gateway for the ``/rt`` namespace.

One ``RealtimeGateway`` is built by the ASGI bootstrap and owns everything
the channel needs: the ``socketio.AsyncServer``, the room registry, the
handshake authenticator, the broadcast backend and one outbox per
connection. Nothing here is module-global, so tests can run several
gateways side by side.

Frontend convention:
- Socket.IO path: /socket.io/ on the API host
- Namespace: /rt
- Auth: ``access_token`` cookie (``query.token`` / ``auth.token`` for scripts)

Client -> server: ``join:package`` (id or ``{packageId}``), ``client:ping``.
Server -> client: ``hello``, ``server:pong``, and the package event types.

A refused handshake is not an ``error`` event: Socket.IO clients receive
``connect_error`` whose ``message`` is the reason code (``unauthorized``,
``jwt_expired`` or ``server_error``) and the connection is never opened.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any

import socketio
from asgiref.sync import sync_to_async
from django.conf import settings
from redis.exceptions import RedisError
from socketio import exceptions as sio_exceptions

from .auth import AuthenticationRejected
from .auth import ConnectionAuthenticator
from .auth import RealtimeIdentity
from .backends import BackendUnavailable
from .backends import BroadcastBackend
from .backends import FanoutMessage
from .backends import LocalBroadcastBackend
from .backends import get_backend
from .dispatcher import EventDispatcher
from .presence import mark_offline
from .presence import mark_online
from .registry import RoomRegistry
from .rooms import auto_rooms
from .rooms import room_for_package

logger = logging.getLogger(__name__)

HELLO_MESSAGE = "Hello from the delivery tracker"


class Outbox:
    """Per-connection FIFO drained by a single writer task.

    Reliable events are always queued. Best-effort events are refused once
    ``limit`` events are already waiting.
    """

    def __init__(self, sio: socketio.AsyncServer, sid: str, *, namespace: str, limit: int):
        self.sio = sio
        self.sid = sid
        self.namespace = namespace
        self.limit = limit
        self._queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue()
        self._writer = asyncio.get_running_loop().create_task(
            self._drain(),
            name=f"realtime-outbox-{sid}",
        )

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def push(self, event: str, data: Any, *, reliable: bool = True) -> bool:
        if not reliable and self._queue.qsize() >= self.limit:
            return False
        self._queue.put_nowait((event, data))
        return True

    async def _drain(self) -> None:
        while True:
            event, data = await self._queue.get()
            try:
                await self.sio.emit(event, data, to=self.sid, namespace=self.namespace)
            except Exception:
                logger.exception("Failed to emit %s to %s", event, self.sid)
            finally:
                self._queue.task_done()

    async def flush(self) -> None:
        """Wait until everything queued so far has been handed to the transport."""
        await self._queue.join()

    async def close(self) -> None:
        self._writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._writer


@dataclass
class Connection:
    sid: str
    identity: RealtimeIdentity
    outbox: Outbox


class RealtimeGateway:
    def __init__(  # noqa: PLR0913
        self,
        *,
        authenticator: ConnectionAuthenticator | None = None,
        backend: BroadcastBackend | None = None,
        registry: RoomRegistry | None = None,
        namespace: str | None = None,
        outbox_limit: int | None = None,
        node_id: str | None = None,
    ):
        self.namespace = namespace or settings.REALTIME_NAMESPACE
        self.authenticator = authenticator or ConnectionAuthenticator()
        self.backend = backend if backend is not None else get_backend()
        self.registry = registry if registry is not None else RoomRegistry()
        self.outbox_limit = (
            outbox_limit if outbox_limit is not None else settings.REALTIME_OUTBOX_LIMIT
        )
        self.node_id = node_id or uuid.uuid4().hex
        self.sio = socketio.AsyncServer(
            async_mode="asgi",
            cors_allowed_origins=settings.CORS_ALLOWED_ORIGINS,
            cors_credentials=True,
            ping_interval=settings.REALTIME_PING_INTERVAL,
            ping_timeout=settings.REALTIME_PING_TIMEOUT,
            max_http_buffer_size=settings.REALTIME_MAX_HTTP_BUFFER_SIZE,
            logger=False,
            engineio_logger=False,
        )
        self.dispatcher = EventDispatcher(self)
        self._connections: dict[str, Connection] = {}

        self.sio.on("connect", self.on_connect, namespace=self.namespace)
        self.sio.on("disconnect", self.on_disconnect, namespace=self.namespace)
        self.sio.on("join:package", self.on_join_package, namespace=self.namespace)
        self.sio.on("client:ping", self.on_client_ping, namespace=self.namespace)

    # -- lifecycle ------------------------------------------------------------

    async def start(self) -> None:
        try:
            await self.backend.start(self._on_backend_message)
        except BackendUnavailable as exc:
            logger.warning(
                "Realtime backend %s unavailable (%s); delivering within this process only",
                self.backend.name,
                exc,
            )
            self.backend = LocalBroadcastBackend()
            await self.backend.start(self._on_backend_message)

    async def stop(self) -> None:
        for connection in list(self._connections.values()):
            await connection.outbox.close()
        self._connections.clear()
        await self.backend.stop()

    # -- handlers -------------------------------------------------------------

    async def on_connect(self, sid: str, environ: dict[str, Any], auth: Any = None):
        try:
            identity = await self.authenticator.authenticate(environ, auth)
        except AuthenticationRejected as exc:
            logger.warning("Refused realtime connection %s: %s", sid, exc.reason)
            raise sio_exceptions.ConnectionRefusedError(exc.reason) from exc

        outbox = Outbox(self.sio, sid, namespace=self.namespace, limit=self.outbox_limit)
        self._connections[sid] = Connection(sid=sid, identity=identity, outbox=outbox)
        for room in auto_rooms(identity.user_id, identity.role):
            self.registry.join(sid, room)
        await self._touch_presence(identity)
        outbox.push("hello", {"message": HELLO_MESSAGE})
        logger.info(
            "Realtime connection %s admitted for user %s (%s)",
            sid,
            identity.user_id,
            identity.role,
        )

    async def on_disconnect(self, sid: str, reason: Any = None):
        self.registry.drop_connection(sid)
        connection = self._connections.pop(sid, None)
        if connection is None:
            return
        await connection.outbox.close()
        user_id = connection.identity.user_id
        if not any(c.identity.user_id == user_id for c in self._connections.values()):
            await self._clear_presence(user_id)
        logger.debug("Realtime connection %s closed (%s)", sid, reason)

    async def on_join_package(self, sid: str, data: Any = None):
        if sid not in self._connections:
            return
        package_id = data.get("packageId") if isinstance(data, dict) else data
        if not isinstance(package_id, str | int) or isinstance(package_id, bool):
            return
        package_id = str(package_id).strip()
        if not package_id:
            return
        self.registry.join(sid, room_for_package(package_id))

    async def on_client_ping(self, sid: str, data: Any = None):
        connection = self._connections.get(sid)
        if connection is None:
            return
        await self._touch_presence(connection.identity)
        connection.outbox.push("server:pong", {"timestamp": int(time.time() * 1000)})

    # -- delivery -------------------------------------------------------------

    def deliver(self, message: FanoutMessage) -> int:
        """Queue ``message`` for every local member of its rooms.

        Returns how many connections accepted it.
        """
        delivered = 0
        for sid in self.registry.members_of_any(message.rooms):
            connection = self._connections.get(sid)
            if connection is None:
                continue
            if connection.outbox.push(message.event, message.data, reliable=message.reliable):
                delivered += 1
            else:
                logger.debug("Dropped best-effort %s for %s", message.event, sid)
        return delivered

    def _on_backend_message(self, message: FanoutMessage) -> None:
        if message.origin == self.node_id:
            return
        self.deliver(message)

    def connection(self, sid: str) -> Connection | None:
        return self._connections.get(sid)

    # -- presence -------------------------------------------------------------

    async def _touch_presence(self, identity: RealtimeIdentity) -> None:
        try:
            await sync_to_async(mark_online, thread_sensitive=False)(identity.user_id)
        except (RedisError, OSError) as exc:
            logger.warning("Could not record presence for %s: %s", identity.user_id, exc)

    async def _clear_presence(self, user_id: str) -> None:
        try:
            await sync_to_async(mark_offline, thread_sensitive=False)(user_id)
        except (RedisError, OSError) as exc:
            logger.warning("Could not clear presence for %s: %s", user_id, exc)
