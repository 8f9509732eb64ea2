from unittest import mock

import pytest
from asgiref.sync import async_to_sync
from rest_framework_simplejwt.exceptions import TokenError
from socketio import exceptions as sio_exceptions

from delivery_tracker.realtime.auth import ConnectionAuthenticator
from delivery_tracker.realtime.auth import RealtimeIdentity
from delivery_tracker.realtime.backends import BackendUnavailable
from delivery_tracker.realtime.backends import BroadcastBackend
from delivery_tracker.realtime.backends import FanoutMessage
from delivery_tracker.realtime.backends import LocalBroadcastBackend
from delivery_tracker.realtime.dispatcher import DomainEvent
from delivery_tracker.realtime.presence import is_online
from delivery_tracker.realtime.socketio import RealtimeGateway

IDENTITIES = {
    "tok-x": RealtimeIdentity(user_id="V1", role="viewer"),
    "tok-y": RealtimeIdentity(user_id="M1", role="manager"),
    "tok-z": RealtimeIdentity(user_id="U2", role="driver"),
    "tok-u1": RealtimeIdentity(user_id="U1", role="driver"),
}


async def fake_verifier(token: str) -> RealtimeIdentity:
    try:
        return IDENTITIES[token]
    except KeyError:
        raise TokenError("Token is invalid") from None


def _environ(token: str) -> dict:
    return {"HTTP_COOKIE": f"access_token={token}"}


def _gateway(**kwargs) -> RealtimeGateway:
    kwargs.setdefault("backend", LocalBroadcastBackend())
    gateway = RealtimeGateway(
        authenticator=ConnectionAuthenticator(fake_verifier),
        **kwargs,
    )
    gateway.sio.emit = mock.AsyncMock()
    return gateway


def _received(gateway: RealtimeGateway, sid: str) -> list[str]:
    return [
        call.args[0]
        for call in gateway.sio.emit.await_args_list
        if call.kwargs.get("to") == sid
    ]


async def _flush(gateway: RealtimeGateway, *sids: str) -> None:
    for sid in sids:
        await gateway.connection(sid).outbox.flush()


def test_event_reaches_package_admin_and_driver_rooms_only():
    gateway = _gateway()

    async def scenario():
        await gateway.start()
        await gateway.on_connect("x", _environ("tok-x"))
        await gateway.on_join_package("x", {"packageId": "PKG-1"})
        await gateway.on_connect("y", _environ("tok-y"))
        await gateway.on_connect("z", _environ("tok-z"))
        await gateway.dispatcher.publish(
            DomainEvent(
                type="status.updated",
                package_id="PKG-1",
                driver_id="U1",
                payload={"status": "delivered"},
            ),
        )
        await _flush(gateway, "x", "y", "z")
        await gateway.stop()

    async_to_sync(scenario)()

    assert _received(gateway, "x") == ["hello", "status.updated"]
    assert _received(gateway, "y") == ["hello", "status.updated"]
    assert _received(gateway, "z") == ["hello"]
    payload = next(
        call.args[1]
        for call in gateway.sio.emit.await_args_list
        if call.args[0] == "status.updated"
    )
    assert payload["eventType"] == "status.updated"
    assert payload["packageId"] == "PKG-1"
    assert payload["status"] == "delivered"
    assert payload["ts"].endswith("Z")


def test_backpressure_drops_best_effort_only():
    gateway = _gateway(outbox_limit=2)
    outcome = {}

    async def scenario():
        await gateway.on_connect("y", _environ("tok-y"))
        outbox = gateway.connection("y").outbox
        while outbox.pending < outbox.limit:
            outbox.push("noise", {})
        outcome["location"] = await gateway.dispatcher.publish(
            DomainEvent(type="location.changed", package_id="P", payload={"gps": {}}),
        )
        outcome["created"] = await gateway.dispatcher.publish(
            DomainEvent(type="package.created", package_id="P"),
        )
        await _flush(gateway, "y")
        await gateway.stop()

    async_to_sync(scenario)()

    received = _received(gateway, "y")
    assert "location.changed" not in received
    assert received[-1] == "package.created"
    assert outcome["location"] is not None


@pytest.mark.parametrize(
    ("environ", "reason"),
    [
        ({}, "unauthorized"),
        (_environ("forged"), "unauthorized"),
    ],
)
def test_rejected_handshake_never_joins(environ, reason):
    gateway = _gateway()

    async def scenario():
        with pytest.raises(sio_exceptions.ConnectionRefusedError) as excinfo:
            await gateway.on_connect("bad", environ)
        return excinfo.value

    error = async_to_sync(scenario)()
    assert error.error_args == {"message": reason}
    assert gateway.connection("bad") is None
    assert gateway.registry.rooms_of("bad") == frozenset()
    gateway.sio.emit.assert_not_awaited()


def test_expired_token_reason():
    async def expired(token):
        raise TokenError("Token is expired")

    gateway = _gateway()
    gateway.authenticator = ConnectionAuthenticator(expired)

    async def scenario():
        with pytest.raises(sio_exceptions.ConnectionRefusedError) as excinfo:
            await gateway.on_connect("old", _environ("tok-u1"))
        return excinfo.value

    assert async_to_sync(scenario)().error_args == {"message": "jwt_expired"}
    assert "old" not in gateway.registry


def test_driver_joins_only_own_room():
    gateway = _gateway()

    async def scenario():
        await gateway.on_connect("d", _environ("tok-u1"))
        await gateway.stop()

    async_to_sync(scenario)()
    assert gateway.registry.rooms_of("d") == {"driver:U1"}


def test_join_package_ignores_bad_payloads():
    gateway = _gateway()

    async def scenario():
        await gateway.on_connect("x", _environ("tok-x"))
        await gateway.on_join_package("x", None)
        await gateway.on_join_package("x", {"packageId": "  "})
        await gateway.on_join_package("x", True)
        await gateway.on_join_package("ghost", "PKG-1")
        await gateway.on_join_package("x", 17)
        await gateway.stop()

    async_to_sync(scenario)()
    assert gateway.registry.rooms_of("x") == {"package:17"}
    assert "ghost" not in gateway.registry


def test_ping_pong_and_presence():
    gateway = _gateway()
    states = {}

    async def scenario():
        await gateway.on_connect("a", _environ("tok-u1"))
        await gateway.on_connect("b", _environ("tok-u1"))
        await gateway.on_client_ping("a")
        await _flush(gateway, "a")
        states["connected"] = is_online("U1")
        await gateway.on_disconnect("a", "client disconnect")
        states["one_left"] = is_online("U1")
        await gateway.on_disconnect("b", "client disconnect")
        states["none_left"] = is_online("U1")

    async_to_sync(scenario)()

    assert _received(gateway, "a") == ["hello", "server:pong"]
    pong = next(
        call for call in gateway.sio.emit.await_args_list if call.args[0] == "server:pong"
    )
    assert isinstance(pong.args[1]["timestamp"], int)
    assert states == {"connected": True, "one_left": True, "none_left": False}
    assert gateway.registry.connection_count == 0


def test_unavailable_backend_degrades_to_local(caplog):
    failing = mock.Mock(spec=BroadcastBackend)
    failing.name = "redis"
    failing.start = mock.AsyncMock(side_effect=BackendUnavailable("refused"))
    gateway = _gateway(backend=failing)

    async_to_sync(gateway.start)()

    assert isinstance(gateway.backend, LocalBroadcastBackend)
    assert "unavailable" in caplog.text


class SharedBus(BroadcastBackend):
    """Stands in for a pub/sub channel shared by several processes."""

    name = "shared"

    def __init__(self, subscribers: list):
        self.subscribers = subscribers

    async def start(self, on_message):
        self.subscribers.append(on_message)

    async def publish(self, message: FanoutMessage) -> None:
        for on_message in list(self.subscribers):
            on_message(FanoutMessage.from_json(message.to_json()))

    async def stop(self):
        return None


def test_fan_out_between_gateways():
    subscribers: list = []
    node_a = _gateway(backend=SharedBus(subscribers), node_id="a")
    node_b = _gateway(backend=SharedBus(subscribers), node_id="b")

    async def scenario():
        await node_a.start()
        await node_b.start()
        await node_a.on_connect("ya", _environ("tok-y"))
        await node_b.on_connect("yb", _environ("tok-y"))
        await node_a.dispatcher.publish(DomainEvent(type="package.deleted", package_id="P"))
        await _flush(node_a, "ya")
        await _flush(node_b, "yb")
        await node_a.stop()
        await node_b.stop()

    async_to_sync(scenario)()

    assert _received(node_a, "ya") == ["hello", "package.deleted"]
    assert _received(node_b, "yb") == ["hello", "package.deleted"]
