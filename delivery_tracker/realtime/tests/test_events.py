from unittest import mock

from asgiref.sync import async_to_sync
from django.apps import apps

from delivery_tracker.realtime.apps import publish_event
from delivery_tracker.realtime.backends import LocalBroadcastBackend
from delivery_tracker.realtime.dispatcher import DomainEvent
from delivery_tracker.realtime.socketio import RealtimeGateway


def test_publish_without_gateway_is_a_noop(caplog):
    caplog.set_level("DEBUG", logger="delivery_tracker.realtime")
    publish_event(DomainEvent(type="package.created", package_id="P"))
    assert "No realtime gateway attached" in caplog.text


def test_publish_goes_through_attached_gateway():
    gateway = RealtimeGateway(backend=LocalBroadcastBackend())
    gateway.deliver = mock.Mock(return_value=0)
    apps.get_app_config("realtime").attach(gateway)

    publish_event(DomainEvent(type="package.updated", package_id="P", driver_id=3))

    message = gateway.deliver.call_args.args[0]
    assert message.event == "package.updated"
    assert message.rooms == ("package:P", "admin", "driver:3")
    async_to_sync(gateway.stop)()
