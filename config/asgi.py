"""
ASGI config for delivery_tracker project.

It exposes the ASGI callable as a module-level variable named ``application``.

For more information on this file, see
https://docs.djangoproject.com/en/dev/howto/deployment/asgi/

"""

import os

from django.core.asgi import get_asgi_application

# If DJANGO_SETTINGS_MODULE is unset, select a sensible default based on BUILD_ENV
# Default to local settings for the local dev image, production otherwise.
if "DJANGO_SETTINGS_MODULE" not in os.environ:
    build_env = os.environ.get("BUILD_ENV", "production").lower()
    default_settings = (
        "config.settings.local"
        if build_env == "local"
        else "config.settings.production"
    )
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", default_settings)

django_application = get_asgi_application()

from django.apps import apps  # noqa: E402
from django.conf import settings  # noqa: E402
from socketio import ASGIApp  # noqa: E402

from delivery_tracker.realtime.socketio import RealtimeGateway  # noqa: E402

gateway = RealtimeGateway()
apps.get_app_config("realtime").attach(gateway)

# Socket.IO sits in front of Django because it handles both Engine.IO
# long-polling and WebSocket upgrades; everything else falls through.
application = ASGIApp(
    gateway.sio,
    other_asgi_app=django_application,
    socketio_path=settings.REALTIME_SOCKETIO_PATH,
    on_startup=gateway.start,
    on_shutdown=gateway.stop,
)
