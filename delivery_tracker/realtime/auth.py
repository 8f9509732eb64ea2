"""Handshake authentication for the /rt namespace.

The browser sends the same HttpOnly ``access_token`` cookie the REST API
uses. Scripts may pass ``?token=`` or ``auth: {token}`` instead.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from django.conf import settings
from django.http.cookie import parse_cookie
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

logger = logging.getLogger(__name__)

UNAUTHORIZED = "unauthorized"
JWT_EXPIRED = "jwt_expired"
SERVER_ERROR = "server_error"


@dataclass(frozen=True)
class RealtimeIdentity:
    user_id: str
    role: str


class AuthenticationRejected(Exception):
    """Carries the reason sent to the client before the connection closes."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


def _scope(environ: Any) -> dict:
    if isinstance(environ, dict):
        inner = environ.get("asgi.scope")
        if isinstance(inner, dict):
            return inner
        return environ
    return {}


def _cookie_header(environ: Any) -> str:
    if isinstance(environ, dict) and environ.get("HTTP_COOKIE"):
        return str(environ["HTTP_COOKIE"])
    for name, value in _scope(environ).get("headers") or ():
        if name.lower() == b"cookie":
            return value.decode("latin-1")
    return ""


def _query_string(environ: Any) -> str:
    scope = _scope(environ)
    query_string: str | bytes = scope.get("query_string") or ""
    if not query_string and isinstance(environ, dict):
        query_string = environ.get("QUERY_STRING", "")
    if isinstance(query_string, bytes | bytearray):
        query_string = query_string.decode(errors="ignore")
    return str(query_string)


def extract_token(environ: Any, auth: Any | None = None) -> str | None:
    """Find the access token: cookie first, then ``?token=``, then ``auth.token``.

    Handles python-socketio environ shapes across ASGI/WSGI servers.
    """
    cookie_name = getattr(settings, "JWT_AUTH_COOKIE", "access_token")
    token = parse_cookie(_cookie_header(environ)).get(cookie_name)
    if token:
        return token

    token = parse_qs(_query_string(environ)).get("token", [None])[0]
    if isinstance(token, str) and token:
        return token

    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return auth_token

    return None


@database_sync_to_async
def verify_access_token(token: str) -> RealtimeIdentity:
    validated = AccessToken(token)
    user = JWTAuthentication().get_user(validated)
    role = "admin" if user.is_superuser else user.role
    return RealtimeIdentity(user_id=str(user.pk), role=role)


Verifier = Callable[[str], Awaitable[RealtimeIdentity]]


class ConnectionAuthenticator:
    def __init__(self, verifier: Verifier = verify_access_token):
        self.verifier = verifier

    async def authenticate(self, environ: Any, auth: Any | None = None):
        token = extract_token(environ, auth)
        if not token:
            raise AuthenticationRejected(UNAUTHORIZED)

        try:
            return await self.verifier(token)
        except TokenError as exc:
            reason = JWT_EXPIRED if "expired" in str(exc).lower() else UNAUTHORIZED
            raise AuthenticationRejected(reason) from exc
        except AuthenticationFailed as exc:  # user not found / inactive, etc.
            raise AuthenticationRejected(UNAUTHORIZED) from exc
        except Exception as exc:
            logger.exception("Realtime token verification failed")
            raise AuthenticationRejected(SERVER_ERROR) from exc
