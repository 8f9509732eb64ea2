from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from datetime import timedelta

from django.conf import settings
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView
from rest_framework_simplejwt.views import TokenRefreshView


def _set_cookie(
    response: Response,
    name: str,
    value: str,
    max_age: int | None,
) -> None:
    if not value:
        return
    cookie_kwargs = {
        "httponly": True,
        "secure": getattr(settings, "JWT_AUTH_COOKIE_SECURE", not settings.DEBUG),
        "samesite": getattr(settings, "JWT_AUTH_COOKIE_SAMESITE", "Lax"),
        "path": "/",
    }
    if max_age is not None:
        cookie_kwargs["max_age"] = max_age
    response.set_cookie(name, value, **cookie_kwargs)


def _set_jwt_cookies(
    response: Response, access: str | None, refresh: str | None
) -> None:
    access_lifetime: timedelta = settings.SIMPLE_JWT["ACCESS_TOKEN_LIFETIME"]
    refresh_lifetime: timedelta = settings.SIMPLE_JWT["REFRESH_TOKEN_LIFETIME"]

    if access:
        _set_cookie(
            response,
            settings.JWT_AUTH_COOKIE,
            access,
            int(access_lifetime.total_seconds()),
        )
    if refresh:
        _set_cookie(
            response,
            settings.JWT_AUTH_REFRESH_COOKIE,
            refresh,
            int(refresh_lifetime.total_seconds()),
        )


def _scrub_tokens(response: Response, detail: str) -> Response:
    if isinstance(response.data, dict):
        access = response.data.get("access")
        refresh = response.data.get("refresh")
        if access or refresh:
            _set_jwt_cookies(response, access, refresh)
            response.data = {"detail": detail}
    return response


@extend_schema(tags=["Authentication"])
class CookieLoginView(TokenObtainPairView):
    """Login that sets HttpOnly JWT cookies and scrubs tokens from JSON body.

    The real-time channel reads the same ``access_token`` cookie during its
    handshake.
    """

    def post(self, request, *args, **kwargs):  # type: ignore[override]
        response: Response = super().post(request, *args, **kwargs)
        return _scrub_tokens(response, "login successful")


@extend_schema(tags=["Authentication"])
class CookieRefreshView(TokenRefreshView):
    """Refresh from the refresh cookie (or body) and rotate both cookies."""

    def post(self, request, *args, **kwargs):  # type: ignore[override]
        if "refresh" not in request.data:
            cookie = request.COOKIES.get(settings.JWT_AUTH_REFRESH_COOKIE)
            if cookie:
                serializer = self.get_serializer(data={"refresh": cookie})
                serializer.is_valid(raise_exception=True)
                response = Response(serializer.validated_data, status=status.HTTP_200_OK)
                return _scrub_tokens(response, "refresh successful")
        response: Response = super().post(request, *args, **kwargs)
        return _scrub_tokens(response, "refresh successful")


@extend_schema(tags=["Authentication"], request=None, responses={204: None})
class CookieLogoutView(APIView):
    permission_classes = [AllowAny]
    authentication_classes: list = []

    def post(self, request, *args, **kwargs):
        response = Response(status=status.HTTP_204_NO_CONTENT)
        response.delete_cookie(settings.JWT_AUTH_COOKIE, path="/")
        response.delete_cookie(settings.JWT_AUTH_REFRESH_COOKIE, path="/")
        return response
