from django.conf import settings
from rest_framework_simplejwt.authentication import JWTAuthentication


class CookieJWTAuthentication(JWTAuthentication):
    """JWT authentication reading the access token from the HttpOnly cookie.

    Falls back to the ``Authorization: Bearer`` header so scripts and the
    OpenAPI UI keep working.
    """

    def authenticate(self, request):
        cookie_name = getattr(settings, "JWT_AUTH_COOKIE", "access_token")
        raw_token = request.COOKIES.get(cookie_name)
        if not raw_token:
            return super().authenticate(request)
        validated = self.get_validated_token(raw_token)
        return self.get_user(validated), validated
