from .base import *  # noqa: F403
from .base import LOGGING
from .base import env

# GENERAL
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#debug
DEBUG = True
# https://docs.djangoproject.com/en/dev/ref/settings/#secret-key
SECRET_KEY = env(
    "DJANGO_SECRET_KEY",
    default="Qf3Lr8TzWb1NcY6pVx0Km9Gs2Hd7Ja4Eo5Ui8Rt1Wy3Zq6Bn0Mv9Cx2Lk7Pj4Ds",
)
# https://docs.djangoproject.com/en/dev/ref/settings/#allowed-hosts
ALLOWED_HOSTS = ["localhost", "0.0.0.0", "127.0.0.1"]  # noqa: S104

# LOGGING
# ------------------------------------------------------------------------------
LOGGING["loggers"]["delivery_tracker"]["level"] = "DEBUG"

# djangorestframework-simplejwt
# ------------------------------------------------------------------------------
JWT_AUTH_COOKIE_SECURE = False
