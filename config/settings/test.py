"""
With these settings, tests run faster.
"""

from .base import *  # noqa: F403
from .base import LOGGING
from .base import env

# GENERAL
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#secret-key
SECRET_KEY = env(
    "DJANGO_SECRET_KEY",
    default="7v1mQd2xYt9KcR4sLp8NwZ3bHf6JgA0eUo5iTy1rVn2MqXs8DkWc4PzEa7GhBl3",
)
# https://docs.djangoproject.com/en/dev/ref/settings/#test-runner
TEST_RUNNER = "django.test.runner.DiscoverRunner"

# DATABASES
# ------------------------------------------------------------------------------
DATABASES = {"default": env.db("DATABASE_URL", default="sqlite://:memory:")}

# PASSWORDS
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#password-hashers
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# EMAIL
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#email-backend
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

# REALTIME
# ------------------------------------------------------------------------------
# Tests never talk to a Redis server.
REDIS_URL = ""
REALTIME_BACKEND = "local"
JWT_AUTH_COOKIE_SECURE = False

# LOGGING
# ------------------------------------------------------------------------------
# Let pytest's caplog see application records.
LOGGING["loggers"]["delivery_tracker"]["propagate"] = True
