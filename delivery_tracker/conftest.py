import pytest
from django.apps import apps
from django.core.cache import cache

from delivery_tracker.integrations.kv.client import get_store
from delivery_tracker.users.models import User
from delivery_tracker.users.tests.factories import UserFactory


@pytest.fixture(autouse=True)
def _fresh_kv_store():
    get_store.cache_clear()
    yield
    get_store.cache_clear()


@pytest.fixture(autouse=True)
def _clear_throttle_history():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def _detached_gateway():
    config = apps.get_app_config("realtime")
    config.attach(None)
    yield
    config.attach(None)


@pytest.fixture
def user(db) -> User:
    return UserFactory()


@pytest.fixture
def viewer(db) -> User:
    return UserFactory(role=User.Role.VIEWER)


@pytest.fixture
def driver(db) -> User:
    return UserFactory(role=User.Role.DRIVER)


@pytest.fixture
def manager(db) -> User:
    return UserFactory(role=User.Role.MANAGER)


@pytest.fixture
def admin(db) -> User:
    return UserFactory(role=User.Role.ADMIN)
