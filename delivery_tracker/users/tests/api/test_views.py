import pytest
from rest_framework.test import APIClient

from delivery_tracker.realtime.presence import mark_online
from delivery_tracker.users.models import User
from delivery_tracker.users.tests.factories import UserFactory

pytestmark = pytest.mark.django_db


def test_me_returns_current_user(driver):
    client = APIClient()
    client.force_authenticate(user=driver)
    resp = client.get("/api/v1/users/me/")
    assert resp.status_code == 200
    assert resp.json()["username"] == driver.username
    assert resp.json()["role"] == "driver"


def test_user_directory_is_not_exposed(manager):
    other = UserFactory()
    client = APIClient()
    client.force_authenticate(user=manager)
    assert client.get("/api/v1/users/").status_code == 404
    assert client.get(f"/api/v1/users/{other.username}/").status_code == 404


def test_me_is_read_only(manager):
    client = APIClient()
    client.force_authenticate(user=manager)
    resp = client.patch("/api/v1/users/me/", {"name": "Changed"}, format="json")
    assert resp.status_code == 405
    manager.refresh_from_db()
    assert manager.name != "Changed"


def test_drivers_list_requires_manager(viewer):
    client = APIClient()
    client.force_authenticate(user=viewer)
    assert client.get("/api/v1/drivers/").status_code == 403


def test_drivers_list_reports_presence(manager):
    online = UserFactory(role=User.Role.DRIVER, name="Ada")
    offline = UserFactory(role=User.Role.DRIVER, name="Bob")
    UserFactory(role=User.Role.VIEWER)
    mark_online(online.id)

    client = APIClient()
    client.force_authenticate(user=manager)
    resp = client.get("/api/v1/drivers/")

    assert resp.status_code == 200
    rows = {row["id"]: row for row in resp.json()}
    assert set(rows) == {online.id, offline.id}
    assert rows[online.id]["online"] is True
    assert rows[offline.id]["online"] is False
