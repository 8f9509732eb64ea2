import pytest
from rest_framework.test import APIClient

from delivery_tracker.audit.models import AuditLog
from delivery_tracker.forms.models import FormTemplate
from delivery_tracker.forms.tests.factories import PARCEL_SCHEMA
from delivery_tracker.forms.tests.factories import FormTemplateFactory
from delivery_tracker.forms.tests.factories import PublishedTemplateFactory

pytestmark = pytest.mark.django_db

BASE = "/api/v1/forms/templates/"


@pytest.fixture
def admin_api(admin):
    client = APIClient()
    client.force_authenticate(user=admin)
    return client


def test_create_starts_as_draft(admin_api, admin):
    resp = admin_api.post(
        BASE,
        {"name": "Parcel", "status": "published", "schema": PARCEL_SCHEMA},
        format="json",
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "draft"
    assert body["created_by"] == admin.id
    assert AuditLog.objects.filter(
        action="form_template_created",
        record_id=body["id"],
    ).exists()


def test_create_rejects_invalid_schema(admin_api):
    resp = admin_api.post(
        BASE,
        {"name": "Bad", "schema": {"version": 2, "fields": []}},
        format="json",
    )
    assert resp.status_code == 400
    assert "schema" in resp.json()


def test_publish_then_schema_is_frozen(admin_api):
    template = FormTemplateFactory()
    resp = admin_api.post(f"{BASE}{template.id}/publish/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "published"
    assert resp.json()["published_at"]

    resp = admin_api.patch(
        f"{BASE}{template.id}/",
        {"schema": {"version": 1, "fields": []}},
        format="json",
    )
    assert resp.status_code == 400
    template.refresh_from_db()
    assert template.schema == PARCEL_SCHEMA

    resp = admin_api.patch(f"{BASE}{template.id}/", {"name": "Renamed"}, format="json")
    assert resp.status_code == 200


def test_delete_archives(admin_api):
    template = PublishedTemplateFactory()
    resp = admin_api.delete(f"{BASE}{template.id}/")
    assert resp.status_code == 204
    template.refresh_from_db()
    assert template.status == FormTemplate.Status.ARCHIVED


def test_archived_template_cannot_be_published(admin_api):
    template = FormTemplateFactory(status=FormTemplate.Status.ARCHIVED)
    resp = admin_api.post(f"{BASE}{template.id}/publish/")
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_transition"


def test_publish_rejects_broken_stored_schema(admin_api):
    template = FormTemplateFactory(schema={"version": 1, "fields": "oops"})
    resp = admin_api.post(f"{BASE}{template.id}/publish/")
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_schema"


def test_manager_reads_but_cannot_write(manager):
    PublishedTemplateFactory()
    FormTemplateFactory()
    client = APIClient()
    client.force_authenticate(user=manager)

    resp = client.get(BASE, {"status": "published"})
    assert resp.status_code == 200
    assert resp.json()["count"] == 1

    resp = client.post(BASE, {"name": "X", "schema": PARCEL_SCHEMA}, format="json")
    assert resp.status_code == 403


def test_unknown_status_filter(admin_api):
    assert admin_api.get(BASE, {"status": "gone"}).status_code == 400


def test_driver_cannot_read(driver):
    client = APIClient()
    client.force_authenticate(user=driver)
    assert client.get(BASE).status_code == 403
