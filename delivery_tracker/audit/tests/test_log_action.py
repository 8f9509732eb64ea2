import uuid

import pytest
from django.contrib.auth.models import AnonymousUser

from delivery_tracker.audit.models import AuditLog
from delivery_tracker.audit.utils import log_action
from delivery_tracker.packages.tests.factories import PackageFactory
from delivery_tracker.users.tests.factories import UserFactory

pytestmark = pytest.mark.django_db


def test_log_action_records_actor_and_snapshots(manager):
    record_id = uuid.uuid4()
    entry = log_action(
        "package_updated",
        actor=manager,
        model_name="packages.Package",
        record_id=record_id,
        before={"status": "pending"},
        after={"status": "in_transit"},
    )
    entry.refresh_from_db()
    assert entry.actor == manager
    assert entry.actor_role == "manager"
    assert entry.record_id == str(record_id)
    assert entry.after == {"status": "in_transit"}


def test_target_fills_model_label_and_key(driver):
    package = PackageFactory()
    entry = log_action("package_created", actor=driver, target=package)
    assert entry.model_name == "packages.Package"
    assert entry.record_id == str(package.pk)
    assert list(AuditLog.objects.filter(record_id=str(package.pk))) == [entry]


def test_explicit_record_id_beats_target(driver):
    entry = log_action("user_updated", target=driver, record_id="legacy-7")
    assert entry.model_name == "users.User"
    assert entry.record_id == "legacy-7"


def test_superuser_is_recorded_as_admin():
    root = UserFactory(role="viewer", is_superuser=True)
    assert log_action("form_template_published", actor=root).actor_role == "admin"


def test_anonymous_actor_is_stored_as_system():
    entry = log_action("package_created", actor=AnonymousUser(), record_id=5)
    assert entry.actor is None
    assert entry.actor_role == ""
    assert entry.record_id == "5"
    assert AuditLog.objects.count() == 1


def test_missing_record_id_is_blank():
    entry = log_action("cleanup")
    assert entry.record_id == ""
    assert entry.model_name == ""
