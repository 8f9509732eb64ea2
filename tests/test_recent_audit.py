from __future__ import annotations

from django.utils import timezone

from delivery_tracker.audit.models import AuditLog
from tests.permissions.mixins import ROLE_ADMIN
from tests.permissions.mixins import ROLE_DRIVER
from tests.permissions.mixins import ROLE_MANAGER
from tests.permissions.mixins import RoleAPITestCase


class TestRecentAuditEndpoint(RoleAPITestCase):
    def test_recent_audit_requires_elevated_role(self):
        denied = self.get("api_v1:audit:recent", role=ROLE_DRIVER)
        self.assert_http_status(denied, 403)

        allowed = self.get("api_v1:audit:recent", role=ROLE_MANAGER)
        self.assert_http_status(allowed, 200)

    def test_recent_audit_returns_latest_first(self):
        # Deterministic timestamps so ordering is stable.
        base = timezone.now()
        created = []
        for i in range(6):
            row = AuditLog.objects.create(action=f"test_action_{i}", message=str(i))
            created.append(row)
        for i, row in enumerate(created):
            AuditLog.objects.filter(pk=row.pk).update(
                created_at=base + timezone.timedelta(seconds=i)
            )

        res = self.get("api_v1:audit:recent", role=ROLE_ADMIN, data={"limit": 5})
        self.assert_http_status(res, 200)
        assert res.data["limit"] == 5
        actions = [r["action"] for r in res.data["results"]]
        assert actions == [
            "test_action_5",
            "test_action_4",
            "test_action_3",
            "test_action_2",
            "test_action_1",
        ]

    def test_package_writes_are_audited(self):
        self.patch(
            "api_v1:package-detail",
            role=ROLE_MANAGER,
            reverse_kwargs={"pk": self.package.pk},
            payload={"status": "in_transit"},
        )
        res = self.get(
            "api_v1:audit:recent",
            role=ROLE_MANAGER,
            data={"model": "packages.Package", "record": str(self.package.pk)},
        )
        self.assert_http_status(res, 200)
        (entry,) = res.data["results"]
        assert entry["action"] == "package_updated"
        assert entry["before"]["status"] == "pending"
        assert entry["after"]["status"] == "in_transit"

    def test_entries_expose_actor_role_and_target(self):
        self.patch(
            "api_v1:package-detail",
            role=ROLE_ADMIN,
            reverse_kwargs={"pk": self.package.pk},
            payload={"status": "in_transit"},
        )
        res = self.get("api_v1:audit:recent", role=ROLE_ADMIN, data={"action": "package_updated"})
        self.assert_http_status(res, 200)
        (entry,) = res.data["results"]
        assert entry["actor_role"] == "admin"
        assert entry["target"] == {"model": "packages.Package", "id": str(self.package.pk)}


class TestPackageAuditEndpoint(RoleAPITestCase):
    def test_history_outlives_the_package(self):
        package_id = self.package.pk
        self.patch(
            "api_v1:package-detail",
            role=ROLE_MANAGER,
            reverse_kwargs={"pk": package_id},
            payload={"status": "in_transit"},
        )
        self.delete("api_v1:package-detail", role=ROLE_MANAGER, reverse_kwargs={"pk": package_id})

        res = self.get(
            "api_v1:audit:package",
            role=ROLE_MANAGER,
            reverse_kwargs={"package_id": str(package_id)},
        )
        self.assert_http_status(res, 200)
        actions = [r["action"] for r in res.data["results"]]
        assert actions == ["package_deleted", "package_updated"]

    def test_driver_is_denied(self):
        res = self.get(
            "api_v1:audit:package",
            role=ROLE_DRIVER,
            reverse_kwargs={"package_id": str(self.package.pk)},
        )
        self.assert_http_status(res, 403)

    def test_malformed_id_is_rejected(self):
        res = self.get(
            "api_v1:audit:package",
            role=ROLE_MANAGER,
            reverse_kwargs={"package_id": "not-a-uuid"},
        )
        self.assert_http_status(res, 400)
