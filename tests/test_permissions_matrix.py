"""Integration-style permission tests covering the role ladder end to end."""

from tests.permissions.mixins import ROLE_ADMIN
from tests.permissions.mixins import ROLE_DRIVER
from tests.permissions.mixins import ROLE_MANAGER
from tests.permissions.mixins import ROLE_VIEWER
from tests.permissions.mixins import RoleAPITestCase


class PermissionMatrixAPITests(RoleAPITestCase):
    """Validate who may read and write each resource."""

    def test_every_role_reads_packages(self):
        for role in (ROLE_VIEWER, ROLE_DRIVER, ROLE_MANAGER, ROLE_ADMIN):
            res = self.get("api_v1:package-list", role=role)
            self.assert_allowed(res)
            assert len(self.extract_results(res)) == 1

    def test_package_writes_need_manager(self):
        payload = {
            "barcode": "PKG-0002",
            "recipient": {"name": "Alan Turing", "address": "2 Bletchley Park"},
            "form_template": str(self.template.id),
            "metadata": {"priority": "high"},
        }
        for role in (ROLE_VIEWER, ROLE_DRIVER):
            self.assert_denied(self.post("api_v1:package-list", role=role, payload=payload))
        self.assert_http_status(
            self.post("api_v1:package-list", role=ROLE_MANAGER, payload=payload),
            201,
        )
        self.assert_denied(
            self.delete(
                "api_v1:package-detail",
                role=ROLE_DRIVER,
                reverse_kwargs={"pk": self.package.pk},
            ),
        )
        self.assert_allowed(
            self.delete(
                "api_v1:package-detail",
                role=ROLE_ADMIN,
                reverse_kwargs={"pk": self.package.pk},
            ),
        )

    def test_scanning_needs_driver(self):
        payload = {"barcode": self.package.barcode, "stage": "package_scanned"}
        self.assert_denied(self.post("api_v1:scan:apply", role=ROLE_VIEWER, payload=payload))
        self.assert_allowed(self.post("api_v1:scan:apply", role=ROLE_DRIVER, payload=payload))
        res = self.get(
            "api_v1:scan:history",
            role=ROLE_VIEWER,
            data={"package": str(self.package.pk)},
        )
        self.assert_allowed(res)
        assert len(res.data["items"]) == 1

    def test_form_templates(self):
        for role in (ROLE_VIEWER, ROLE_DRIVER):
            self.assert_denied(self.get("api_v1:forms:template-list", role=role))
        self.assert_allowed(self.get("api_v1:forms:template-list", role=ROLE_MANAGER))
        payload = {"name": "Returns", "schema": {"version": 1, "fields": []}}
        self.assert_denied(
            self.post("api_v1:forms:template-list", role=ROLE_MANAGER, payload=payload),
        )
        self.assert_http_status(
            self.post("api_v1:forms:template-list", role=ROLE_ADMIN, payload=payload),
            201,
        )

    def test_drivers_board(self):
        for role in (ROLE_VIEWER, ROLE_DRIVER):
            self.assert_denied(self.get("api_v1:driver-list", role=role))
        res = self.get("api_v1:driver-list", role=ROLE_MANAGER)
        self.assert_allowed(res)
        assert [d["id"] for d in res.data] == [self.users[ROLE_DRIVER].id]

    def test_profile_is_own_for_every_role(self):
        for role, user in self.users.items():
            res = self.get("api_v1:user-me", role=role)
            self.assert_allowed(res)
            assert res.data["username"] == user.username

    def test_anonymous_is_rejected(self):
        res = self.client.get("/api/v1/packages/")
        assert res.status_code in (401, 403)
