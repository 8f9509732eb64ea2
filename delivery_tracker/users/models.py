from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import CharField
from django.db.models import EmailField
from django.utils.translation import gettext_lazy as _


class User(AbstractUser):
    """
    Default custom user model for delivery_tracker.

    ``role`` drives both REST permissions and the real-time rooms a
    connection is auto-joined to.
    """

    class Role(models.TextChoices):
        VIEWER = "viewer", _("Viewer")
        DRIVER = "driver", _("Driver")
        MANAGER = "manager", _("Manager")
        ADMIN = "admin", _("Admin")

    # First and last name do not cover name patterns around the globe
    name = CharField(_("Full Name"), blank=True, max_length=255)
    email = EmailField(_("email address"), unique=True)
    role = CharField(
        _("Role"),
        max_length=20,
        choices=Role.choices,
        default=Role.VIEWER,
    )
    # Audit timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def has_role(self, required: str) -> bool:
        """Return True when this user's role ranks at or above ``required``."""
        return role_rank(self.role) >= role_rank(required)


ROLE_ORDER: tuple[str, ...] = (
    User.Role.VIEWER,
    User.Role.DRIVER,
    User.Role.MANAGER,
    User.Role.ADMIN,
)


def role_rank(role: str) -> int:
    try:
        return ROLE_ORDER.index(role)
    except ValueError:
        return -1
