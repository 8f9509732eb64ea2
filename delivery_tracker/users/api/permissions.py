"""Role-based permission classes shared by every API app."""

from rest_framework.permissions import SAFE_METHODS
from rest_framework.permissions import BasePermission

from delivery_tracker.users.models import User
from delivery_tracker.users.models import role_rank


def _user_role(user) -> str | None:
    if not (user and getattr(user, "is_authenticated", False)):
        return None
    if getattr(user, "is_superuser", False):
        return User.Role.ADMIN
    return getattr(user, "role", None)


class _RolePermission(BasePermission):
    """Base helper to gate access by minimum role."""

    required_role: str = User.Role.VIEWER

    def has_permission(self, request, view) -> bool:
        role = _user_role(getattr(request, "user", None))
        if role is None:
            return False
        return role_rank(role) >= role_rank(self.required_role)


def HasRole(required_role: str) -> type[BasePermission]:  # noqa: N802
    """Build a permission class admitting ``required_role`` and anything above it.

    Ranks are viewer < driver < manager < admin; superusers count as admin.
    """

    return type(
        f"HasRole_{required_role}",
        (_RolePermission,),
        {"required_role": required_role},
    )


class ReadViewerWriteRole(BasePermission):
    """Safe methods for any viewer; unsafe methods need ``write_role``."""

    write_role: str = User.Role.MANAGER

    def has_permission(self, request, view) -> bool:
        role = _user_role(getattr(request, "user", None))
        if role is None:
            return False
        if request.method in SAFE_METHODS:
            return True
        return role_rank(role) >= role_rank(self.write_role)


IsDriverOrAbove = HasRole(User.Role.DRIVER)
IsManagerOrAbove = HasRole(User.Role.MANAGER)
IsAdminRole = HasRole(User.Role.ADMIN)
