"""Room names used by the /rt namespace.

Rooms are derived from identifiers and never stored on their own.
"""

from __future__ import annotations

ADMIN_ROOM = "admin"

# Roles whose connections join the shared dashboard room.
ADMIN_ROOM_ROLES = frozenset({"admin", "manager"})


def room_for_package(package_id) -> str:
    return f"package:{package_id}"


def room_for_driver(driver_id) -> str:
    return f"driver:{driver_id}"


def auto_rooms(user_id, role: str) -> tuple[str, ...]:
    """Rooms a freshly authenticated connection joins without asking."""
    if role in ADMIN_ROOM_ROLES:
        return (ADMIN_ROOM,)
    if role == "driver":
        return (room_for_driver(user_id),)
    return ()
