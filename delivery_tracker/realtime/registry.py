from __future__ import annotations

from collections.abc import Iterable


class RoomRegistry:
    """Connection/room membership for the current process.

    Both directions are indexed so a disconnect releases every room in one
    step. Membership is never shared between processes; only event delivery
    crosses process boundaries.
    """

    def __init__(self):
        self._members: dict[str, set[str]] = {}
        self._rooms: dict[str, set[str]] = {}

    def join(self, connection_id: str, room: str) -> bool:
        """Add a membership; returns False if it already existed."""
        members = self._members.setdefault(room, set())
        if connection_id in members:
            return False
        members.add(connection_id)
        self._rooms.setdefault(connection_id, set()).add(room)
        return True

    def leave(self, connection_id: str, room: str) -> bool:
        members = self._members.get(room)
        if not members or connection_id not in members:
            return False
        members.discard(connection_id)
        if not members:
            del self._members[room]
        rooms = self._rooms.get(connection_id)
        if rooms is not None:
            rooms.discard(room)
            if not rooms:
                del self._rooms[connection_id]
        return True

    def drop_connection(self, connection_id: str) -> frozenset[str]:
        """Leave every room; returns the rooms that were released."""
        rooms = self._rooms.pop(connection_id, set())
        for room in rooms:
            members = self._members.get(room)
            if members is None:
                continue
            members.discard(connection_id)
            if not members:
                del self._members[room]
        return frozenset(rooms)

    def members_of(self, room: str) -> frozenset[str]:
        return frozenset(self._members.get(room, ()))

    def rooms_of(self, connection_id: str) -> frozenset[str]:
        return frozenset(self._rooms.get(connection_id, ()))

    def members_of_any(self, rooms: Iterable[str]) -> set[str]:
        """Union of members; a connection in several target rooms appears once."""
        found: set[str] = set()
        for room in rooms:
            found |= self._members.get(room, set())
        return found

    @property
    def connection_count(self) -> int:
        return len(self._rooms)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._rooms
