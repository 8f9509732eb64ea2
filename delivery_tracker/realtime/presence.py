"""User liveness kept in the key-value store.

A connection marks its user online on admission and refreshes the key on
every ``client:ping``; the key simply expires when heartbeats stop.
"""

from __future__ import annotations

from collections.abc import Iterable

from django.conf import settings

from delivery_tracker.integrations.kv.client import KeyValueStore
from delivery_tracker.integrations.kv.client import get_store


def presence_key(user_id) -> str:
    return f"presence:user:{user_id}"


def mark_online(user_id, *, store: KeyValueStore | None = None) -> None:
    store = store or get_store()
    store.set(presence_key(user_id), "1", ttl=settings.REALTIME_PRESENCE_TTL)


def mark_offline(user_id, *, store: KeyValueStore | None = None) -> None:
    store = store or get_store()
    store.delete(presence_key(user_id))


def is_online(user_id, *, store: KeyValueStore | None = None) -> bool:
    store = store or get_store()
    return store.get(presence_key(user_id)) is not None


def online_ids(user_ids: Iterable, *, store: KeyValueStore | None = None) -> set:
    store = store or get_store()
    return {uid for uid in user_ids if store.get(presence_key(uid)) is not None}
