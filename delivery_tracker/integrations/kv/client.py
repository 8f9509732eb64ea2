"""Small key-value store used for presence and health.

Two implementations share one interface: a Redis-backed store for
multi-process deployments and a process-local store for single-process
deployments, development and tests. ``get_store()`` picks one at first use
from ``REDIS_URL``.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from functools import lru_cache

import redis
from django.conf import settings

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Interface shared by the networked and process-local stores.

    Values are strings; ``ttl`` is in seconds.
    """

    name = "abstract"

    def get(self, key: str) -> str | None:
        raise NotImplementedError

    def set(self, key: str, value: str, ttl: int | None = None) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> int:
        raise NotImplementedError

    def incr(self, key: str) -> int:
        raise NotImplementedError

    def expire(self, key: str, seconds: int) -> bool:
        raise NotImplementedError

    def ping(self) -> bool:
        raise NotImplementedError


@dataclass
class _Entry:
    value: str
    expires_at: float | None = None

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class MemoryStore(KeyValueStore):
    """Process-local store with lazy TTL expiry.

    Guarded by a lock because sync views may run in worker threads.
    """

    name = "memory"

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._data: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def _live(self, key: str) -> _Entry | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            del self._data[key]
            return None
        return entry

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._live(key)
            return entry.value if entry else None

    def set(self, key: str, value: str, ttl: int | None = None) -> None:
        expires_at = self._clock() + ttl if ttl and ttl > 0 else None
        with self._lock:
            self._data[key] = _Entry(value=str(value), expires_at=expires_at)

    def delete(self, key: str) -> int:
        with self._lock:
            return 1 if self._data.pop(key, None) is not None else 0

    def incr(self, key: str) -> int:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                entry = _Entry(value="0")
                self._data[key] = entry
            try:
                current = int(entry.value)
            except ValueError as exc:
                msg = f"value at {key!r} is not an integer"
                raise ValueError(msg) from exc
            # Keeps the existing TTL, like Redis INCR.
            entry.value = str(current + 1)
            return current + 1

    def expire(self, key: str, seconds: int) -> bool:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return False
            entry.expires_at = self._clock() + seconds
            return True

    def ping(self) -> bool:
        return True


class RedisStore(KeyValueStore):
    name = "redis"

    def __init__(self, url: str, *, timeout: float = 0.5):
        self.client = redis.Redis.from_url(
            url,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
            decode_responses=True,
        )

    def get(self, key: str) -> str | None:
        return self.client.get(key)

    def set(self, key: str, value: str, ttl: int | None = None) -> None:
        self.client.set(key, value, ex=ttl if ttl and ttl > 0 else None)

    def delete(self, key: str) -> int:
        return int(self.client.delete(key))

    def incr(self, key: str) -> int:
        return int(self.client.incr(key))

    def expire(self, key: str, seconds: int) -> bool:
        return bool(self.client.expire(key, seconds))

    def ping(self) -> bool:
        return bool(self.client.ping())


@lru_cache(maxsize=1)
def get_store() -> KeyValueStore:
    """Return the process-wide store selected by ``REDIS_URL``.

    A configured but unreachable Redis degrades to the process-local store so
    the API keeps serving; presence then only reflects this process.
    """
    url = getattr(settings, "REDIS_URL", "")
    if not url:
        return MemoryStore()
    store = RedisStore(url)
    try:
        store.ping()
    except (redis.exceptions.RedisError, OSError) as exc:
        logger.warning(
            "Redis unavailable (%s); using process-local key-value store", exc
        )
        return MemoryStore()
    return store
