"""In-memory cache store with TTL expiry.

This module provides a single-process implementation of the CacheStore
protocol backed by a Python dictionary.

The MemoryCacheStore is suitable for:
    - Single-process applications
    - Development and testing

For multi-process or multi-host deployments use RedisCacheStore.

Expiry:
    Each entry keeps its own expiry instant. Expired entries are invisible
    to get/has/add immediately and are physically removed by
    cleanup_expired() (see core.cleanup for a periodic task) or when the
    key is written again.

    The clock is injectable so tests can move time forward without
    sleeping.

Examples:
    Basic usage::

        from idempotency_replay.storage.memory import MemoryCacheStore

        store = MemoryCacheStore()
        written = await store.add("idempotency:ab12...", record, ttl_seconds=21600)
        assert written
        assert await store.has("idempotency:ab12...")
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from idempotency_replay.models import IdempotencyRecord
from idempotency_replay.storage.base import CacheStore


def utc_now() -> datetime:
    return datetime.now(UTC)


class MemoryCacheStore(CacheStore):
    """In-memory store with per-entry TTL.

    Attributes:
        _store: Dictionary mapping cache keys to (record, expires_at) pairs.
        _lock: Lock making add() an atomic check-and-insert.
        _clock: Callable returning the current UTC time.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        """Initialize a new in-memory store.

        Args:
            clock: Returns the current time as an aware UTC datetime.
        """
        self._store: dict[str, tuple[IdempotencyRecord, datetime]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def __len__(self) -> int:
        """Number of entries held, including expired ones not yet removed."""
        return len(self._store)

    def _live(self, key: str) -> IdempotencyRecord | None:
        entry = self._store.get(key)
        if entry is None:
            return None

        record, expires_at = entry
        if expires_at <= self._clock():
            return None
        return record

    async def get(self, key: str) -> IdempotencyRecord | None:
        """Retrieve a live record by key, or None."""
        return self._live(key)

    async def has(self, key: str) -> bool:
        return self._live(key) is not None

    async def put(self, key: str, record: IdempotencyRecord, ttl_seconds: int) -> None:
        """Store a record unconditionally.

        Args:
            key: The cache key.
            record: The record to store.
            ttl_seconds: Time-to-live in seconds.
        """
        async with self._lock:
            self._store[key] = (record, self._clock() + timedelta(seconds=ttl_seconds))

    async def add(self, key: str, record: IdempotencyRecord, ttl_seconds: int) -> bool:
        """Store a record only if no live record exists for the key.

        An expired entry under the same key is replaced.

        Returns:
            True if the record was written, False if a live record exists.
        """
        async with self._lock:
            if self._live(key) is not None:
                return False

            self._store[key] = (record, self._clock() + timedelta(seconds=ttl_seconds))
            return True

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._store.pop(key, None)

    async def cleanup_expired(self) -> int:
        """Remove expired entries.

        Returns:
            The number of entries removed.
        """
        async with self._lock:
            now = self._clock()
            expired_keys = [
                key for key, (_, expires_at) in self._store.items() if expires_at <= now
            ]
            for key in expired_keys:
                del self._store[key]

        return len(expired_keys)
