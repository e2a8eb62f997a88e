"""Cache store protocol for the idempotency replay engine.

The engine never implements storage itself: eviction, persistence and
replication belong to the backend. It needs five point operations on
``IdempotencyRecord`` values, each atomic for a single key:

- ``get``: read a non-expired record
- ``put``: unconditional write with a TTL
- ``has``: presence check
- ``add``: insert-if-absent with a TTL
- ``delete``: remove a record

The engine reserves a fresh key with ``add`` before running the handler, so
of two requests racing on the same fresh key only one executes. The
reservation is then replaced with ``put`` or removed with ``delete``.

Examples:
    Implementing a custom store::

        from idempotency_replay.models import IdempotencyRecord
        from idempotency_replay.storage.base import CacheStore

        class DynamoCacheStore:
            async def get(self, key: str) -> IdempotencyRecord | None:
                item = await self.table.get_item(Key={"pk": key})
                if "Item" not in item:
                    return None
                return IdempotencyRecord.model_validate_json(item["Item"]["payload"])

            async def add(self, key, record, ttl_seconds) -> bool:
                # PutItem with attribute_not_exists(pk)
                ...

Error Handling:
    Stores raise ``StorageError`` for backend failures. The engine lets the
    error propagate; it never falls back to executing the request without
    idempotency protection.
"""

from typing import Protocol, runtime_checkable

from idempotency_replay.models import IdempotencyRecord


@runtime_checkable
class CacheStore(Protocol):
    """Protocol defining the interface for idempotency cache stores.

    All methods are async and must be safe to call concurrently from
    multiple asyncio tasks. Expired records must be invisible to ``get``,
    ``has`` and ``add``.
    """

    async def get(self, key: str) -> IdempotencyRecord | None:
        """Retrieve the record stored under ``key``.

        Returns:
            The record if present and not expired, None otherwise.
        """
        ...

    async def put(self, key: str, record: IdempotencyRecord, ttl_seconds: int) -> None:
        """Store ``record`` under ``key``, replacing any existing record.

        Args:
            key: The cache key.
            record: The record to store.
            ttl_seconds: Time-to-live in seconds.
        """
        ...

    async def has(self, key: str) -> bool:
        """Return True if a non-expired record exists under ``key``."""
        ...

    async def add(self, key: str, record: IdempotencyRecord, ttl_seconds: int) -> bool:
        """Atomically store ``record`` only if ``key`` holds no live record.

        If several concurrent calls race on the same key, exactly one
        succeeds.

        Returns:
            True if the record was written, False if one already existed.

        Examples:
            >>> written = await store.add("idempotency:ab12...", record, 21600)
            >>> if not written:
            ...     existing = await store.get("idempotency:ab12...")
        """
        ...

    async def delete(self, key: str) -> None:
        """Remove the record under ``key``; a missing key is not an error."""
        ...
