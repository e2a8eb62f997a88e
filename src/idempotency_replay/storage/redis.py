"""Redis-backed cache store.

Records are serialized as JSON (``IdempotencyRecord.model_dump_json``) and
written with a native Redis expiry, so TTL enforcement and eviction stay in
Redis. Insert-if-absent maps onto ``SET key value NX EX ttl``, which is
atomic on the server.

Examples:
    Connecting from a URL::

        from idempotency_replay.storage.redis import RedisCacheStore

        store = RedisCacheStore.from_url("redis://cache:6379/0")

    Sharing an existing client::

        from redis.asyncio import Redis

        store = RedisCacheStore(Redis(host="cache", port=6379))
"""

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from idempotency_replay.exceptions import StorageError
from idempotency_replay.models import IdempotencyRecord
from idempotency_replay.storage.base import CacheStore


class RedisCacheStore(CacheStore):
    """CacheStore implementation on top of ``redis.asyncio``.

    Backend errors are wrapped in StorageError (with the original exception
    chained) and propagate to the caller.

    Attributes:
        client: The async Redis client.
    """

    def __init__(self, client: Redis) -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheStore":
        """Build a store with a new client for ``url``.

        No connection is made until the first command.
        """
        return cls(Redis.from_url(url))

    async def get(self, key: str) -> IdempotencyRecord | None:
        """Retrieve and decode the record stored under ``key``.

        Raises:
            StorageError: If Redis fails or the payload is not a valid record.
        """
        try:
            raw = await self.client.get(key)
        except RedisError as e:
            raise StorageError(f"Failed to read {key} from Redis: {e}", cause=e) from e

        if raw is None:
            return None

        try:
            return IdempotencyRecord.model_validate_json(raw)
        except ValidationError as e:
            raise StorageError(f"Corrupt idempotency record under {key}", cause=e) from e

    async def put(self, key: str, record: IdempotencyRecord, ttl_seconds: int) -> None:
        try:
            await self.client.set(key, record.model_dump_json(), ex=ttl_seconds)
        except RedisError as e:
            raise StorageError(f"Failed to write {key} to Redis: {e}", cause=e) from e

    async def has(self, key: str) -> bool:
        try:
            return bool(await self.client.exists(key))
        except RedisError as e:
            raise StorageError(f"Failed to check {key} in Redis: {e}", cause=e) from e

    async def add(self, key: str, record: IdempotencyRecord, ttl_seconds: int) -> bool:
        """Write the record with ``SET NX EX``.

        Returns:
            True if Redis accepted the write, False if the key already existed.
        """
        try:
            written = await self.client.set(
                key,
                record.model_dump_json(),
                ex=ttl_seconds,
                nx=True,
            )
        except RedisError as e:
            raise StorageError(f"Failed to write {key} to Redis: {e}", cause=e) from e

        return bool(written)

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except RedisError as e:
            raise StorageError(f"Failed to delete {key} from Redis: {e}", cause=e) from e

    async def close(self) -> None:
        """Close the underlying client's connection pool."""
        await self.client.aclose()
