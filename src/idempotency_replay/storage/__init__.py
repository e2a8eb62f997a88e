"""Cache store adapters for the idempotency replay engine.

All stores implement the CacheStore protocol defined in base.py.

Available stores:
    - MemoryCacheStore: In-process dictionary with TTL expiry
    - RedisCacheStore: Redis with native expiry and SET NX writes
"""

from idempotency_replay.config import IdempotencyConfig
from idempotency_replay.storage.base import CacheStore
from idempotency_replay.storage.memory import MemoryCacheStore
from idempotency_replay.storage.redis import RedisCacheStore


def create_store(config: IdempotencyConfig) -> CacheStore:
    """Build the store selected by ``config.storage_backend``."""
    if config.storage_backend == "redis":
        return RedisCacheStore.from_url(config.redis_url)
    return MemoryCacheStore()


__all__ = [
    "CacheStore",
    "MemoryCacheStore",
    "RedisCacheStore",
    "create_store",
]
