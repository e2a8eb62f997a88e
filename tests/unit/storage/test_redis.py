"""Unit tests for RedisCacheStore.

A small in-memory stand-in for the ``redis.asyncio`` client records the
commands issued, so these tests run without a Redis server.
"""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from idempotency_replay.core.replay import ReplayedResponse, Request, capture_record
from idempotency_replay.exceptions import StorageError
from idempotency_replay.models import IdempotencyRecord
from idempotency_replay.storage.base import CacheStore
from idempotency_replay.storage.redis import RedisCacheStore

KEY = "1b4e28ba-2fa1-4d3b-a3f5-ef19b5a7633b"


class FakeRedis:
    """Records SET/GET/EXISTS/DEL calls and mimics their replies."""

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.set_calls: list[dict] = []
        self.closed = False

    async def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None, nx: bool = False):
        self.set_calls.append({"key": key, "value": value, "ex": ex, "nx": nx})
        if nx and key in self.data:
            return None
        self.data[key] = value.encode("utf-8")
        return True

    async def exists(self, key: str) -> int:
        return int(key in self.data)

    async def delete(self, key: str) -> int:
        return int(self.data.pop(key, None) is not None)

    async def aclose(self) -> None:
        self.closed = True


class BrokenRedis:
    async def get(self, key):
        raise RedisConnectionError("Connection refused")

    async def set(self, key, value, ex=None, nx=False):
        raise RedisConnectionError("Connection refused")

    async def exists(self, key):
        raise RedisConnectionError("Connection refused")

    async def delete(self, key):
        raise RedisConnectionError("Connection refused")


def make_record(body: bytes = b"created") -> IdempotencyRecord:
    return capture_record(
        KEY,
        Request(method="POST", path="/api/payments", headers={}, body=b'{"amount": 1}'),
        ReplayedResponse(
            status=201,
            headers={"set-cookie": ["a=1", "b=2"]},
            body=body,
        ),
    )


@pytest.fixture
def client() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def redis_store(client) -> RedisCacheStore:
    return RedisCacheStore(client)


def test_implements_protocol(redis_store) -> None:
    assert isinstance(redis_store, CacheStore)


def test_from_url_builds_client_lazily() -> None:
    store = RedisCacheStore.from_url("redis://localhost:6379/0")
    assert store.client is not None


@pytest.mark.asyncio
async def test_get_missing(redis_store) -> None:
    assert await redis_store.get("idempotency:missing") is None


@pytest.mark.asyncio
async def test_put_then_get(redis_store, client) -> None:
    record = make_record()

    await redis_store.put("idempotency:a", record, ttl_seconds=21600)

    assert client.set_calls[-1]["ex"] == 21600
    assert client.set_calls[-1]["nx"] is False
    assert await redis_store.get("idempotency:a") == record


@pytest.mark.asyncio
async def test_add_uses_set_nx_with_expiry(redis_store, client) -> None:
    written = await redis_store.add("idempotency:a", make_record(), ttl_seconds=60)

    assert written is True
    assert len(client.set_calls) == 1
    call = client.set_calls[0]
    assert call["key"] == "idempotency:a"
    assert call["ex"] == 60
    assert call["nx"] is True
    assert IdempotencyRecord.model_validate_json(call["value"]).status_code == 201


@pytest.mark.asyncio
async def test_add_existing_returns_false(redis_store) -> None:
    await redis_store.add("idempotency:a", make_record(b"first"), ttl_seconds=60)

    written = await redis_store.add("idempotency:a", make_record(b"second"), ttl_seconds=60)

    assert written is False
    record = await redis_store.get("idempotency:a")
    assert record.get_response_body() == b"first"


@pytest.mark.asyncio
async def test_has(redis_store) -> None:
    assert await redis_store.has("idempotency:a") is False
    await redis_store.put("idempotency:a", make_record(), ttl_seconds=60)
    assert await redis_store.has("idempotency:a") is True


@pytest.mark.asyncio
async def test_delete(redis_store) -> None:
    await redis_store.add("idempotency:a", make_record(), ttl_seconds=60)

    await redis_store.delete("idempotency:a")
    await redis_store.delete("idempotency:missing")

    assert await redis_store.has("idempotency:a") is False


@pytest.mark.asyncio
async def test_multi_value_headers_survive_serialization(redis_store) -> None:
    await redis_store.put("idempotency:a", make_record(), ttl_seconds=60)

    record = await redis_store.get("idempotency:a")

    assert record.response_headers == {"set-cookie": ["a=1", "b=2"]}


@pytest.mark.asyncio
async def test_corrupt_payload_raises_storage_error(redis_store, client) -> None:
    client.data["idempotency:a"] = b'{"not": "a record"}'

    with pytest.raises(StorageError, match="Corrupt idempotency record"):
        await redis_store.get("idempotency:a")


@pytest.mark.asyncio
@pytest.mark.parametrize("operation", ["get", "put", "has", "add", "delete"])
async def test_backend_errors_wrapped(operation: str) -> None:
    store = RedisCacheStore(BrokenRedis())
    args = {
        "get": ("idempotency:a",),
        "has": ("idempotency:a",),
        "delete": ("idempotency:a",),
        "put": ("idempotency:a", make_record(), 60),
        "add": ("idempotency:a", make_record(), 60),
    }[operation]

    with pytest.raises(StorageError) as exc_info:
        await getattr(store, operation)(*args)

    assert isinstance(exc_info.value.cause, RedisConnectionError)
    assert exc_info.value.__cause__ is exc_info.value.cause
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_close(redis_store, client) -> None:
    await redis_store.close()
    assert client.closed
