"""
Pytest configuration and shared fixtures for idempotency_replay tests.
"""

import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from idempotency_replay.config import IdempotencyConfig
from idempotency_replay.core.replay import ReplayedResponse, Request
from idempotency_replay.storage.memory import MemoryCacheStore


class FakeClock:
    """Manually advanced UTC clock for TTL tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class RecordingHandler:
    """Downstream handler double that records every invocation."""

    def __init__(
        self,
        status: int = 201,
        body: bytes = b'{"id": "pay_1"}',
        headers: dict[str, list[str]] | None = None,
    ) -> None:
        self.status = status
        self.body = body
        self.headers = headers if headers is not None else {"content-type": ["application/json"]}
        self.calls: list[Request] = []

    async def __call__(self, request: Request) -> ReplayedResponse:
        self.calls.append(request)
        return ReplayedResponse(
            status=self.status,
            headers={name: list(values) for name, values in self.headers.items()},
            body=self.body,
        )

    @property
    def call_count(self) -> int:
        return len(self.calls)


@pytest.fixture
def idempotency_key() -> str:
    """Provide a fresh version-4 idempotency key."""
    return str(uuid.uuid4())


@pytest.fixture
def sample_request_body() -> bytes:
    return b'{"amount": 100, "currency": "USD"}'


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemoryCacheStore:
    """Create a fresh memory store on the fake clock for each test."""
    return MemoryCacheStore(clock=clock)


@pytest.fixture
def config() -> IdempotencyConfig:
    return IdempotencyConfig()


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def make_handler() -> Callable[..., RecordingHandler]:
    """Build handlers with a custom status, body or headers."""
    return RecordingHandler


@pytest.fixture
def make_request(
    idempotency_key: str, sample_request_body: bytes
) -> Callable[..., Request]:
    """Build engine requests; defaults to a POST carrying the fixture key."""

    def _make(
        method: str = "POST",
        path: str = "/api/payments",
        body: bytes | None = None,
        key: str | None = None,
        headers: dict[str, str] | None = None,
        with_key: bool = True,
    ) -> Request:
        request_headers = {"content-type": "application/json"}
        if with_key:
            request_headers["Idempotency-Key"] = key if key is not None else idempotency_key
        if headers:
            request_headers.update(headers)
        return Request(
            method=method,
            path=path,
            headers=request_headers,
            body=sample_request_body if body is None else body,
        )

    return _make
