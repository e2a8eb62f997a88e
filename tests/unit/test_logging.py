"""Tests for structured logging: configuration, redaction and engine events."""

import json

import pytest
import structlog
from structlog.testing import capture_logs

from idempotency_replay.core.state_machine import process_request
from idempotency_replay.keys import derive_cache_key
from idempotency_replay.observability.logging import (
    REDACTED,
    configure_logging,
    get_logger,
    redact_credentials,
    short_key,
)


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()


def test_redact_credentials() -> None:
    event = {"event": "x", "Authorization": "Bearer secret", "token": "t", "path": "/a"}

    result = redact_credentials(None, "info", event)

    assert result == {"event": "x", "Authorization": REDACTED, "token": REDACTED, "path": "/a"}


def test_short_key() -> None:
    assert short_key("idempotency:" + "a" * 64) == "idempotency:aaaaaaaa"
    assert short_key("short") == "short"


def test_configure_logging_json(capsys, reset_structlog) -> None:
    configure_logging(level="info", json_output=True)

    get_logger("tests").info("idempotency.test", path="/a", credential="secret")

    line = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert line["event"] == "idempotency.test"
    assert line["level"] == "info"
    assert line["credential"] == REDACTED
    assert "timestamp" in line


def test_configure_logging_filters_level(capsys, reset_structlog) -> None:
    configure_logging(level="WARNING", json_output=True)

    get_logger("tests").info("idempotency.hidden")

    assert "idempotency.hidden" not in capsys.readouterr().out


def test_unknown_level_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown log level"):
        configure_logging(level="LOUD")


async def _run(store, config, request, handler):
    return await process_request(
        store=store,
        config=config,
        request=request,
        handler=handler,
        cache_key_for=lambda key: derive_cache_key(key, "secret-token"),
    )


@pytest.mark.asyncio
async def test_engine_event_sequence(store, config, handler, make_request) -> None:
    with capture_logs() as logs:
        await _run(store, config, make_request(), handler)
        await _run(store, config, make_request(), handler)
        await _run(store, config, make_request(body=b"other"), handler)
        await _run(store, config, make_request(key="bad"), handler)

    events = [entry["event"] for entry in logs]
    assert events == [
        "idempotency.stored",
        "idempotency.replayed",
        "idempotency.conflict",
        "idempotency.invalid_key",
    ]
    assert logs[2]["reason"] == "body"
    assert logs[2]["log_level"] == "warning"
    assert all("secret-token" not in str(entry) for entry in logs)


@pytest.mark.asyncio
async def test_not_cached_event(store, config, make_handler, make_request) -> None:
    with capture_logs() as logs:
        await _run(store, config, make_request(), make_handler(status=422))

    assert [entry["event"] for entry in logs] == ["idempotency.not_cached"]
    assert logs[0]["status_code"] == 422
