"""Structured logging for the idempotency replay engine.

Engine events are emitted through structlog as dotted event names with
key/value context, for example::

    {
        "event": "idempotency.replayed",
        "cache_key": "idempotency:3f1c9a0b",
        "path": "/api/payments",
        "status_code": 201,
        "timestamp": "2024-01-01T00:00:00.000000Z",
        "level": "info"
    }

Bearer credentials are never logged; only a short prefix of the hashed cache
key is. ``redact_credentials`` masks credential-bearing fields that callers
bind themselves.

Examples:
    Configure logging once at startup::

        from idempotency_replay.observability.logging import configure_logging

        configure_logging(level="INFO", json_output=True)

    Use the logger::

        logger = get_logger(__name__)
        logger.info("idempotency.stored", cache_key=short_key(cache_key))
"""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog

REDACTED = "[redacted]"

SENSITIVE_FIELDS = frozenset({"authorization", "credential", "token", "bearer"})


def redact_credentials(
    _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor masking fields that could carry a credential."""
    for field in event_dict:
        if field.lower() in SENSITIVE_FIELDS:
            event_dict[field] = REDACTED
    return event_dict


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def configure_logging(level: str | int = "INFO", json_output: bool = True) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum level, by name ("DEBUG", "info") or number
        json_output: Render JSON lines; otherwise the coloured console renderer

    Raises:
        ValueError: If ``level`` is not a known level name.
    """
    min_level = _resolve_level(level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=min_level)

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            redact_credentials,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Return a structlog logger bound to ``name`` (usually ``__name__``)."""
    return structlog.get_logger(name)


def short_key(cache_key: str, length: int = 20) -> str:
    """Shorten a cache key for log output.

    Example:
        >>> short_key("idempotency:3f1c9a0b5e7d2c4a6b8e0f1a2b3c4d5e")
        'idempotency:3f1c9a0b'
    """
    return cache_key[:length]
