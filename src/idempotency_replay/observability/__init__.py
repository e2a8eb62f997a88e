"""Observability utilities for the idempotency replay engine.

This package provides:
- Prometheus metrics for outcome and latency tracking
- Structured logging with contextual information
"""

from idempotency_replay.observability.logging import configure_logging, get_logger
from idempotency_replay.observability.metrics import (
    record_cleanup,
    record_handler_duration,
    record_request,
    record_stored,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "record_request",
    "record_handler_duration",
    "record_stored",
    "record_cleanup",
]
