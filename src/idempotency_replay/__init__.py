"""Idempotency replay engine.

Guards mutating HTTP requests against duplicate side effects when clients
retry with the same Idempotency-Key: the first response for a key is stored
and replayed for exact retries, while reuse of the key with a different body
or endpoint is rejected.
"""

from idempotency_replay.config import IdempotencyConfig
from idempotency_replay.core.middleware import IdempotencyMiddleware
from idempotency_replay.core.replay import ReplayedResponse, Request
from idempotency_replay.core.state_machine import Outcome, StateResult
from idempotency_replay.models import IdempotencyRecord

__version__ = "0.1.0"

__all__ = [
    "IdempotencyConfig",
    "IdempotencyMiddleware",
    "IdempotencyRecord",
    "Outcome",
    "ReplayedResponse",
    "Request",
    "StateResult",
    "__version__",
]
