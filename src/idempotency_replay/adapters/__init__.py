"""Framework adapters for the idempotency replay engine.

- asgi.py: ASGI middleware for FastAPI, Starlette, etc.

Adapters convert between framework request/response objects and the
engine's internal representation, and decide how rejections are rendered.
"""

from idempotency_replay.adapters.asgi import ASGIIdempotencyMiddleware

__all__ = ["ASGIIdempotencyMiddleware"]
