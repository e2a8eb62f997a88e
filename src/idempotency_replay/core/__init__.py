"""Core logic of the idempotency replay engine.

- replay: request/response containers, record capture and replay
- state_machine: per-request classification, reconciliation and storage
- middleware: framework-agnostic entry point
- cleanup: periodic expiry sweep for in-process stores

The core is framework-agnostic and is wrapped by adapters for specific web
frameworks.
"""

from idempotency_replay.core.replay import ReplayedResponse, Request, serve_replay

__all__ = ["ReplayedResponse", "Request", "serve_replay"]
