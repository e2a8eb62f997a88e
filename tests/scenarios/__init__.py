"""End-to-end scenario tests for the idempotency replay engine.

Each scenario mounts the ASGI middleware on a small FastAPI app and drives
it through TestClient, counting how often the real endpoints execute.
"""
