"""Demo FastAPI application with the idempotency replay engine.

Run with: python demo_app.py

Then try:
    KEY=$(python -c 'import uuid; print(uuid.uuid4())')
    curl -i -X POST localhost:8000/api/payments -H "Idempotency-Key: $KEY" \
        -H 'Content-Type: application/json' -d '{"amount": 100}'
    # repeat the same command: same body, plus Idempotent-Replayed: $KEY
"""

import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from idempotency_replay.adapters.asgi import ASGIIdempotencyMiddleware
from idempotency_replay.config import IdempotencyConfig
from idempotency_replay.core.cleanup import ExpirySweeper
from idempotency_replay.observability.logging import configure_logging
from idempotency_replay.storage import MemoryCacheStore, create_store

configure_logging(level="INFO", json_output=False)

config = IdempotencyConfig.from_env()
store = create_store(config)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    sweeper = None
    if isinstance(store, MemoryCacheStore):
        sweeper = ExpirySweeper(store, interval_seconds=300)
        sweeper.start()
    yield
    if sweeper is not None:
        await sweeper.stop()


app = FastAPI(
    title="Idempotency Replay Demo",
    description="Demo API showing idempotent request handling",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(ASGIIdempotencyMiddleware, store=store, config=config)


class PaymentRequest(BaseModel):
    amount: int
    currency: str = "USD"
    description: Optional[str] = None


class PaymentResponse(BaseModel):
    id: str
    status: str
    amount: int
    currency: str
    created_at: str


@app.get("/")
async def root():
    """Root endpoint - returns API info."""
    return {
        "name": "Idempotency Replay Demo",
        "version": "0.1.0",
        "endpoints": {
            "POST /api/payments": "Create idempotent payment",
            "GET /api/status": "Health check (not subject to idempotency)",
        },
        "usage": f"Send a UUIDv4 '{config.main_header_name}' header on "
        f"{', '.join(config.enabled_methods)} requests",
    }


@app.get("/api/status")
async def get_status():
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
    }


@app.post("/api/payments", response_model=PaymentResponse, status_code=201)
async def create_payment(payment: PaymentRequest):
    """Create a payment (idempotent).

    Amounts must be positive; a rejected amount is not cached, so the client
    can fix the payload and retry with the same key.
    """
    if payment.amount <= 0:
        raise HTTPException(status_code=422, detail="amount must be positive")

    return PaymentResponse(
        id=f"pay_{int(time.time() * 1000)}",
        status="success",
        amount=payment.amount,
        currency=payment.currency,
        created_at=datetime.now(UTC).isoformat(),
    )


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
