"""Typed cache payload for the idempotency replay engine.

An ``IdempotencyRecord`` captures everything needed to replay the first
response for a key and to detect conflicting reuse of that key: the response
(status, headers, body) and the fingerprint of the request that produced it
(path and body).

A record has two states. A RUNNING record is the reservation written with
the store's insert-if-absent primitive before the handler runs; it holds the
request fingerprint but no response. It is replaced by the COMPLETED record
once the handler returns, or deleted if the outcome is not cached. The model
itself is frozen.

Bodies are stored base64-encoded so that binary payloads serialize the same
way through every store backend.

Examples:
    Creating a record::

        import base64
        from datetime import UTC, datetime

        record = IdempotencyRecord(
            key="1b4e28ba-2fa1-4d3b-a3f5-ef19b5a7633b",
            status_code=201,
            response_headers={"content-type": ["application/json"]},
            response_body_b64=base64.b64encode(b'{"id": 1}').decode("ascii"),
            request_path="/api/payments",
            request_body_b64=base64.b64encode(b'{"amount": 100}').decode("ascii"),
            created_at=datetime.now(UTC),
        )

    Reading the bodies back::

        record.get_response_body()   # b'{"id": 1}'
        record.get_request_body()    # b'{"amount": 100}'
"""

import base64
import binascii
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator


def encode_body(body: bytes) -> str:
    return base64.b64encode(body).decode("ascii")


class RecordState(str, Enum):
    """Lifecycle of a stored record.

    Attributes:
        RUNNING: Key reserved; the first request's handler is executing.
        COMPLETED: Response captured and replayable.
    """

    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"


class IdempotencyRecord(BaseModel):
    """Stored outcome of the first request made with an idempotency key.

    Attributes:
        key: The idempotency key provided by the client.
        state: RUNNING while reserved, COMPLETED once the response is stored.
        status_code: HTTP status of the stored response; None while RUNNING.
        response_headers: Response headers, each name mapped to its ordered
            values.
        response_body_b64: Base64-encoded response body.
        request_path: Path the original request targeted.
        request_body_b64: Base64-encoded original request body.
        created_at: When the record was captured. Expiry is enforced by the
            store, not by this timestamp.
    """

    key: str = Field(
        ...,
        description="Idempotency key provided by the client",
        min_length=1,
        examples=["1b4e28ba-2fa1-4d3b-a3f5-ef19b5a7633b"],
    )
    state: RecordState = Field(
        default=RecordState.COMPLETED,
        description="RUNNING reservation or COMPLETED response",
    )
    status_code: int | None = Field(
        default=None,
        description="HTTP status code of the stored response",
        ge=100,
        le=599,
        examples=[200, 201, 400, 500],
    )
    response_headers: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Response headers mapped to their ordered values",
        examples=[{"content-type": ["application/json"], "set-cookie": ["a=1", "b=2"]}],
    )
    response_body_b64: str = Field(
        default="",
        description="Base64-encoded response body",
    )
    request_path: str = Field(
        ...,
        description="Route/path the original request targeted",
        examples=["/api/payments"],
    )
    request_body_b64: str = Field(
        ...,
        description="Base64-encoded original request body",
    )
    created_at: datetime = Field(
        ...,
        description="Timestamp when the record was captured",
    )

    model_config = {"frozen": True}

    @field_validator("response_body_b64", "request_body_b64")
    @classmethod
    def validate_base64(cls, v: str) -> str:
        """Validate that a body field is strict base64.

        Raises:
            ValueError: If the string is not valid base64.
        """
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid base64 encoding: {e}") from e
        return v

    @model_validator(mode="after")
    def validate_completed_has_status(self) -> "IdempotencyRecord":
        if self.state is RecordState.COMPLETED and self.status_code is None:
            raise ValueError("a COMPLETED record needs a status_code")
        return self

    @property
    def is_running(self) -> bool:
        return self.state is RecordState.RUNNING

    def get_response_body(self) -> bytes:
        """Decode and return the stored response body."""
        return base64.b64decode(self.response_body_b64)

    def get_request_body(self) -> bytes:
        """Decode and return the original request body.

        Examples:
            >>> record.get_request_body()
            b'{"amount": 100}'
        """
        return base64.b64decode(self.request_body_b64)
