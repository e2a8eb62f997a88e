"""Request/response containers, record capture and response replay.

This module holds the framework-neutral request and response types the
engine works with, and the conversions between requests, responses and
stored records:

1. ``reserve_record`` builds the RUNNING reservation for a first-use key.
2. ``capture_record`` turns a fresh handler response (plus the request that
   produced it) into an ``IdempotencyRecord``.
3. ``serve_replay`` turns a stored record back into a response, stamped with
   the replay headers.

Examples:
    Replaying a record::

        from idempotency_replay.config import IdempotencyConfig
        from idempotency_replay.core.replay import serve_replay

        response = serve_replay(record, key, IdempotencyConfig())
        # response.status == record.status_code
        # response.headers["Idempotent-Replayed"] == [key]
        # response.headers["Idempotency-Key"] == [key]
"""

from datetime import UTC, datetime

from idempotency_replay.config import IdempotencyConfig
from idempotency_replay.models import IdempotencyRecord, RecordState, encode_body
from idempotency_replay.utils.headers import add_idempotency_headers


class Request:
    """Abstract request representation.

    Framework adapters convert their own request objects into this form.

    Attributes:
        method: HTTP method (GET, POST, etc.)
        path: URL path, compared exactly during reconciliation
        headers: Request headers as dict
        body: Request body as bytes
    """

    def __init__(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        body: bytes,
    ) -> None:
        self.method = method
        self.path = path
        self.headers = headers
        self.body = body


class ReplayedResponse:
    """Represents an HTTP response flowing through the engine.

    Used both for handler responses on the fresh path and for responses
    rebuilt from a stored record.

    Attributes:
        status: HTTP status code (e.g., 200, 404, 500)
        headers: Response headers, each name mapped to its ordered values
        body: Response body as bytes
    """

    def __init__(self, status: int, headers: dict[str, list[str]], body: bytes) -> None:
        self.status = status
        self.headers = headers
        self.body = body


def reserve_record(key: str, request: Request) -> IdempotencyRecord:
    """Build the RUNNING reservation taken before the handler runs.

    It carries the request fingerprint so that concurrent reuse of the key
    with another body or path is still reported as a conflict.
    """
    return IdempotencyRecord(
        key=key,
        state=RecordState.RUNNING,
        request_path=request.path,
        request_body_b64=encode_body(request.body),
        created_at=datetime.now(UTC),
    )


def capture_record(
    key: str,
    request: Request,
    response: ReplayedResponse,
) -> IdempotencyRecord:
    """Build the record stored after a fresh request.

    The response headers are captured as the handler produced them, before
    the engine adds its own idempotency headers.

    Args:
        key: The idempotency key sent by the client
        request: The request that was executed
        response: The handler's response

    Returns:
        A new, immutable IdempotencyRecord
    """
    return IdempotencyRecord(
        key=key,
        state=RecordState.COMPLETED,
        status_code=response.status,
        response_headers={name: list(values) for name, values in response.headers.items()},
        response_body_b64=encode_body(response.body),
        request_path=request.path,
        request_body_b64=encode_body(request.body),
        created_at=datetime.now(UTC),
    )


def serve_replay(
    record: IdempotencyRecord,
    key: str,
    config: IdempotencyConfig,
) -> ReplayedResponse:
    """Reconstruct the stored response for a matching repeated request.

    The body, status and every stored header are restored, then both the
    replay marker header and the main idempotency header are set to the key,
    overwriting any stored values.

    Args:
        record: The record that reconciled as a match
        key: The idempotency key on the repeated request
        config: Engine configuration (header names)

    Returns:
        ReplayedResponse rebuilt from the record
    """
    headers = add_idempotency_headers(
        record.response_headers,
        key,
        main_header_name=config.main_header_name,
        repeated_header_name=config.repeated_header_name,
        is_replay=True,
    )

    assert record.status_code is not None
    return ReplayedResponse(
        status=record.status_code,
        headers=headers,
        body=record.get_response_body(),
    )
