"""Request fingerprint reconciliation.

A repeated key refers to the same logical operation only if the request
fingerprint (body and path) matches the one stored with the record. The body
is compared first, byte-for-byte; the path second, exactly. No
canonicalisation is applied to either: a retry must resend the same bytes to
the same route.
"""

from enum import Enum

from idempotency_replay.core.replay import Request
from idempotency_replay.models import IdempotencyRecord


class ReconcileResult(str, Enum):
    """Outcome of comparing a request against a stored record.

    Attributes:
        MATCH: Same body and same path; the stored response may be replayed.
        BODY_CONFLICT: The request body differs from the original.
        PATH_CONFLICT: Same body, but the request targets another route.
    """

    MATCH = "match"
    BODY_CONFLICT = "body_conflict"
    PATH_CONFLICT = "path_conflict"


def reconcile(record: IdempotencyRecord, request: Request) -> ReconcileResult:
    """Compare ``request`` with the fingerprint stored in ``record``.

    Args:
        record: The record found under the request's cache key
        request: The incoming request

    Returns:
        ReconcileResult; BODY_CONFLICT wins when both body and path differ.

    Examples:
        >>> reconcile(record, Request("POST", "/api/payments", {}, b'{"amount": 100}'))
        <ReconcileResult.MATCH: 'match'>
    """
    if request.body != record.get_request_body():
        return ReconcileResult.BODY_CONFLICT

    if request.path != record.request_path:
        return ReconcileResult.PATH_CONFLICT

    return ReconcileResult.MATCH
