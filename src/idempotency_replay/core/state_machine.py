"""Per-request state machine of the idempotency replay engine.

Every request walks exactly one path through these states::

    START -> (not applicable)                     -> PASSTHROUGH
    START -> (applicable, invalid key)            -> INVALID_KEY
    START -> (applicable, valid key, absent)      -> RESERVE
        RESERVE -> (won)                          -> FRESH -> store or release
        RESERVE -> (lost)                         -> RECONCILE
    START -> (applicable, valid key, present)     -> RECONCILE
        RECONCILE -> (body differs)               -> BODY_CONFLICT
        RECONCILE -> (path differs)               -> PATH_CONFLICT
        RECONCILE -> (match, RUNNING)             -> IN_PROGRESS
        RECONCILE -> (match, COMPLETED)           -> REPLAY

The handler runs at most once per request, and never for a replay or a
rejection. A first-use key is reserved with the store's insert-if-absent
before the handler runs, so of several requests racing on it only one
executes. Rejections are returned as error values in the StateResult; the
only exceptions that escape are the handler's own and store failures.

No state survives between requests apart from the stored record.

Examples:
    Processing a request::

        from idempotency_replay.core.state_machine import process_request

        result = await process_request(
            store=store,
            config=config,
            request=request,
            handler=handler,
            cache_key_for=lambda key: derive_cache_key(key, credential),
        )
        if result.is_rejected:
            ...
"""

import time
from collections.abc import Awaitable, Callable
from enum import Enum

from idempotency_replay.config import IdempotencyConfig
from idempotency_replay.core.replay import (
    ReplayedResponse,
    Request,
    capture_record,
    reserve_record,
    serve_replay,
)
from idempotency_replay.exceptions import (
    BodyConflictError,
    IdempotencyError,
    InvalidKeyError,
    PathConflictError,
    RequestInProgressError,
)
from idempotency_replay.fingerprint import ReconcileResult, reconcile
from idempotency_replay.keys import validate_idempotency_key
from idempotency_replay.models import IdempotencyRecord
from idempotency_replay.observability.logging import get_logger, short_key
from idempotency_replay.observability.metrics import (
    record_handler_duration,
    record_request,
    record_stored,
)
from idempotency_replay.storage.base import CacheStore
from idempotency_replay.utils.headers import (
    add_idempotency_headers,
    get_header_value,
    has_header,
)

logger = get_logger(__name__)

Handler = Callable[[Request], Awaitable[ReplayedResponse]]


class Applicability(str, Enum):
    NOT_APPLICABLE = "not_applicable"
    APPLICABLE = "applicable"


class Outcome(str, Enum):
    """Terminal state a request reached.

    Attributes:
        PASSTHROUGH: Protocol did not apply; handler response returned as-is.
        FRESH: First use of the key; handler ran.
        REPLAY: Stored response served; handler not run.
        INVALID_KEY: Key is not a version-4 UUID; handler not run.
        BODY_CONFLICT: Key reused with a different body; handler not run.
        PATH_CONFLICT: Key reused on a different path; handler not run.
        IN_PROGRESS: Key reserved by a request still executing; handler not run.
    """

    PASSTHROUGH = "passthrough"
    FRESH = "fresh"
    REPLAY = "replay"
    INVALID_KEY = "invalid_key"
    BODY_CONFLICT = "body_conflict"
    PATH_CONFLICT = "path_conflict"
    IN_PROGRESS = "in_progress"


class StateResult:
    """Result of state machine processing.

    Exactly one of ``response`` and ``error`` is set.

    Attributes:
        outcome: The terminal state reached
        response: Response to emit (PASSTHROUGH, FRESH, REPLAY)
        error: Rejection to render (INVALID_KEY, BODY_CONFLICT, PATH_CONFLICT,
            IN_PROGRESS)
        stored: True if a new record was written for this request
    """

    def __init__(
        self,
        outcome: Outcome,
        response: ReplayedResponse | None = None,
        error: IdempotencyError | None = None,
        stored: bool = False,
    ) -> None:
        self.outcome = outcome
        self.response = response
        self.error = error
        self.stored = stored

    @property
    def was_replayed(self) -> bool:
        return self.outcome is Outcome.REPLAY

    @property
    def is_rejected(self) -> bool:
        return self.error is not None

    @property
    def status(self) -> int:
        """HTTP status of the response or of the rejection."""
        if self.error is not None:
            return self.error.status_code
        assert self.response is not None
        return self.response.status

    def raise_for_error(self) -> ReplayedResponse:
        """Raise the carried rejection, or return the response.

        Raises:
            IdempotencyError: The InvalidKeyError, ConflictError subclass or
                RequestInProgressError describing the rejection.
        """
        if self.error is not None:
            raise self.error
        assert self.response is not None
        return self.response


def classify(request: Request, config: IdempotencyConfig) -> Applicability:
    """Decide whether the idempotency protocol applies to ``request``.

    It applies only if the method is enabled and the main header is present.
    """
    if not config.applies_to_method(request.method):
        return Applicability.NOT_APPLICABLE

    if not has_header(request.headers, config.main_header_name):
        return Applicability.NOT_APPLICABLE

    return Applicability.APPLICABLE


async def lookup(store: CacheStore, cache_key: str) -> IdempotencyRecord | None:
    """Fetch the live record for ``cache_key``; None means a fresh request."""
    return await store.get(cache_key)


def _finish(result: StateResult) -> StateResult:
    record_request(result.outcome.value, result.status)
    return result


async def process_request(
    store: CacheStore,
    config: IdempotencyConfig,
    request: Request,
    handler: Handler,
    cache_key_for: Callable[[str], str],
) -> StateResult:
    """Process a request through the state machine.

    Args:
        store: Cache store holding idempotency records
        config: Engine configuration
        request: The incoming request
        handler: Downstream handler, called at most once
        cache_key_for: Maps a validated idempotency key to its cache key

    Returns:
        StateResult with either a response or a rejection

    Raises:
        StorageError: If the store fails; never masked.
        Exception: Anything the handler raises; nothing is stored.
    """
    if classify(request, config) is Applicability.NOT_APPLICABLE:
        logger.debug("idempotency.passthrough", method=request.method, path=request.path)
        response = await handler(request)
        return _finish(StateResult(Outcome.PASSTHROUGH, response=response))

    key = get_header_value(request.headers, config.main_header_name) or ""

    if not validate_idempotency_key(key):
        logger.warning("idempotency.invalid_key", path=request.path)
        return _finish(StateResult(Outcome.INVALID_KEY, error=InvalidKeyError(key)))

    cache_key = cache_key_for(key)
    record = await lookup(store, cache_key)

    if record is None:
        return _finish(
            await process_fresh(store, config, request, handler, key=key, cache_key=cache_key)
        )

    return _finish(replay_or_reject(record, request, config, key=key, cache_key=cache_key))


def replay_or_reject(
    record: IdempotencyRecord,
    request: Request,
    config: IdempotencyConfig,
    key: str,
    cache_key: str,
) -> StateResult:
    """Reconcile a repeated request against its record and replay or reject."""
    result = reconcile(record, request)

    if result is ReconcileResult.BODY_CONFLICT:
        logger.warning(
            "idempotency.conflict",
            reason="body",
            cache_key=short_key(cache_key),
            path=request.path,
        )
        return StateResult(
            Outcome.BODY_CONFLICT,
            error=BodyConflictError(key, request.path, record.request_path),
        )

    if result is ReconcileResult.PATH_CONFLICT:
        logger.warning(
            "idempotency.conflict",
            reason="path",
            cache_key=short_key(cache_key),
            path=request.path,
            stored_path=record.request_path,
        )
        return StateResult(
            Outcome.PATH_CONFLICT,
            error=PathConflictError(key, request.path, record.request_path),
        )

    if record.is_running:
        logger.warning(
            "idempotency.in_progress",
            cache_key=short_key(cache_key),
            path=request.path,
        )
        return StateResult(Outcome.IN_PROGRESS, error=RequestInProgressError(key))

    response = serve_replay(record, key, config)
    logger.info(
        "idempotency.replayed",
        cache_key=short_key(cache_key),
        path=request.path,
        status_code=response.status,
    )
    return StateResult(Outcome.REPLAY, response=response)


async def process_fresh(
    store: CacheStore,
    config: IdempotencyConfig,
    request: Request,
    handler: Handler,
    key: str,
    cache_key: str,
) -> StateResult:
    """Reserve a first-use key, run the handler and store its outcome.

    The key is reserved with ``store.add`` before the handler runs; a request
    that loses that race is reconciled against whatever record won instead
    of executing. The reservation expires after
    ``config.reservation_seconds`` if this process dies mid-request.

    Responses whose status is in ``config.uncached_status_codes`` (422 by
    default) release the reservation and are returned unstored, so the
    client can correct the request and retry with the same key. A handler
    exception also releases it before propagating.
    """
    reservation = reserve_record(key, request)
    if not await store.add(cache_key, reservation, config.reservation_seconds):
        existing = await store.get(cache_key)
        if existing is None:
            # the winner released its reservation between add and get
            logger.warning(
                "idempotency.in_progress",
                cache_key=short_key(cache_key),
                path=request.path,
            )
            return StateResult(Outcome.IN_PROGRESS, error=RequestInProgressError(key))
        return replay_or_reject(existing, request, config, key=key, cache_key=cache_key)

    start = time.perf_counter()
    try:
        response = await handler(request)
    except Exception:
        await store.delete(cache_key)
        raise
    record_handler_duration(time.perf_counter() - start)

    stored = False
    if response.status in config.uncached_status_codes:
        await store.delete(cache_key)
        logger.info(
            "idempotency.not_cached",
            cache_key=short_key(cache_key),
            path=request.path,
            status_code=response.status,
        )
    else:
        record = capture_record(key, request, response)
        await store.put(cache_key, record, config.ttl_seconds)
        stored = True
        record_stored()
        logger.info(
            "idempotency.stored",
            cache_key=short_key(cache_key),
            path=request.path,
            status_code=response.status,
            ttl_seconds=config.ttl_seconds,
        )

    response.headers = add_idempotency_headers(
        response.headers,
        key,
        main_header_name=config.main_header_name,
        repeated_header_name=config.repeated_header_name,
        is_replay=False,
    )
    return StateResult(Outcome.FRESH, response=response, stored=stored)
