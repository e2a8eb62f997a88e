"""Custom exceptions for the idempotency replay engine.

The rejection kinds (invalid key, body conflict, path conflict, request in
progress) are returned by the engine as error *values* inside a
``StateResult`` rather than raised; the calling layer decides how to render
them. They still inherit from ``Exception`` so callers that prefer raising
can use ``StateResult.raise_for_error()``.

``StorageError`` is different: store adapters raise it for backend failures
and the engine lets it propagate untouched.

Examples:
    Rendering a rejection in a web framework::

        result = await middleware.process(request, handler)
        if result.is_rejected:
            return JSONResponse(
                status_code=result.error.status_code,
                content={"message": result.error.message},
            )

    Handling a storage error::

        from idempotency_replay.exceptions import StorageError

        try:
            result = await middleware.process(request, handler)
        except StorageError as e:
            logger.error("idempotency.store_unavailable", error=str(e))
            raise
"""

INVALID_KEY_MESSAGE = (
    "The given idempotency key is invalid. Please ensure the key is a valid UUID value."
)
BODY_CONFLICT_MESSAGE = (
    "A resource has been created with this idempotency key but with different content."
)
PATH_CONFLICT_MESSAGE = (
    "A resource has been created with this idempotency key but on a different endpoint."
)
IN_PROGRESS_MESSAGE = (
    "A request with this idempotency key is still being processed. Retry later."
)

BAD_REQUEST = 400
CONFLICT = 409


class IdempotencyError(Exception):
    """Base exception for all idempotency-related errors.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status the calling layer should render (400 unless
            a subclass says otherwise).
    """

    def __init__(self, message: str, status_code: int = BAD_REQUEST) -> None:
        """Initialize the exception with a message.

        Args:
            message: Human-readable error description.
            status_code: HTTP status code to surface to the client.
        """
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class InvalidKeyError(IdempotencyError):
    """The idempotency key is not a version-4 UUID.

    Attributes:
        key: The rejected key exactly as the client sent it.
    """

    def __init__(self, key: str) -> None:
        super().__init__(INVALID_KEY_MESSAGE)
        self.key = key


class ConflictError(IdempotencyError):
    """A previously used key was reused for a different operation.

    The stored record's fingerprint (request body and path) does not match
    the incoming request. The handler is never invoked for a conflicting
    reuse.

    Attributes:
        key: The reused idempotency key.
        request_path: Path of the incoming (conflicting) request.
        stored_path: Path of the request that created the record.
    """

    reason = "fingerprint"

    def __init__(self, message: str, key: str, request_path: str, stored_path: str) -> None:
        super().__init__(message)
        self.key = key
        self.request_path = request_path
        self.stored_path = stored_path


class BodyConflictError(ConflictError):
    """Same key reused with a different request payload."""

    reason = "body"

    def __init__(self, key: str, request_path: str, stored_path: str) -> None:
        super().__init__(BODY_CONFLICT_MESSAGE, key, request_path, stored_path)


class PathConflictError(ConflictError):
    """Same key reused against a different endpoint."""

    reason = "path"

    def __init__(self, key: str, request_path: str, stored_path: str) -> None:
        super().__init__(PATH_CONFLICT_MESSAGE, key, request_path, stored_path)


class RequestInProgressError(IdempotencyError):
    """The key is reserved by a request whose handler has not finished.

    Rendered as 409 so the client retries once the first request completes.

    Attributes:
        key: The idempotency key.
    """

    def __init__(self, key: str) -> None:
        super().__init__(IN_PROGRESS_MESSAGE, status_code=CONFLICT)
        self.key = key


class StorageError(IdempotencyError):
    """Storage backend operation failed.

    Raised by store adapters when the backend cannot complete an operation
    (connection refused, timeout, corrupt payload). The engine does not
    catch it: a request whose idempotency state cannot be read or written is
    failed rather than executed without protection.

    Attributes:
        message: Human-readable error description.
        cause: The underlying backend exception, if any.

    Examples:
        Raising a storage error::

            try:
                raw = await self.client.get(key)
            except RedisError as e:
                raise StorageError(f"Failed to read {key}: {e}", cause=e) from e
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message, status_code=503)
        self.cause = cause
