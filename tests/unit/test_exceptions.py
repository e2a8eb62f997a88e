"""Unit tests for custom exceptions.

Tests in this module verify the exception hierarchy, the fixed client-facing
messages, and the context each rejection carries.
"""

import pytest

from idempotency_replay.exceptions import (
    BODY_CONFLICT_MESSAGE,
    IN_PROGRESS_MESSAGE,
    INVALID_KEY_MESSAGE,
    PATH_CONFLICT_MESSAGE,
    BodyConflictError,
    ConflictError,
    IdempotencyError,
    InvalidKeyError,
    PathConflictError,
    RequestInProgressError,
    StorageError,
)

KEY = "1b4e28ba-2fa1-4d3b-a3f5-ef19b5a7633b"


class TestIdempotencyError:
    """Test suite for the base IdempotencyError exception."""

    def test_creation(self):
        error = IdempotencyError("Test error message")

        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.status_code == 400

    def test_custom_status(self):
        assert IdempotencyError("x", status_code=409).status_code == 409

    def test_can_be_raised(self):
        with pytest.raises(IdempotencyError, match="Test error"):
            raise IdempotencyError("Test error")


class TestFixedMessages:
    """The client-facing messages are part of the wire contract."""

    def test_invalid_key_message(self):
        assert INVALID_KEY_MESSAGE == (
            "The given idempotency key is invalid. "
            "Please ensure the key is a valid UUID value."
        )

    def test_body_conflict_message(self):
        assert BODY_CONFLICT_MESSAGE == (
            "A resource has been created with this idempotency key "
            "but with different content."
        )

    def test_path_conflict_message(self):
        assert PATH_CONFLICT_MESSAGE == (
            "A resource has been created with this idempotency key "
            "but on a different endpoint."
        )

    def test_in_progress_message(self):
        assert IN_PROGRESS_MESSAGE == (
            "A request with this idempotency key is still being processed. Retry later."
        )


class TestInvalidKeyError:
    def test_carries_key_and_message(self):
        error = InvalidKeyError("not-a-uuid")

        assert error.key == "not-a-uuid"
        assert error.message == INVALID_KEY_MESSAGE
        assert error.status_code == 400
        assert isinstance(error, IdempotencyError)


class TestConflictErrors:
    def test_body_conflict(self):
        error = BodyConflictError(KEY, "/api/payments", "/api/payments")

        assert isinstance(error, ConflictError)
        assert error.message == BODY_CONFLICT_MESSAGE
        assert error.reason == "body"
        assert error.key == KEY
        assert error.status_code == 400

    def test_path_conflict(self):
        error = PathConflictError(KEY, "/api/refunds", "/api/payments")

        assert isinstance(error, ConflictError)
        assert error.message == PATH_CONFLICT_MESSAGE
        assert error.reason == "path"
        assert error.request_path == "/api/refunds"
        assert error.stored_path == "/api/payments"

    def test_conflicts_caught_as_base(self):
        with pytest.raises(ConflictError):
            raise PathConflictError(KEY, "/a", "/b")


class TestRequestInProgressError:
    def test_conflict_status_and_message(self):
        error = RequestInProgressError(KEY)

        assert error.key == KEY
        assert error.status_code == 409
        assert error.message == IN_PROGRESS_MESSAGE

    def test_is_not_a_fingerprint_conflict(self):
        assert not isinstance(RequestInProgressError(KEY), ConflictError)


class TestStorageError:
    def test_status_and_cause(self):
        cause = ConnectionError("refused")
        error = StorageError("Redis unavailable", cause=cause)

        assert error.message == "Redis unavailable"
        assert error.status_code == 503
        assert error.cause is cause

    def test_cause_optional(self):
        assert StorageError("boom").cause is None

    def test_is_idempotency_error(self):
        with pytest.raises(IdempotencyError):
            raise StorageError("boom")
