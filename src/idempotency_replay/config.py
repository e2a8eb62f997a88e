"""Configuration module for the idempotency replay engine.

This module provides the IdempotencyConfig class, passed explicitly to the
engine at construction time. It names the response headers, the record
lifetime, the HTTP methods subject to the protocol and the storage backend.

Example:
    Basic usage with defaults:

        >>> config = IdempotencyConfig()
        >>> config.enabled_methods
        ['POST']
        >>> config.ttl_seconds
        21600

    Custom configuration:

        >>> config = IdempotencyConfig(
        ...     enabled_methods=["POST", "PUT", "PATCH", "DELETE"],
        ...     expiration_minutes=60,
        ...     storage_backend="redis",
        ...     redis_url="redis://cache:6379/1",
        ... )

    Loading from environment:

        >>> import os
        >>> os.environ['IDEMPOTENCY_HTTP_METHODS'] = 'POST,PUT'
        >>> os.environ['IDEMPOTENCY_EXPIRATION_TIME'] = '120'
        >>> config = IdempotencyConfig.from_env()
"""

import os
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

VALID_HTTP_METHODS = {
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "DELETE",
    "CONNECT",
    "OPTIONS",
    "TRACE",
    "PATCH",
}

# 7 days
MAX_EXPIRATION_MINUTES = 10080

# 1 hour
MAX_RESERVATION_SECONDS = 3600

# Field name -> environment variable name
ENV_VARS = {
    "main_header_name": "IDEMPOTENCY_MAIN_HEADER",
    "repeated_header_name": "IDEMPOTENCY_REPEATED_HEADER",
    "expiration_minutes": "IDEMPOTENCY_EXPIRATION_TIME",
    "reservation_seconds": "IDEMPOTENCY_RESERVATION_TIME",
    "enabled_methods": "IDEMPOTENCY_HTTP_METHODS",
    "uncached_status_codes": "IDEMPOTENCY_UNCACHED_STATUS_CODES",
    "storage_backend": "IDEMPOTENCY_STORAGE_BACKEND",
    "redis_url": "IDEMPOTENCY_REDIS_URL",
}


def _split_csv(v: Any) -> Any:
    if isinstance(v, str):
        return [item.strip() for item in v.split(",") if item.strip()]
    return v


class IdempotencyConfig(BaseModel):
    """Configuration for the idempotency replay engine.

    Attributes:
        main_header_name: Request header carrying the idempotency key. It is
            also set on every successful applicable response. Default is
            "Idempotency-Key".
        repeated_header_name: Response header set only on replays, valued as
            the idempotency key. Default is "Idempotent-Replayed".
        expiration_minutes: Record lifetime in minutes, enforced by the store.
            Must be between 1 and 10080 (7 days). Default is 360 (6 hours).
        reservation_seconds: Lifetime of the RUNNING reservation taken before
            the handler runs. If the process dies mid-request the key frees up
            after this long. Must be between 1 and 3600. Default is 60.
        enabled_methods: HTTP methods subject to the protocol. Default is
            ["POST"].
        uncached_status_codes: Handler statuses that are never stored, so the
            same key can be retried. Default is [422].
        storage_backend: Store built by ``storage.create_store``: "memory" or
            "redis". Default is "memory".
        redis_url: Connection URL used when storage_backend is "redis".

    Note:
        This class is immutable (frozen=True). Create a new instance if you
        need different settings.
    """

    main_header_name: str = Field(
        default="Idempotency-Key",
        description="Request/response header carrying the idempotency key",
    )
    repeated_header_name: str = Field(
        default="Idempotent-Replayed",
        description="Response header marking a replayed response",
    )
    expiration_minutes: int = Field(
        default=360,
        description="Record lifetime in minutes (1-10080)",
    )
    reservation_seconds: int = Field(
        default=60,
        description="RUNNING reservation lifetime in seconds (1-3600)",
    )
    enabled_methods: list[str] = Field(
        default=["POST"],
        description="HTTP methods subject to the idempotency protocol",
    )
    uncached_status_codes: list[int] = Field(
        default=[422],
        description="Handler response statuses that are never cached",
    )
    storage_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Cache store backend",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Connection URL for the Redis store",
    )

    model_config = {"frozen": True}

    @field_validator("main_header_name", "repeated_header_name")
    @classmethod
    def validate_header_name(cls, v: str) -> str:
        """Reject blank header names and strip surrounding whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("header names must not be empty")
        return v

    @field_validator("expiration_minutes")
    @classmethod
    def validate_expiration_minutes(cls, v: int) -> int:
        """Validate the record lifetime is within range.

        Raises:
            ValueError: If not between 1 and 10080 minutes.
        """
        if not (1 <= v <= MAX_EXPIRATION_MINUTES):
            raise ValueError(
                f"expiration_minutes must be between 1 and {MAX_EXPIRATION_MINUTES} "
                f"(7 days), got {v}"
            )
        return v

    @field_validator("reservation_seconds")
    @classmethod
    def validate_reservation_seconds(cls, v: int) -> int:
        if not (1 <= v <= MAX_RESERVATION_SECONDS):
            raise ValueError(
                f"reservation_seconds must be between 1 and {MAX_RESERVATION_SECONDS}, got {v}"
            )
        return v

    @field_validator("enabled_methods", mode="before")
    @classmethod
    def validate_enabled_methods(cls, v: Any) -> list[str]:
        """Validate and normalize enabled HTTP methods.

        Accepts a list or a comma-separated string (as read from the
        environment), upper-cases each entry and checks it against the known
        HTTP methods.

        Raises:
            ValueError: If the list is empty or holds an unknown method.

        Example:
            >>> IdempotencyConfig(enabled_methods="post, put").enabled_methods
            ['POST', 'PUT']
        """
        v = _split_csv(v)
        if not isinstance(v, list):
            raise ValueError("enabled_methods must be a list or comma-separated string")

        methods: list[str] = []
        for method in v:
            upper = str(method).strip().upper()
            if upper not in methods:
                methods.append(upper)

        if not methods:
            raise ValueError("enabled_methods must name at least one method")

        invalid_methods = set(methods) - VALID_HTTP_METHODS
        if invalid_methods:
            raise ValueError(
                f"Invalid HTTP methods: {', '.join(sorted(invalid_methods))}. "
                f"Valid methods are: {', '.join(sorted(VALID_HTTP_METHODS))}"
            )
        return methods

    @field_validator("uncached_status_codes", mode="before")
    @classmethod
    def validate_uncached_status_codes(cls, v: Any) -> list[int]:
        """Parse status codes and check they are valid HTTP statuses."""
        v = _split_csv(v)
        if not isinstance(v, list):
            raise ValueError("uncached_status_codes must be a list or comma-separated string")

        codes = [int(code) for code in v]
        out_of_range = [code for code in codes if not (100 <= code <= 599)]
        if out_of_range:
            raise ValueError(f"Invalid HTTP status codes: {out_of_range}")
        return codes

    @model_validator(mode="after")
    def validate_distinct_headers(self) -> "IdempotencyConfig":
        """Ensure the main and repeated headers are different headers."""
        if self.main_header_name.lower() == self.repeated_header_name.lower():
            raise ValueError("main_header_name and repeated_header_name must differ")
        return self

    @property
    def ttl_seconds(self) -> int:
        """Record lifetime in seconds, as handed to the cache store."""
        return self.expiration_minutes * 60

    def applies_to_method(self, method: str) -> bool:
        return method.upper() in self.enabled_methods

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "IdempotencyConfig":
        """Create configuration from environment variables.

        See ``ENV_VARS`` for the variable names. Missing variables fall back
        to the model defaults.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            IdempotencyConfig populated from the environment.

        Example:
            >>> config = IdempotencyConfig.from_env({"IDEMPOTENCY_EXPIRATION_TIME": "60"})
            >>> config.expiration_minutes
            60
        """
        if environ is None:
            environ = os.environ

        config_dict: dict[str, Any] = {}
        for field_name, env_var in ENV_VARS.items():
            env_value = environ.get(env_var)
            if env_value is not None:
                config_dict[field_name] = env_value

        return cls(**config_dict)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "IdempotencyConfig":
        """Create configuration from a dictionary.

        Raises:
            ValidationError: If the dictionary contains invalid values.
        """
        return cls(**config_dict)
