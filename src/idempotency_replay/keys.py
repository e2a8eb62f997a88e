"""Idempotency key validation and cache key derivation.

Clients must send a version-4 random UUID as the idempotency key. The
record for a key is addressed by a *cache key* that also folds in the
caller's bearer credential, so two tenants that happen to pick the same
UUID never see each other's responses.
"""

import hashlib
import re
import uuid

from idempotency_replay.utils.headers import get_header_value

CACHE_KEY_PREFIX = "idempotency"

# ASCII unit separator; cannot appear in a UUID and is not a valid token68 char
_SEPARATOR = "\x1f"

_HEX_UUID = r"(?:[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}|[0-9a-f]{32})"

# uuid.UUID() drops every dash and hands the rest to int(_, 16), which also
# takes "0x", "+" and "_"; the shape is checked here first.
UUID_PATTERN = re.compile(
    rf"(?:urn:uuid:)?(?:{_HEX_UUID}|\{{{_HEX_UUID}\}})",
    re.IGNORECASE,
)


def parse_idempotency_key(key: str) -> uuid.UUID | None:
    """Parse ``key`` as a version-4 RFC 4122 UUID.

    Accepted spellings are the canonical ``8-4-4-4-12`` form or 32 bare hex
    digits, in any case, optionally wrapped in braces or prefixed with
    ``urn:uuid:``.

    Returns:
        The parsed UUID, or None if the key is malformed or not version 4.
        ``uuid.UUID.version`` is only reported for the RFC 4122 variant, so
        the variant bits are checked as well.
    """
    if not isinstance(key, str) or UUID_PATTERN.fullmatch(key) is None:
        return None

    try:
        parsed = uuid.UUID(key)
    except (ValueError, TypeError, AttributeError):
        return None

    if parsed.version != 4:
        return None
    return parsed


def validate_idempotency_key(key: str) -> bool:
    """Return True if ``key`` is a valid version-4 UUID.

    Examples:
        >>> validate_idempotency_key("1b4e28ba-2fa1-4d3b-a3f5-ef19b5a7633b")
        True
        >>> validate_idempotency_key("fake-idempotency-key")
        False
        >>> validate_idempotency_key("a8098c1a-f86e-11da-bd1a-00112444be1e")  # v1
        False
    """
    return parse_idempotency_key(key) is not None


def extract_bearer_token(headers: dict[str, str]) -> str | None:
    """Extract the bearer token from an ``Authorization`` header.

    The scheme match is case-insensitive. Returns None when the header is
    missing, uses another scheme, or carries an empty token.

    Example:
        >>> extract_bearer_token({"authorization": "Bearer abc.def"})
        'abc.def'
    """
    value = get_header_value(headers, "authorization")
    if not value:
        return None

    scheme, _, token = value.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None

    token = token.strip()
    return token or None


def derive_cache_key(key: str, credential: str | None = None) -> str:
    """Derive the store address for an idempotency key.

    The key is canonicalised through ``uuid.UUID`` first so that spellings of
    the same UUID (case, braces, ``urn:uuid:``) share one record. The
    credential and key are joined with a separator that neither can contain
    and hashed, which keeps raw bearer tokens out of the store.

    Args:
        key: A key that already passed ``validate_idempotency_key``.
        credential: Bearer credential of the caller, if any.

    Returns:
        ``"idempotency:<sha256 hex>"``
    """
    canonical = str(uuid.UUID(key))
    material = f"{credential or ''}{_SEPARATOR}{canonical}"
    digest = hashlib.sha256(material.encode("utf-8")).hexdigest()
    return f"{CACHE_KEY_PREFIX}:{digest}"
