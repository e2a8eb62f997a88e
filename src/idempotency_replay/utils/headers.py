"""Header lookup and manipulation utilities.

Request headers are plain ``dict[str, str]``. Response headers are
``dict[str, list[str]]`` so that repeated headers (``Set-Cookie``) keep every
value in order. All lookups are case-insensitive, as HTTP header names are.
"""

from collections.abc import Iterable


def get_header_value(
    headers: dict[str, str],
    header_name: str,
    default: str | None = None,
) -> str | None:
    """Get header value with case-insensitive lookup.

    Args:
        headers: Headers dictionary
        header_name: Name of header to find (case-insensitive)
        default: Default value if header not found

    Returns:
        Header value or default

    Example:
        >>> get_header_value({"Content-Type": "application/json"}, "content-type")
        'application/json'
        >>> get_header_value({}, "missing", "default")
        'default'
    """
    header_name_lower = header_name.lower()

    for key, value in headers.items():
        if key.lower() == header_name_lower:
            return value

    return default


def has_header(headers: dict[str, str], header_name: str) -> bool:
    return get_header_value(headers, header_name) is not None


def group_header_items(items: Iterable[tuple[str, str]]) -> dict[str, list[str]]:
    """Group raw ``(name, value)`` pairs into the multi-value header form.

    Names that differ only in case are merged under the first spelling seen.

    Example:
        >>> group_header_items([("Set-Cookie", "a=1"), ("set-cookie", "b=2")])
        {'Set-Cookie': ['a=1', 'b=2']}
    """
    canonical_keys: dict[str, str] = {}
    grouped: dict[str, list[str]] = {}

    for name, value in items:
        key = canonical_keys.setdefault(name.lower(), name)
        grouped.setdefault(key, []).append(value)

    return grouped


def set_header(
    headers: dict[str, list[str]],
    header_name: str,
    value: str,
) -> dict[str, list[str]]:
    """Return a copy of ``headers`` with ``header_name`` set to a single value.

    Any existing entry with the same name in a different case is replaced.

    Example:
        >>> set_header({"idempotency-key": ["old"]}, "Idempotency-Key", "new")
        {'Idempotency-Key': ['new']}
    """
    header_name_lower = header_name.lower()
    result = {
        key: list(values)
        for key, values in headers.items()
        if key.lower() != header_name_lower
    }
    result[header_name] = [value]
    return result


def add_idempotency_headers(
    headers: dict[str, list[str]],
    idempotency_key: str,
    main_header_name: str,
    repeated_header_name: str,
    is_replay: bool,
) -> dict[str, list[str]]:
    """Stamp the idempotency headers onto response headers.

    The main header is always set to the key. The repeated header is set
    only for replays; for a first response any stale repeated header copied
    from the handler is left as the handler produced it.

    Args:
        headers: Existing response headers
        idempotency_key: The key used for this request
        main_header_name: Name of the main idempotency header
        repeated_header_name: Name of the replay marker header
        is_replay: Whether the response is served from a stored record

    Returns:
        New headers dictionary; ``headers`` is not mutated.

    Example:
        >>> add_idempotency_headers(
        ...     {"content-type": ["text/plain"]},
        ...     "abc",
        ...     "Idempotency-Key",
        ...     "Idempotent-Replayed",
        ...     is_replay=True,
        ... )
        {'content-type': ['text/plain'], 'Idempotency-Key': ['abc'], 'Idempotent-Replayed': ['abc']}
    """
    result = set_header(headers, main_header_name, idempotency_key)

    if is_replay:
        result = set_header(result, repeated_header_name, idempotency_key)

    return result
