"""Prometheus metrics for the idempotency replay engine.

Metrics:

- ``idempotency_requests_total{outcome,status_code}``: every request the
  engine handled, labelled by its outcome (passthrough, fresh, replay,
  invalid_key, body_conflict, path_conflict)
- ``idempotency_handler_duration_seconds``: downstream handler run time on
  the fresh path only
- ``idempotency_records_stored_total``: fresh records written to the store
- ``idempotency_cleanup_records_removed_total``: expired records removed by
  the cleanup task

Examples:
    >>> record_request("replay", 201)
    >>> record_handler_duration(0.150)
"""

from prometheus_client import Counter, Histogram

requests_total = Counter(
    "idempotency_requests_total",
    "Total number of requests processed by the idempotency engine",
    ["outcome", "status_code"],
)

handler_duration_seconds = Histogram(
    "idempotency_handler_duration_seconds",
    "Downstream handler execution time for fresh requests",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

records_stored = Counter(
    "idempotency_records_stored_total",
    "Total number of idempotency records written",
)

cleanup_operations = Counter(
    "idempotency_cleanup_operations_total",
    "Total number of cleanup operations performed",
)

cleanup_records_removed = Counter(
    "idempotency_cleanup_records_removed_total",
    "Total number of expired records removed by cleanup",
)


def record_request(outcome: str, status_code: int) -> None:
    """Record a processed request.

    Args:
        outcome: The engine outcome value
        status_code: HTTP status code of the response or rejection
    """
    requests_total.labels(outcome=outcome, status_code=str(status_code)).inc()


def record_handler_duration(seconds: float) -> None:
    handler_duration_seconds.observe(seconds)


def record_stored() -> None:
    records_stored.inc()


def record_cleanup(records_removed: int) -> None:
    """Record a cleanup operation.

    Args:
        records_removed: Number of expired records removed
    """
    cleanup_operations.inc()
    cleanup_records_removed.inc(records_removed)
