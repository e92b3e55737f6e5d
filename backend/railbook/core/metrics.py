"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'railbook_booking_attempts_total',
    'Total booking attempts',
    ['outcome']  # CNF, RAC, WAIT, duplicate, exhausted, error
)

cancellations = Counter(
    'railbook_cancellations_total',
    'Reservations cancelled, by tier held at cancellation',
    ['tier']
)

promotions = Counter(
    'railbook_promotions_total',
    'Reservations promoted to a higher tier',
    ['from_tier', 'to_tier']
)

# Ledger metrics
transaction_aborts = Counter(
    'railbook_transaction_aborts_total',
    'Transaction scopes rolled back due to ledger faults',
    ['operation']
)

ledger_read_failures = Counter(
    'railbook_ledger_read_failures_total',
    'Ledger reads that failed',
    ['operation']
)

transaction_latency = Histogram(
    'railbook_transaction_latency_seconds',
    'Time spent inside a write transaction scope, lock wait included',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Pool state, refreshed whenever availability is computed
tier_occupancy = Gauge(
    'railbook_tier_occupancy',
    'Reservations currently held per tier',
    ['tier']
)

# Cache metrics
cache_operations = Counter(
    'railbook_cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get: hit/miss, set: stored/stale, invalidate: ok
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


# Convenience functions for instrumentation
def record_booking_attempt(outcome: str):
    """Record booking attempt. Outcome: the tier assigned, or duplicate, exhausted, error"""
    booking_attempts.labels(outcome=outcome).inc()


def record_cancellation(tier: str):
    cancellations.labels(tier=tier).inc()


def record_promotion(from_tier: str, to_tier: str):
    promotions.labels(from_tier=from_tier, to_tier=to_tier).inc()


def record_transaction_abort(operation: str):
    transaction_aborts.labels(operation=operation).inc()


def record_read_failure(operation: str):
    ledger_read_failures.labels(operation=operation).inc()


def record_occupancy(tier: str, count: int):
    tier_occupancy.labels(tier=tier).set(count)


def record_cache_operation(operation: str, result: str):
    cache_operations.labels(operation=operation, result=result).inc()
