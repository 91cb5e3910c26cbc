"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Admission metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking admission attempts',
    ['outcome']  # admitted, insufficient, rejected, error
)

admission_latency = Histogram(
    'booking_admission_latency_seconds',
    'End-to-end booking admission latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

booking_transitions = Counter(
    'booking_transitions_total',
    'Booking lifecycle transitions',
    ['status']  # confirmed, cancelled
)

# Ledger metrics
ledger_reservations = Counter(
    'ledger_reservations_total',
    'Ledger reserve attempts',
    ['result']  # reserved, insufficient
)

ledger_compensations = Counter(
    'ledger_compensations_total',
    'Units released after a failed booking insert'
)

ledger_resyncs = Counter(
    'ledger_resyncs_total',
    'Ledger entries dropped for re-seeding after a failed release'
)

code_collisions = Counter(
    'booking_code_collisions_total',
    'Booking code candidates rejected as duplicates',
    ['stage']  # lookup, insert
)

# Scheduler metrics
scheduler_sweeps = Counter(
    'lifecycle_scheduler_sweeps_total',
    'Lifecycle scheduler sweeps',
    ['result']  # ok, error
)

resources_finished = Counter(
    'resources_finished_total',
    'Resources transitioned to finished by the scheduler'
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(outcome: str):
    """Record booking attempt. Outcome: admitted, insufficient, rejected, error"""
    booking_attempts.labels(outcome=outcome).inc()


def record_reservation(reserved: bool):
    """Record a ledger reserve decision."""
    result = "reserved" if reserved else "insufficient"
    ledger_reservations.labels(result=result).inc()


def record_transition(status: str):
    booking_transitions.labels(status=status).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
