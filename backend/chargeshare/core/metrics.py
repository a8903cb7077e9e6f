"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Reservation lifecycle metrics
reservation_transitions = Counter(
    'reservation_transitions_total',
    'Reservation state transitions',
    ['kind', 'transition', 'result']  # kind: booking, request; result: success or error kind
)

reservation_latency = Histogram(
    'reservation_latency_seconds',
    'Reservation transition latency',
    ['kind'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Slot inventory metrics
slot_operations = Counter(
    'slot_operations_total',
    'Slot reserve/release operations',
    ['operation', 'result']  # reserve/release; ok, no_capacity, clamped, not_found
)

# Ledger metrics
green_points_awarded = Counter(
    'green_points_awarded_total',
    'Green points requested by award_session (before ceiling clamp)'
)

green_points_revoked = Counter(
    'green_points_revoked_total',
    'Green points requested by revoke_points (before floor clamp)'
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

redis_available = Gauge(
    'redis_available',
    'Redis availability (1=connected, 0=disabled or unreachable)'
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_transition(kind: str, transition: str, result: str = "success"):
    """Record a reservation transition. Result: success or an error kind."""
    reservation_transitions.labels(kind=kind, transition=transition, result=result).inc()


def record_slot_operation(operation: str, result: str):
    slot_operations.labels(operation=operation, result=result).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
