"""
Prometheus metrics collection for Regos.

Counts lifecycle traffic (creations, transitions, submissions, guard
denials) and times every public store operation.
"""

import time
from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from prometheus_client import Counter, Gauge, Histogram, start_http_server

from regos.kernel.errors import RegosError

# ============================================================================
# Registration Metrics
# ============================================================================

registrations_created_total = Counter(
    "regos_registrations_created_total",
    "Total number of registrations created",
    ["category", "initial_status"],
)

registration_transitions_total = Counter(
    "regos_registration_transitions_total",
    "Registration status transitions",
    ["from_status", "to_status"],
)

registration_views_total = Counter(
    "regos_registration_views_total",
    "Registration page views counted",
)

registrations_deleted_total = Counter(
    "regos_registrations_deleted_total",
    "Registrations deleted by their owner or an admin",
)

# ============================================================================
# Submission Metrics
# ============================================================================

submissions_received_total = Counter(
    "regos_submissions_received_total",
    "Total number of submissions accepted",
    ["anonymous"],
)

submissions_refused_total = Counter(
    "regos_submissions_refused_total",
    "Submissions refused before creation",
    ["reason"],  # closed, validation, not_found
)

submission_status_changes_total = Counter(
    "regos_submission_status_changes_total",
    "Submission status changes",
    ["from_status", "to_status"],
)

# ============================================================================
# Access Metrics
# ============================================================================

guard_denials_total = Counter(
    "regos_guard_denials_total",
    "Guarded mutations refused for lack of privilege",
    ["action"],
)

# ============================================================================
# Operation Metrics
# ============================================================================

operation_duration_seconds = Histogram(
    "regos_operation_duration_seconds",
    "Duration of store operations in seconds",
    ["operation"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

operations_total = Counter(
    "regos_operations_total",
    "Store operations by outcome",
    ["operation", "status"],  # status: success, rejected, failure
)

registrations_by_status = Gauge(
    "regos_registrations_by_status",
    "Registrations per effective status at last stats snapshot",
    ["status"],
)

P = ParamSpec("P")
R = TypeVar("R")


def track_operation(operation: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator tracking duration and outcome of a store operation.

    Business-rule errors count as "rejected", anything else as "failure".
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            status = "success"
            try:
                return func(*args, **kwargs)
            except RegosError:
                status = "rejected"
                raise
            except Exception:
                status = "failure"
                raise
            finally:
                operation_duration_seconds.labels(operation=operation).observe(
                    time.perf_counter() - start
                )
                operations_total.labels(operation=operation, status=status).inc()

        return wrapper

    return decorator


def start_metrics_server(port: int = 9090, addr: str = "0.0.0.0") -> None:
    """Start Prometheus metrics HTTP server on the given address and port."""
    start_http_server(port, addr=addr)


def update_status_gauges(counts: dict[str, int]) -> None:
    for status, count in counts.items():
        registrations_by_status.labels(status=status).set(count)
