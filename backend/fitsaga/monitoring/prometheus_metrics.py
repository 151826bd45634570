"""
Prometheus metrics module for FitSaga.

Service timings come from the @measure_operation decorator; the ledger adds
counters for credit movements, resource locks and consistency violations.
"""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "fitsaga_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "fitsaga_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "fitsaga_errors_total",
    "Total number of errors by type",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

credit_movements_total = Counter(
    "fitsaga_credit_movements_total",
    "Credits moved through the ledger",
    ["category", "pool", "direction"],
    registry=REGISTRY,
)

resource_lock_events_total = Counter(
    "fitsaga_resource_lock_events_total",
    "Resource lock acquire/release outcomes",
    ["action", "outcome"],
    registry=REGISTRY,
)

consistency_violations_total = Counter(
    "fitsaga_consistency_violations_total",
    "Detected ledger/enrollment invariant violations",
    ["kind"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingService')
            operation: Operation/method name (e.g., 'book_session')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_credit_movement(category: str, pool: str, amount: int) -> None:
        if amount == 0:
            return
        direction = "credit" if amount > 0 else "debit"
        credit_movements_total.labels(category=category, pool=pool, direction=direction).inc(abs(amount))

    @staticmethod
    def record_resource_lock(action: str, outcome: str) -> None:
        resource_lock_events_total.labels(action=action, outcome=outcome).inc()

    @staticmethod
    def record_consistency_violation(kind: str) -> None:
        consistency_violations_total.labels(kind=kind).inc()

    @staticmethod
    def get_metrics() -> bytes:
        return generate_latest(REGISTRY)

    @staticmethod
    def get_content_type() -> str:
        return CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
