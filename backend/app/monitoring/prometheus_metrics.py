"""
Prometheus metrics module for the TuitionDesk backend.

Service timings come from the @measure_operation decorator; the term
adjustment engine adds outcome counters so operators can see how often
previews are confirmed and how often pricing fell back past the rate cards.
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
    "tuitiondesk_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "tuitiondesk_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "tuitiondesk_errors_total",
    "Total number of errors by type",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

audit_writes_total = Counter(
    "tuitiondesk_audit_writes_total",
    "Audit log rows written",
    ["entity_type", "action"],
    registry=REGISTRY,
)

term_adjustments_total = Counter(
    "tuitiondesk_term_adjustments_total",
    "Term adjustments by lifecycle stage and type",
    ["stage", "adjustment_type"],
    registry=REGISTRY,
)

term_adjustment_rate_fallbacks_total = Counter(
    "tuitiondesk_term_adjustment_rate_fallbacks_total",
    "Previews priced without a student or duration-matched rate card",
    ["source"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin facade over the module-level collectors."""

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
            service: Service name (e.g., 'TermAdjustmentWorkflow')
            operation: Operation/method name (e.g., 'confirm_term_adjustment')
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
    def record_audit_write(entity_type: str, action: str) -> None:
        audit_writes_total.labels(entity_type=entity_type, action=action).inc()

    @staticmethod
    def record_term_adjustment(stage: str, adjustment_type: str) -> None:
        term_adjustments_total.labels(stage=stage, adjustment_type=adjustment_type).inc()

    @staticmethod
    def record_rate_fallback(source: str) -> None:
        term_adjustment_rate_fallbacks_total.labels(source=source).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Render the registry in Prometheus text exposition format."""
        return generate_latest(REGISTRY)

    @staticmethod
    def get_content_type() -> str:
        return CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
