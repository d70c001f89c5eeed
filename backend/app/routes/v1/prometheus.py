"""
Prometheus metrics endpoint for monitoring infrastructure.

Public and unauthenticated, as scrapers expect. Exposes the counters and
histograms recorded by service operations.
"""

from fastapi import APIRouter, Response

from app.monitoring.prometheus_metrics import prometheus_metrics

router = APIRouter(tags=["monitoring"])


@router.get("/prometheus", include_in_schema=False)
def get_prometheus_metrics() -> Response:
    """Return metrics in the Prometheus text exposition format."""
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
