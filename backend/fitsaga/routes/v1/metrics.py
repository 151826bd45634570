# backend/fitsaga/routes/v1/metrics.py
"""Prometheus scrape endpoint."""

from fastapi import APIRouter, Response

from ...monitoring.prometheus_metrics import prometheus_metrics

router = APIRouter(tags=["metrics-v1"])


@router.get("/prometheus")
def get_prometheus_metrics() -> Response:
    return Response(content=prometheus_metrics.get_metrics(), media_type=prometheus_metrics.get_content_type())
