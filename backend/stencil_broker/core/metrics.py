"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

BUILD_COUNT = Counter(
    "stencil_broker_builds_total",
    "Compiler builds by outcome",
    labelnames=("status",),
    registry=REGISTRY,
)

BUILD_DURATION = Histogram(
    "stencil_broker_build_duration_seconds",
    "Wall time of a single compiler build",
    registry=REGISTRY,
)

GENERATION = Gauge(
    "stencil_broker_generation",
    "Most recently completed build generation",
    registry=REGISTRY,
)

TRANSFORM_COUNT = Counter(
    "stencil_broker_transforms_total",
    "Transform requests by outcome",
    labelnames=("outcome",),
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "BUILD_COUNT",
    "BUILD_DURATION",
    "GENERATION",
    "TRANSFORM_COUNT",
    "metrics_response",
]
