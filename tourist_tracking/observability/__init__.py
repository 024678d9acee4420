"""Observability layer: in-process metrics. No external SaaS."""

from tourist_tracking.observability.metrics import MetricsCollector

__all__ = [
    "MetricsCollector",
]
