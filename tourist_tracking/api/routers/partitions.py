"""Partitions API router: GET /partitions/stats."""

from typing import Annotated

from fastapi import APIRouter, Depends

from tourist_tracking.api.dependencies import get_metrics, get_registry
from tourist_tracking.observability.metrics import MetricsCollector
from tourist_tracking.partitioning.registry import PartitionRegistry

router = APIRouter()


@router.get("/stats")
async def partition_stats(
    registry: Annotated[PartitionRegistry, Depends(get_registry)],
    metrics: Annotated[MetricsCollector, Depends(get_metrics)],
):
    """Registry view of known partitions plus process metrics."""
    return {
        "partitions": registry.stats(),
        "metrics": metrics.export_metrics(),
    }
