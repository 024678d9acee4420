"""Tourists API router: DELETE /tourists/{tourist_id}/location-data (data-subject erasure)."""

from typing import Annotated

from fastapi import APIRouter, Depends

from tourist_tracking.api.dependencies import get_location_service
from tourist_tracking.application.location_service import LocationService
from tourist_tracking.domain.schemas.location import (
    ErasureReportResponse,
    PartitionFailureResponse,
)

router = APIRouter()


@router.delete("/{tourist_id}/location-data", response_model=ErasureReportResponse)
async def purge_location_data(
    tourist_id: str,
    location_service: Annotated[LocationService, Depends(get_location_service)],
):
    """Erase every location sample of the tourist. complete=false means some partitions must be retried."""
    report = await location_service.purge_tourist(tourist_id)
    return ErasureReportResponse(
        tourist_id=report.tourist_id,
        tier=report.tier,
        partitions_scanned=report.partitions_scanned,
        partitions_dropped=report.partitions_dropped,
        partitions_purged=report.partitions_purged,
        records_deleted=report.records_deleted,
        complete=report.complete,
        failures=[
            PartitionFailureResponse(partition=f.partition, error=f.error) for f in report.failures
        ],
    )
