"""Locations API router: POST /locations, GET /locations/{tourist_id}/history."""

from datetime import datetime, timezone
from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response

from tourist_tracking.api import formatters
from tourist_tracking.api.dependencies import get_location_service
from tourist_tracking.application.location_service import LocationService
from tourist_tracking.domain.models.location import GeoPoint, LocationSample, LocationSource
from tourist_tracking.domain.schemas.location import (
    HistoryResponse,
    LocationUpdateRequest,
    PersistedLocationResponse,
)

router = APIRouter()


def _request_to_sample(req: LocationUpdateRequest) -> LocationSample:
    """Build domain LocationSample from API request. Timestamp is replaced by the service."""
    return LocationSample(
        tourist_id=req.tourist_id,
        location=GeoPoint(longitude=req.longitude, latitude=req.latitude),
        timestamp=datetime.now(timezone.utc),
        source=req.source,
        accuracy=req.accuracy,
        speed=req.speed,
        heading=req.heading,
        altitude=req.altitude,
        battery_level=req.battery_level,
        device_id=req.device_id,
        network_info=req.network_info.model_dump(exclude_none=True) if req.network_info else None,
        context=req.context.model_dump(exclude_none=True) if req.context else None,
    )


@router.post("", status_code=201, response_model=PersistedLocationResponse)
async def record_location(
    body: LocationUpdateRequest,
    location_service: Annotated[LocationService, Depends(get_location_service)],
):
    """Record one location fix in its partition. The server assigns the timestamp."""
    persisted = await location_service.record_location(_request_to_sample(body))
    return PersistedLocationResponse(
        record_id=persisted.record_id,
        tourist_id=persisted.tourist_id,
        partition=persisted.partition,
        timestamp=persisted.timestamp,
        degraded=persisted.degraded,
    )


@router.get("/{tourist_id}/history", response_model=HistoryResponse)
async def location_history(
    tourist_id: str,
    location_service: Annotated[LocationService, Depends(get_location_service)],
    start: Optional[str] = None,
    end: Optional[str] = None,
    limit: Annotated[Optional[int], Query(ge=1)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    source: Optional[LocationSource] = None,
    output_format: Annotated[Literal["json", "geojson", "csv"], Query(alias="format")] = "json",
):
    """History page, newest first. failed_partitions lists shards that could not be read."""
    page = await location_service.fetch_history(
        tourist_id,
        start=start,
        end=end,
        limit=limit,
        offset=offset,
        source=source,
    )
    if output_format == "csv":
        return Response(
            content=formatters.to_csv(page),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="location_history_{tourist_id}.csv"'},
        )
    if output_format == "geojson":
        return JSONResponse(content=formatters.to_geojson(page), media_type="application/geo+json")
    return formatters.to_json(page)
