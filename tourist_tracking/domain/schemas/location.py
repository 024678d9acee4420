"""Pydantic schemas for the location API and serialization. Strict validation, no DB or infrastructure."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from tourist_tracking.domain.models.location import LocationSample, LocationSource, UserTier


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class NetworkInfo(BaseModel):
    provider: Optional[str] = None
    signal_strength: Optional[float] = None
    connection_type: Optional[str] = Field(None, pattern="^(wifi|4g|3g|2g|satellite)$")


class ActivityContext(BaseModel):
    activity: Optional[str] = Field(
        None, pattern="^(stationary|walking|running|driving|cycling|unknown)$"
    )
    confidence: Optional[float] = None
    weather: Optional[str] = None
    temperature: Optional[float] = None


class LocationUpdateRequest(BaseModel):
    """Request schema for recording a location fix. Timestamp is always server-assigned."""

    tourist_id: str = Field(..., min_length=1, description="Tourist identifier; must not be empty")
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    accuracy: Optional[float] = 10
    speed: Optional[float] = 0
    heading: Optional[float] = 0
    altitude: Optional[float] = 0
    battery_level: Optional[float] = Field(100, ge=0.0, le=100.0)
    source: LocationSource = LocationSource.GPS
    device_id: Optional[str] = None
    network_info: Optional[NetworkInfo] = None
    context: Optional[ActivityContext] = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class PersistedLocationResponse(BaseModel):
    record_id: str
    tourist_id: str
    partition: str
    timestamp: datetime
    degraded: bool = False


class LocationSampleResponse(BaseModel):
    """One sample as returned by the JSON history endpoint. Latitude/longitude split out."""

    id: Optional[str]
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    altitude: Optional[float] = None
    battery_level: Optional[float] = None
    timestamp: datetime
    source: LocationSource
    network_info: Optional[Dict[str, Any]] = None
    context: Optional[Dict[str, Any]] = None

    @classmethod
    def from_sample(cls, sample: LocationSample) -> "LocationSampleResponse":
        return cls(
            id=sample.record_id,
            latitude=sample.location.latitude,
            longitude=sample.location.longitude,
            accuracy=sample.accuracy,
            speed=sample.speed,
            heading=sample.heading,
            altitude=sample.altitude,
            battery_level=sample.battery_level,
            timestamp=sample.timestamp,
            source=sample.source,
            network_info=sample.network_info,
            context=sample.context,
        )


class Pagination(BaseModel):
    limit: int
    offset: int
    has_more: bool
    next_offset: Optional[int] = None


class HistoryResponse(BaseModel):
    """JSON history page. failed_partitions lists shards that could not be read."""

    tourist_id: str
    tier: UserTier
    returned_records: int
    pagination: Pagination
    start: datetime
    end: datetime
    source: Optional[LocationSource] = None
    partitions_queried: int
    failed_partitions: List[str] = Field(default_factory=list)
    locations: List[LocationSampleResponse]


class PartitionFailureResponse(BaseModel):
    partition: str
    error: str


class ErasureReportResponse(BaseModel):
    tourist_id: str
    tier: UserTier
    partitions_scanned: int
    partitions_dropped: int
    partitions_purged: int
    records_deleted: int
    complete: bool
    failures: List[PartitionFailureResponse] = Field(default_factory=list)
