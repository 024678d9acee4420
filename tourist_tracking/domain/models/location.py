"""Domain model for location samples, tiers and retention. Pure business semantics: no ORM or infrastructure."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class LocationSource(str, Enum):
    """Where a fix came from."""

    GPS = "gps"
    NETWORK = "network"
    MANUAL = "manual"
    IOT_DEVICE = "iot_device"
    EMERGENCY = "emergency"


class UserTier(str, Enum):
    """Service class of a tourist. Controls shard granularity and retention horizon."""

    VIP = "vip"
    PREMIUM = "premium"
    STANDARD = "standard"


@dataclass(frozen=True)
class GeoPoint:
    """GeoJSON-style point. Longitude first."""

    longitude: float
    latitude: float

    @property
    def coordinates(self) -> tuple[float, float]:
        return (self.longitude, self.latitude)


@dataclass(frozen=True)
class LocationSample:
    """
    One GPS/IoT fix for a tourist. Immutable once written: samples are only
    ever deleted (erasure) or expired (retention), never updated.
    record_id is assigned by the store on insert.
    """

    tourist_id: str
    location: GeoPoint
    timestamp: datetime
    source: LocationSource = LocationSource.GPS
    accuracy: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    altitude: Optional[float] = None
    battery_level: Optional[float] = None
    device_id: Optional[str] = None
    network_info: Optional[Dict[str, Any]] = None
    context: Optional[Dict[str, Any]] = None
    record_id: Optional[str] = None


@dataclass(frozen=True)
class RetentionPolicy:
    """
    Day thresholds per tier. Only `archive` is enforced (as a hard TTL);
    hot/warm/cold are informational placement hints.
    """

    hot: int
    warm: int
    cold: int
    archive: int

    @property
    def archive_seconds(self) -> int:
        return self.archive * 24 * 60 * 60


RETENTION_POLICIES: Dict[UserTier, RetentionPolicy] = {
    UserTier.VIP: RetentionPolicy(hot=90, warm=365, cold=365 * 3, archive=365 * 10),
    UserTier.PREMIUM: RetentionPolicy(hot=60, warm=180, cold=365 * 2, archive=365 * 7),
    UserTier.STANDARD: RetentionPolicy(hot=30, warm=90, cold=365, archive=365 * 5),
}


@dataclass(frozen=True)
class TouristProfile:
    """Result of a tourist profile lookup: existence plus current tier."""

    tourist_id: str
    exists: bool
    tier: UserTier = UserTier.STANDARD
    attributes: Dict[str, Any] = field(default_factory=dict)
