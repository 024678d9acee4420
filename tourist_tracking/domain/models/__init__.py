"""Domain models. Pure business entities."""

from tourist_tracking.domain.models.location import (
    RETENTION_POLICIES,
    GeoPoint,
    LocationSample,
    LocationSource,
    RetentionPolicy,
    TouristProfile,
    UserTier,
)

__all__ = [
    "GeoPoint",
    "LocationSample",
    "LocationSource",
    "RETENTION_POLICIES",
    "RetentionPolicy",
    "TouristProfile",
    "UserTier",
]
