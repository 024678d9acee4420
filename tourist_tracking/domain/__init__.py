"""Domain layer: models, schemas, validators, exceptions. Pure business logic only."""

from tourist_tracking.domain.exceptions import (
    DomainError,
    DomainValidationError,
    InvalidArgumentError,
)
from tourist_tracking.domain.models import (
    RETENTION_POLICIES,
    GeoPoint,
    LocationSample,
    LocationSource,
    RetentionPolicy,
    TouristProfile,
    UserTier,
)
from tourist_tracking.domain.validators import (
    parse_timestamp,
    validate_location_sample,
    validate_time_range,
    validate_tourist_id,
)

__all__ = [
    "DomainError",
    "DomainValidationError",
    "GeoPoint",
    "InvalidArgumentError",
    "LocationSample",
    "LocationSource",
    "RETENTION_POLICIES",
    "RetentionPolicy",
    "TouristProfile",
    "UserTier",
    "parse_timestamp",
    "validate_location_sample",
    "validate_time_range",
    "validate_tourist_id",
]
