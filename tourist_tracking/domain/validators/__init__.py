"""Domain validators. Pure validation functions."""

from tourist_tracking.domain.validators.location_validator import (
    parse_timestamp,
    validate_battery_level,
    validate_coordinates,
    validate_location_sample,
    validate_time_range,
    validate_tourist_id,
)

__all__ = [
    "parse_timestamp",
    "validate_battery_level",
    "validate_coordinates",
    "validate_location_sample",
    "validate_time_range",
    "validate_tourist_id",
]
