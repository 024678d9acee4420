"""Validators for location domain rules. Pure functions, no infrastructure or DB access."""

import re
from datetime import date, datetime, time, timezone
from typing import Optional, Union

from tourist_tracking.domain.exceptions import InvalidArgumentError
from tourist_tracking.domain.models.location import LocationSample

# Coordinate and battery bounds (domain constants; avoid magic numbers)
LATITUDE_MIN = -90.0
LATITUDE_MAX = 90.0
LONGITUDE_MIN = -180.0
LONGITUDE_MAX = 180.0
BATTERY_MIN = 0.0
BATTERY_MAX = 100.0

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")

TimestampLike = Union[datetime, date, str]


def validate_tourist_id(tourist_id: str) -> None:
    """Tourist id must be a non-empty string. Raises InvalidArgumentError if invalid."""
    if not isinstance(tourist_id, str) or not tourist_id.strip():
        raise InvalidArgumentError("tourist_id must not be empty")


def parse_timestamp(value: TimestampLike, *, end_of_day: bool = False) -> datetime:
    """
    Normalize a datetime, date or ISO-8601 string to an aware UTC datetime.
    Naive datetimes are taken as UTC. Date-only values resolve to the start of the day,
    or to its last microsecond when end_of_day is set.
    Raises InvalidArgumentError if the value cannot be parsed.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.max if end_of_day else time.min)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidArgumentError("timestamp must not be empty")
        try:
            if _DATE_ONLY.match(text):
                day = date.fromisoformat(text)
                parsed = datetime.combine(day, time.max if end_of_day else time.min)
            else:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as e:
            raise InvalidArgumentError(f"unparseable timestamp: {value!r}") from e
    else:
        raise InvalidArgumentError(f"unparseable timestamp: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def validate_coordinates(longitude: float, latitude: float) -> None:
    if not (LATITUDE_MIN <= latitude <= LATITUDE_MAX):
        raise InvalidArgumentError(
            f"latitude must be between {LATITUDE_MIN} and {LATITUDE_MAX}, got {latitude}"
        )
    if not (LONGITUDE_MIN <= longitude <= LONGITUDE_MAX):
        raise InvalidArgumentError(
            f"longitude must be between {LONGITUDE_MIN} and {LONGITUDE_MAX}, got {longitude}"
        )


def validate_battery_level(battery_level: Optional[float]) -> None:
    if battery_level is None:
        return
    if not (BATTERY_MIN <= battery_level <= BATTERY_MAX):
        raise InvalidArgumentError(
            f"battery_level must be between {BATTERY_MIN} and {BATTERY_MAX}, got {battery_level}"
        )


def validate_location_sample(sample: LocationSample) -> None:
    """Validate a sample before it is routed. Raises InvalidArgumentError on violation."""
    validate_tourist_id(sample.tourist_id)
    validate_coordinates(sample.location.longitude, sample.location.latitude)
    validate_battery_level(sample.battery_level)
    if not isinstance(sample.timestamp, datetime):
        raise InvalidArgumentError("sample timestamp must be a datetime")


def validate_time_range(start: datetime, end: datetime) -> None:
    if start > end:
        raise InvalidArgumentError(
            f"start ({start.isoformat()}) must not be after end ({end.isoformat()})"
        )
