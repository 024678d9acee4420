"""Location application service. Orchestrates write routing, scatter-gather reads and erasure."""

import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from tourist_tracking.application.erasure import ErasureCoordinator, ErasureReport
from tourist_tracking.application.history_reader import HistoryPage, ScatterGatherReader
from tourist_tracking.application.tier_lookup import TouristProfileLookup, resolve_tier
from tourist_tracking.application.write_router import PersistedLocation, WriteRouter
from tourist_tracking.domain.exceptions import InvalidArgumentError
from tourist_tracking.domain.models.location import (
    RETENTION_POLICIES,
    LocationSample,
    LocationSource,
    UserTier,
)
from tourist_tracking.domain.validators.location_validator import (
    TimestampLike,
    parse_timestamp,
    validate_tourist_id,
)

DEFAULT_HISTORY_LIMIT = 1000
MAX_HISTORY_LIMIT = 10000


class LocationService:
    """
    Application-layer orchestration only. No HTTP, no FastAPI, no direct infrastructure.
    Exposes record_location, fetch_history and purge_tourist to the API layer.
    """

    def __init__(
        self,
        writer: WriteRouter,
        reader: ScatterGatherReader,
        erasure: ErasureCoordinator,
        profiles: TouristProfileLookup,
        logger: logging.Logger,
        *,
        default_limit: int = DEFAULT_HISTORY_LIMIT,
        max_limit: int = MAX_HISTORY_LIMIT,
        fixed_tier: Optional[UserTier] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._writer = writer
        self._reader = reader
        self._erasure = erasure
        self._profiles = profiles
        self._logger = logger
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._fixed_tier = fixed_tier
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def record_location(
        self,
        sample: LocationSample,
        *,
        trusted_timestamp: bool = False,
    ) -> PersistedLocation:
        """
        Persist one fix. The capture time is stamped here so clients cannot write into
        arbitrary past or future partitions; trusted internal callers may keep their own.
        """
        if not trusted_timestamp:
            sample = replace(sample, timestamp=self._clock())
        return await self._writer.write(sample)

    async def fetch_history(
        self,
        tourist_id: str,
        start: Optional[TimestampLike] = None,
        end: Optional[TimestampLike] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        *,
        source: Optional[LocationSource] = None,
        sort_descending: bool = True,
    ) -> HistoryPage:
        """
        One page of a tourist's history, newest first by default.
        start defaults to the tier's archive horizon (anything older has expired);
        end defaults to now, and a date-only end covers that whole day.
        limit defaults to default_limit and is capped at max_limit.
        """
        validate_tourist_id(tourist_id)
        if limit is None:
            limit = self._default_limit
        if limit < 1:
            raise InvalidArgumentError(f"limit must be >= 1, got {limit}")
        limit = min(limit, self._max_limit)

        tier = await resolve_tier(self._profiles, tourist_id, self._logger, self._fixed_tier)
        now = self._clock()
        end_ts = parse_timestamp(end, end_of_day=True) if end is not None else now
        if start is not None:
            start_ts = parse_timestamp(start)
        else:
            start_ts = min(now, end_ts) - timedelta(days=RETENTION_POLICIES[tier].archive)

        return await self._reader.query(
            tourist_id,
            start_ts,
            end_ts,
            limit,
            sort_descending,
            offset=offset,
            source=source,
            tier=tier,
        )

    async def purge_tourist(self, tourist_id: str) -> ErasureReport:
        """Data-subject deletion across every partition for the tourist's current tier."""
        report = await self._erasure.erase_all(tourist_id)
        self._logger.info(
            "tourist_purged",
            extra={
                "event": "tourist_purged",
                "tourist_id": tourist_id,
                "complete": report.complete,
                "records_deleted": report.records_deleted,
                "partitions_dropped": report.partitions_dropped,
            },
        )
        return report
