"""Write path: route one location sample to its partition and persist it."""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from tourist_tracking.application.exceptions import PartitionIOError
from tourist_tracking.application.tier_lookup import TouristProfileLookup, resolve_tier
from tourist_tracking.domain.models.location import LocationSample, UserTier
from tourist_tracking.domain.validators.location_validator import (
    parse_timestamp,
    validate_location_sample,
)
from tourist_tracking.observability.metrics import MetricsCollector
from tourist_tracking.partitioning.io import guarded_io
from tourist_tracking.partitioning.key_policy import PartitionKeyPolicy
from tourist_tracking.partitioning.registry import PartitionRegistry


@dataclass(frozen=True)
class PersistedLocation:
    """Result of persisting a sample. degraded is set when the partition lacks an index or TTL rule."""

    record_id: str
    tourist_id: str
    partition: str
    tier: UserTier
    timestamp: datetime
    degraded: bool = False


class WriteRouter:
    """
    Tier lookup -> partition name -> resolve (create if needed) -> insert.
    A failed tier lookup never blocks the write (standard tier is used).
    Failures that prevent persistence propagate as PartitionIOError.
    """

    def __init__(
        self,
        policy: PartitionKeyPolicy,
        registry: PartitionRegistry,
        profiles: TouristProfileLookup,
        logger: logging.Logger,
        *,
        io_timeout_seconds: float = 5.0,
        fixed_tier: Optional[UserTier] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._policy = policy
        self._registry = registry
        self._profiles = profiles
        self._logger = logger
        self._timeout = io_timeout_seconds
        self._fixed_tier = fixed_tier
        self._metrics = metrics

    async def write(self, sample: LocationSample) -> PersistedLocation:
        """
        Persist sample in the partition derived from its timestamp. The timestamp is
        expected to be server-assigned; callers must not pass client clocks through.
        """
        validate_location_sample(sample)
        timestamp = parse_timestamp(sample.timestamp)
        sample = replace(sample, timestamp=timestamp)
        tier = await resolve_tier(self._profiles, sample.tourist_id, self._logger, self._fixed_tier)
        name = self._policy.partition_name(sample.tourist_id, timestamp, tier)

        handle = await self._registry.resolve(name, tier)
        try:
            record_id = await guarded_io(
                self._registry.store.insert(handle, sample),
                partition=name,
                operation="insert",
                timeout=self._timeout,
            )
        except PartitionIOError as e:
            # Handle may be stale: another process can drop the partition.
            self._registry.forget(name)
            self._logger.warning(
                "location_write_failed",
                extra={"tourist_id": sample.tourist_id, "partition": name, "error": e.message},
            )
            raise

        self._logger.info(
            "location_written",
            extra={
                "tourist_id": sample.tourist_id,
                "partition": name,
                "tier": tier.value,
                "record_id": record_id,
                "degraded": handle.degraded,
            },
        )
        if self._metrics:
            self._metrics.increment("location_written", tier=tier.value)
        return PersistedLocation(
            record_id=record_id,
            tourist_id=sample.tourist_id,
            partition=name,
            tier=tier,
            timestamp=timestamp,
            degraded=handle.degraded,
        )
