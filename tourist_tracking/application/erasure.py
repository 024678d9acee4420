"""Erasure path: remove every location sample of one tourist from every partition that may hold it."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from tourist_tracking.application.exceptions import PartitionError
from tourist_tracking.application.partition_store import PartitionFailure, SampleFilter
from tourist_tracking.application.tier_lookup import TouristProfileLookup, resolve_tier
from tourist_tracking.domain.models.location import UserTier
from tourist_tracking.domain.validators.location_validator import validate_tourist_id
from tourist_tracking.observability.metrics import MetricsCollector
from tourist_tracking.partitioning.io import guarded_io
from tourist_tracking.partitioning.key_policy import (
    PARTITION_PREFIX,
    PartitionKeyPolicy,
    lookback_start,
)
from tourist_tracking.partitioning.registry import PartitionRegistry

CATALOG = f"{PARTITION_PREFIX}_*"


@dataclass(frozen=True)
class ErasureReport:
    """Audit record of one erasure. complete is False when any partition failed; rerun to retry."""

    tourist_id: str
    tier: UserTier
    partitions_scanned: int
    partitions_dropped: int = 0
    partitions_purged: int = 0
    records_deleted: int = 0
    failures: List[PartitionFailure] = field(default_factory=list)

    @property
    def partitions_touched(self) -> int:
        return self.partitions_dropped + self.partitions_purged

    @property
    def complete(self) -> bool:
        return not self.failures


class ErasureCoordinator:
    """
    Sweeps the tourist's partitions for the current tier across the lookback window,
    plus any matching partition listed in the store catalog.

    vip (dedicated partitions): each existing partition is dropped.
    premium/standard (shared partitions): samples are deleted by tourist_id; the
    partition stays because other tourists' samples live there too.

    Individual partition failures are collected in the report; the sweep always
    runs to the end.

    Only the current tier is consulted. Samples written while the tourist had a
    different tier live under another shard label and are not found here.
    """

    def __init__(
        self,
        policy: PartitionKeyPolicy,
        registry: PartitionRegistry,
        profiles: TouristProfileLookup,
        logger: logging.Logger,
        *,
        io_timeout_seconds: float = 5.0,
        lookback_years: int = 10,
        max_concurrency: int = 8,
        fixed_tier: Optional[UserTier] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._policy = policy
        self._registry = registry
        self._profiles = profiles
        self._logger = logger
        self._timeout = io_timeout_seconds
        self._lookback_years = lookback_years
        self._max_concurrency = max_concurrency
        self._fixed_tier = fixed_tier
        self._metrics = metrics
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def erase_all(self, tourist_id: str, *, tier: Optional[UserTier] = None) -> ErasureReport:
        validate_tourist_id(tourist_id)
        if tier is None:
            tier = await resolve_tier(self._profiles, tourist_id, self._logger, self._fixed_tier)
        dedicated = self._policy.is_dedicated(tier)
        self._logger.info(
            "erasure_started",
            extra={"tourist_id": tourist_id, "tier": tier.value, "dedicated": dedicated},
        )

        failures: List[PartitionFailure] = []
        names = await self._candidate_names(tourist_id, tier, failures)

        semaphore = asyncio.Semaphore(self._max_concurrency)
        sample_filter = SampleFilter(tourist_id=tourist_id)

        async def erase_one(name: str):
            async with semaphore:
                return await self._erase_partition(name, dedicated, sample_filter)

        outcomes = await asyncio.gather(*(erase_one(name) for name in names))

        dropped = purged = deleted = 0
        for name, (was_dropped, removed, failure) in zip(names, outcomes):
            if failure is not None:
                failures.append(failure)
                continue
            if was_dropped:
                dropped += 1
            if removed:
                purged += 1
                deleted += removed

        report = ErasureReport(
            tourist_id=tourist_id,
            tier=tier,
            partitions_scanned=len(names),
            partitions_dropped=dropped,
            partitions_purged=purged,
            records_deleted=deleted,
            failures=failures,
        )
        if self._metrics:
            self._metrics.increment("erasure_partitions_dropped", dropped, tier=tier.value)
            self._metrics.increment("erasure_records_deleted", deleted, tier=tier.value)
        log = self._logger.info if report.complete else self._logger.warning
        log(
            "erasure_completed",
            extra={
                "tourist_id": tourist_id,
                "tier": tier.value,
                "partitions_scanned": report.partitions_scanned,
                "partitions_dropped": dropped,
                "partitions_purged": purged,
                "records_deleted": deleted,
                "failed": len(failures),
            },
        )
        return report

    async def _candidate_names(
        self,
        tourist_id: str,
        tier: UserTier,
        failures: List[PartitionFailure],
    ) -> List[str]:
        """Names from the naming scheme over the lookback window, then extra catalog matches."""
        now = self._clock()
        names = self._policy.candidate_partitions(
            tourist_id, lookback_start(now, self._lookback_years), now, tier
        )
        try:
            listed = await guarded_io(
                self._registry.store.list_partitions(f"{PARTITION_PREFIX}_"),
                partition=CATALOG,
                operation="list_partitions",
                timeout=self._timeout,
            )
        except PartitionError as e:
            self._logger.warning(
                "erasure_catalog_unavailable",
                extra={"tourist_id": tourist_id, "error": e.message},
            )
            failures.append(PartitionFailure(partition=CATALOG, error=e.message))
            return names

        known = set(names)
        for name in sorted(listed):
            if name not in known and self._policy.owns_partition(name, tourist_id, tier):
                known.add(name)
                names.append(name)
        return names

    async def _erase_partition(
        self,
        name: str,
        dedicated: bool,
        sample_filter: SampleFilter,
    ) -> tuple[bool, int, Optional[PartitionFailure]]:
        try:
            handle = await self._registry.try_resolve_existing(name)
            if handle is None:
                return False, 0, None
            if dedicated:
                dropped = await guarded_io(
                    self._registry.store.drop(handle),
                    partition=name,
                    operation="drop",
                    timeout=self._timeout,
                )
                self._registry.forget(name)
                if dropped:
                    self._logger.info("partition_dropped", extra={"partition": name})
                return dropped, 0, None
            removed = await guarded_io(
                self._registry.store.delete_many(handle, sample_filter),
                partition=name,
                operation="delete_many",
                timeout=self._timeout,
            )
            return False, removed, None
        except PartitionError as e:
            self._logger.error(
                "erasure_partition_failed",
                extra={"partition": name, "tourist_id": sample_filter.tourist_id, "error": e.message},
            )
            return False, 0, PartitionFailure(partition=name, error=e.message)
