"""
Read path: fan a history query out to every candidate partition and merge the results.

Candidate partitions are computed from the naming scheme for the tourist's current
tier and the requested range. Partitions that were never created count as empty.
All partition scans for one query run concurrently; each one is bounded by a timeout.

Availability over completeness: a partition that fails or times out contributes
nothing, and the query still succeeds. The failure is reported in
HistoryPage.failed_partitions, so callers can tell the result may undercount.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from tourist_tracking.application.exceptions import PartitionError, PartitionIOError
from tourist_tracking.application.partition_store import PartitionFailure, SampleFilter
from tourist_tracking.application.tier_lookup import TouristProfileLookup, resolve_tier
from tourist_tracking.domain.exceptions import InvalidArgumentError
from tourist_tracking.domain.models.location import LocationSample, LocationSource, UserTier
from tourist_tracking.domain.validators.location_validator import (
    TimestampLike,
    parse_timestamp,
    validate_time_range,
    validate_tourist_id,
)
from tourist_tracking.observability.metrics import MetricsCollector
from tourist_tracking.partitioning.io import guarded_io
from tourist_tracking.partitioning.key_policy import PartitionKeyPolicy
from tourist_tracking.partitioning.registry import PartitionRegistry


@dataclass(frozen=True)
class HistoryPage:
    """One page of merged history. Samples are ordered by timestamp per sort_descending."""

    tourist_id: str
    tier: UserTier
    start: datetime
    end: datetime
    samples: List[LocationSample]
    limit: int
    offset: int = 0
    has_more: bool = False
    sort_descending: bool = True
    source: Optional[LocationSource] = None
    partitions_queried: List[str] = field(default_factory=list)
    partitions_missing: int = 0
    failed_partitions: List[PartitionFailure] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_partitions


# Outcome of scanning one partition: (samples, missing, failure)
_ScanOutcome = Tuple[List[LocationSample], bool, Optional[PartitionFailure]]


class ScatterGatherReader:
    """Scatter a range query over candidate partitions, gather, merge, truncate."""

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

    async def query(
        self,
        tourist_id: str,
        start: TimestampLike,
        end: TimestampLike,
        limit: int,
        sort_descending: bool = True,
        *,
        offset: int = 0,
        source: Optional[LocationSource] = None,
        tier: Optional[UserTier] = None,
    ) -> HistoryPage:
        """
        Return up to limit samples for tourist_id with timestamps in [start, end], after
        skipping offset. Each partition is asked for offset + limit + 1 rows so the global
        truncation is exact and has_more can be computed.
        """
        validate_tourist_id(tourist_id)
        start_ts = parse_timestamp(start)
        end_ts = parse_timestamp(end)
        validate_time_range(start_ts, end_ts)
        if limit < 1:
            raise InvalidArgumentError(f"limit must be >= 1, got {limit}")
        if offset < 0:
            raise InvalidArgumentError(f"offset must be >= 0, got {offset}")

        if tier is None:
            tier = await resolve_tier(self._profiles, tourist_id, self._logger, self._fixed_tier)
        names = self._policy.candidate_partitions(tourist_id, start_ts, end_ts, tier)
        sample_filter = SampleFilter(tourist_id=tourist_id, start=start_ts, end=end_ts, source=source)
        fetch = offset + limit + 1

        started = time.perf_counter()
        outcomes = await asyncio.gather(
            *(self._scan(name, sample_filter, sort_descending, fetch) for name in names)
        )
        elapsed_ms = (time.perf_counter() - started) * 1000

        merged: List[LocationSample] = []
        queried: List[str] = []
        failures: List[PartitionFailure] = []
        missing = 0
        for name, (rows, was_missing, failure) in zip(names, outcomes):
            if failure is not None:
                failures.append(failure)
            elif was_missing:
                missing += 1
            else:
                queried.append(name)
                merged.extend(rows)
        merged.sort(key=lambda s: s.timestamp, reverse=sort_descending)

        window = merged[offset:offset + limit]
        if self._metrics:
            self._metrics.observe_latency("history_query_latency", elapsed_ms, tier=tier.value)
        self._logger.info(
            "history_queried",
            extra={
                "tourist_id": tourist_id,
                "tier": tier.value,
                "candidates": len(names),
                "partitions_queried": len(queried),
                "partitions_failed": len(failures),
                "returned": len(window),
                "latency_ms": round(elapsed_ms, 2),
            },
        )
        return HistoryPage(
            tourist_id=tourist_id,
            tier=tier,
            start=start_ts,
            end=end_ts,
            samples=window,
            limit=limit,
            offset=offset,
            has_more=len(merged) > offset + limit,
            sort_descending=sort_descending,
            source=source,
            partitions_queried=queried,
            partitions_missing=missing,
            failed_partitions=failures,
        )

    async def _scan(
        self,
        name: str,
        sample_filter: SampleFilter,
        sort_descending: bool,
        limit: int,
    ) -> _ScanOutcome:
        try:
            handle = await self._registry.try_resolve_existing(name)
            if handle is None:
                return [], True, None
            rows = await guarded_io(
                self._registry.store.query(handle, sample_filter, sort_descending, limit),
                partition=name,
                operation="query",
                timeout=self._timeout,
            )
            return list(rows), False, None
        except PartitionError as e:
            if isinstance(e, PartitionIOError):
                self._registry.forget(name)
            self._logger.warning(
                "partition_query_failed",
                extra={"partition": name, "tourist_id": sample_filter.tourist_id, "error": e.message},
            )
            if self._metrics:
                self._metrics.increment("partition_query_failed", category=type(e).__name__)
            return [], False, PartitionFailure(partition=name, error=e.message)
