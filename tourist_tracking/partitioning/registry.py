"""Partition registry: lazily provisions physical partitions and caches their handles."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from tourist_tracking.application.exceptions import PartitionProvisioningError
from tourist_tracking.application.partition_store import (
    ASCENDING,
    DESCENDING,
    IndexDefinition,
    IndexSpec,
    PartitionHandle,
    PartitionStore,
    TtlSpec,
)
from tourist_tracking.domain.models.location import RETENTION_POLICIES, UserTier
from tourist_tracking.observability.metrics import MetricsCollector
from tourist_tracking.partitioning.io import guarded_io
from tourist_tracking.partitioning.key_policy import parse_partition_name

_BASE_INDEXES = (
    IndexDefinition("location_geo", (("location", ASCENDING),), kind="geo"),
    IndexDefinition("tourist_timestamp", (("tourist_id", ASCENDING), ("timestamp", DESCENDING))),
    IndexDefinition("source_timestamp", (("source", ASCENDING), ("timestamp", DESCENDING))),
)

_VIP_INDEXES = (
    IndexDefinition(
        "tourist_source_timestamp",
        (("tourist_id", ASCENDING), ("source", ASCENDING), ("timestamp", DESCENDING)),
    ),
)


def index_spec_for(tier: UserTier) -> IndexSpec:
    if UserTier(tier) is UserTier.VIP:
        return IndexSpec(_BASE_INDEXES + _VIP_INDEXES)
    return IndexSpec(_BASE_INDEXES)


def ttl_spec_for(tier: UserTier) -> TtlSpec:
    """Hard TTL equal to the tier's archive horizon."""
    return TtlSpec(expire_after_seconds=RETENTION_POLICIES[UserTier(tier)].archive_seconds)


def tier_for_partition(name: str) -> Optional[UserTier]:
    key = parse_partition_name(name)
    return key.tier if key is not None else None


class PartitionRegistry:
    """
    Owns the name -> handle cache. One instance per process, injected into the
    write, read and erasure paths.

    resolve() creates the partition on first use; concurrent first resolutions of
    one name share a single provisioning call. try_resolve_existing() never creates.
    """

    def __init__(
        self,
        store: PartitionStore,
        *,
        io_timeout_seconds: float = 5.0,
        metrics: Optional[MetricsCollector] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._store = store
        self._timeout = io_timeout_seconds
        self._metrics = metrics
        self._logger = logger or logging.getLogger(__name__)
        self._handles: Dict[str, PartitionHandle] = {}
        self._pending: Dict[str, asyncio.Future] = {}
        self._lock = asyncio.Lock()

    @property
    def store(self) -> PartitionStore:
        return self._store

    async def resolve(self, name: str, tier: Optional[UserTier] = None) -> PartitionHandle:
        """
        Return the handle for name, provisioning the partition (indexes and TTL) if this
        process has not seen it yet. Raises PartitionIOError if the partition cannot be
        created. Index/TTL failures do not raise; they mark the handle degraded.
        """
        handle = self._handles.get(name)
        if handle is not None:
            return handle

        async with self._lock:
            handle = self._handles.get(name)
            if handle is not None:
                return handle
            future = self._pending.get(name)
            owner = future is None
            if owner:
                future = asyncio.get_running_loop().create_future()
                self._pending[name] = future

        if not owner:
            return await asyncio.shield(future)

        try:
            handle = await self._provision(name, tier)
        except asyncio.CancelledError:
            self._pending.pop(name, None)
            future.cancel()
            raise
        except Exception as e:
            self._pending.pop(name, None)
            future.set_exception(e)
            # Mark retrieved; waiters still receive the exception.
            future.exception()
            raise

        self._handles[name] = handle
        self._pending.pop(name, None)
        future.set_result(handle)
        return handle

    async def try_resolve_existing(self, name: str) -> Optional[PartitionHandle]:
        """Return a handle only if the partition exists. Never creates. None means empty."""
        handle = self._handles.get(name)
        if handle is not None:
            return handle
        exists = await guarded_io(
            self._store.exists(name),
            partition=name,
            operation="exists",
            timeout=self._timeout,
        )
        if not exists:
            return None
        return self._handles.setdefault(
            name, PartitionHandle(name=name, tier=tier_for_partition(name))
        )

    def forget(self, name: str) -> None:
        """Drop a cached handle, e.g. after the partition was dropped."""
        self._handles.pop(name, None)

    def cached_names(self) -> List[str]:
        return sorted(self._handles)

    def stats(self) -> Dict[str, Any]:
        by_tier: Dict[str, int] = {tier.value: 0 for tier in UserTier}
        for handle in self._handles.values():
            if handle.tier is not None:
                by_tier[handle.tier.value] += 1
        return {
            "cached_partitions": len(self._handles),
            "created_by_this_process": sum(1 for h in self._handles.values() if h.created),
            "tier_distribution": by_tier,
            "degraded_partitions": sorted(n for n, h in self._handles.items() if h.degraded),
        }

    async def _provision(self, name: str, tier: Optional[UserTier]) -> PartitionHandle:
        tier = UserTier(tier) if tier is not None else (tier_for_partition(name) or UserTier.STANDARD)
        try:
            created = await guarded_io(
                self._store.create_partition_if_absent(
                    name, index_spec_for(tier), ttl_spec_for(tier)
                ),
                partition=name,
                operation="create_partition",
                timeout=self._timeout,
            )
        except PartitionProvisioningError as e:
            self._logger.warning(
                "partition_provisioning_failed",
                extra={"partition": name, "tier": tier.value, "error": e.message},
            )
            if self._metrics:
                self._metrics.increment("partition_provisioning_failed", tier=tier.value)
            return PartitionHandle(name=name, tier=tier, created=True, provisioning_error=e)

        if created:
            self._logger.info("partition_provisioned", extra={"partition": name, "tier": tier.value})
            if self._metrics:
                self._metrics.increment("partition_created", tier=tier.value)
        return PartitionHandle(name=name, tier=tier, created=created)
