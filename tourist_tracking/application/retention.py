"""Retention: make sure every partition carries its tier's archive TTL. Expiry itself is the store's job."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from tourist_tracking.application.exceptions import PartitionError
from tourist_tracking.application.partition_store import PartitionFailure, PartitionStore
from tourist_tracking.observability.metrics import MetricsCollector
from tourist_tracking.partitioning.io import guarded_io
from tourist_tracking.partitioning.key_policy import PARTITION_PREFIX
from tourist_tracking.partitioning.registry import tier_for_partition, ttl_spec_for


@dataclass(frozen=True)
class RetentionRun:
    partitions_checked: int
    rules_installed: int
    expired_records: int = 0
    failures: List[PartitionFailure] = field(default_factory=list)


class RetentionEnforcer:
    """
    Idempotent: enforce() re-installs the archive TTL rule on every location history
    partition found in the store catalog. The tier is read off the partition's shard
    label. There is no manual sweep here; expiry is delegated to the store.
    """

    def __init__(
        self,
        store: PartitionStore,
        logger: logging.Logger,
        *,
        io_timeout_seconds: float = 5.0,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._store = store
        self._logger = logger
        self._timeout = io_timeout_seconds
        self._metrics = metrics

    async def enforce(self) -> RetentionRun:
        names = await guarded_io(
            self._store.list_partitions(f"{PARTITION_PREFIX}_"),
            partition=f"{PARTITION_PREFIX}_*",
            operation="list_partitions",
            timeout=self._timeout,
        )
        installed = 0
        checked = 0
        failures: List[PartitionFailure] = []
        for name in names:
            tier = tier_for_partition(name)
            if tier is None:
                continue
            checked += 1
            try:
                await guarded_io(
                    self._store.ensure_ttl(name, ttl_spec_for(tier)),
                    partition=name,
                    operation="ensure_ttl",
                    timeout=self._timeout,
                )
                installed += 1
            except PartitionError as e:
                self._logger.warning(
                    "retention_rule_failed",
                    extra={"partition": name, "tier": tier.value, "error": e.message},
                )
                failures.append(PartitionFailure(partition=name, error=e.message))

        self._logger.info(
            "retention_enforced",
            extra={"partitions_checked": checked, "rules_installed": installed, "failed": len(failures)},
        )
        if self._metrics:
            self._metrics.increment("retention_rules_installed", installed)
        return RetentionRun(partitions_checked=checked, rules_installed=installed, failures=failures)

    async def run_periodically(self, interval_seconds: float) -> None:
        """Background loop: enforce rules, then let the store expire old samples. Runs until cancelled."""
        while True:
            try:
                run = await self.enforce()
                expired = await self._store.expire()
                if expired:
                    self._logger.info(
                        "retention_expired_records",
                        extra={"expired_records": expired, "partitions_checked": run.partitions_checked},
                    )
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._logger.error("retention_run_failed", extra={"error": str(e)})
            await asyncio.sleep(interval_seconds)
