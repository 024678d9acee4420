"""In-memory partition store. Implements PartitionStore for tests and single-process dev runs."""

import asyncio
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from tourist_tracking.application.exceptions import PartitionIOError
from tourist_tracking.application.partition_store import (
    IndexSpec,
    PartitionHandle,
    SampleFilter,
    TtlSpec,
)
from tourist_tracking.domain.models.location import LocationSample


class _Partition:
    def __init__(self, index_spec: IndexSpec) -> None:
        self.index_spec = index_spec
        self.ttl: Optional[TtlSpec] = None
        self.samples: Dict[str, LocationSample] = {}


class InMemoryPartitionStore:
    """
    Dict-backed partitions with TTL applied lazily: expired samples are never returned
    and are removed by expire(). Writes to a partition that was dropped fail, as they
    would against a real store after the collection is gone.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._partitions: Dict[str, _Partition] = {}
        self._lock = asyncio.Lock()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.create_calls: Dict[str, int] = {}

    async def create_partition_if_absent(
        self,
        name: str,
        index_spec: IndexSpec,
        ttl_spec: Optional[TtlSpec],
    ) -> bool:
        async with self._lock:
            self.create_calls[name] = self.create_calls.get(name, 0) + 1
            if name in self._partitions:
                return False
            partition = _Partition(index_spec)
            partition.ttl = ttl_spec
            self._partitions[name] = partition
            return True

    async def ensure_ttl(self, name: str, ttl_spec: TtlSpec) -> None:
        partition = self._get(name)
        partition.ttl = ttl_spec

    async def insert(self, handle: PartitionHandle, sample: LocationSample) -> str:
        partition = self._get(handle.name)
        record_id = sample.record_id or uuid.uuid4().hex
        partition.samples[record_id] = replace(sample, record_id=record_id)
        return record_id

    async def query(
        self,
        handle: PartitionHandle,
        sample_filter: SampleFilter,
        sort_descending: bool,
        limit: int,
    ) -> List[LocationSample]:
        partition = self._partitions.get(handle.name)
        if partition is None:
            return []
        cutoff = self._cutoff(partition)
        rows = [
            s for s in partition.samples.values()
            if sample_filter.matches(s) and (cutoff is None or s.timestamp >= cutoff)
        ]
        rows.sort(key=lambda s: s.timestamp, reverse=sort_descending)
        return rows[:limit]

    async def delete_many(self, handle: PartitionHandle, sample_filter: SampleFilter) -> int:
        partition = self._partitions.get(handle.name)
        if partition is None:
            return 0
        doomed = [rid for rid, s in partition.samples.items() if sample_filter.matches(s)]
        for rid in doomed:
            del partition.samples[rid]
        return len(doomed)

    async def drop(self, handle: PartitionHandle) -> bool:
        async with self._lock:
            return self._partitions.pop(handle.name, None) is not None

    async def exists(self, name: str) -> bool:
        return name in self._partitions

    async def list_partitions(self, prefix: str) -> List[str]:
        return sorted(name for name in self._partitions if name.startswith(prefix))

    async def expire(self) -> int:
        removed = 0
        for partition in list(self._partitions.values()):
            cutoff = self._cutoff(partition)
            if cutoff is None:
                continue
            doomed = [rid for rid, s in partition.samples.items() if s.timestamp < cutoff]
            for rid in doomed:
                del partition.samples[rid]
            removed += len(doomed)
        return removed

    def ttl_for(self, name: str) -> Optional[TtlSpec]:
        partition = self._partitions.get(name)
        return partition.ttl if partition else None

    def index_spec_for(self, name: str) -> Optional[IndexSpec]:
        partition = self._partitions.get(name)
        return partition.index_spec if partition else None

    def count(self, name: str) -> int:
        partition = self._partitions.get(name)
        return len(partition.samples) if partition else 0

    def _get(self, name: str) -> _Partition:
        partition = self._partitions.get(name)
        if partition is None:
            raise PartitionIOError(f"partition {name} does not exist", partition=name)
        return partition

    def _cutoff(self, partition: _Partition) -> Optional[datetime]:
        if partition.ttl is None:
            return None
        return self._clock() - timedelta(seconds=partition.ttl.expire_after_seconds)
