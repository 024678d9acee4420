"""Partition store protocol. Application layer depends on this; infrastructure implements it."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol, Tuple

from tourist_tracking.application.exceptions import PartitionProvisioningError
from tourist_tracking.domain.models.location import LocationSample, LocationSource, UserTier

ASCENDING = 1
DESCENDING = -1


@dataclass(frozen=True)
class IndexDefinition:
    """One index on a partition. kind is "geo" for the 2D point index, "btree" otherwise."""

    name: str
    fields: Tuple[Tuple[str, int], ...]
    kind: str = "btree"


@dataclass(frozen=True)
class IndexSpec:
    indexes: Tuple[IndexDefinition, ...] = ()


@dataclass(frozen=True)
class TtlSpec:
    """Samples whose `field` is older than expire_after_seconds are expired by the store."""

    expire_after_seconds: int
    field: str = "timestamp"


@dataclass(frozen=True)
class PartitionFailure:
    """A partition-level failure absorbed by a read, retention or erasure sweep."""

    partition: str
    error: str


@dataclass(frozen=True)
class SampleFilter:
    """Filter on one tourist's samples. start/end are inclusive; None means unbounded."""

    tourist_id: str
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    source: Optional[LocationSource] = None

    def matches(self, sample: LocationSample) -> bool:
        if sample.tourist_id != self.tourist_id:
            return False
        if self.start is not None and sample.timestamp < self.start:
            return False
        if self.end is not None and sample.timestamp > self.end:
            return False
        if self.source is not None and sample.source != self.source:
            return False
        return True


@dataclass
class PartitionHandle:
    """
    Resolved reference to a physical partition. A handle whose provisioning_error is
    set is degraded: an index or the TTL rule is missing, plain reads and writes still work.
    """

    name: str
    tier: Optional[UserTier] = None
    created: bool = False
    provisioning_error: Optional[PartitionProvisioningError] = field(default=None, compare=False)

    @property
    def degraded(self) -> bool:
        return self.provisioning_error is not None


class PartitionStore(Protocol):
    """Protocol for a key-partitioned document store holding location samples."""

    async def create_partition_if_absent(
        self,
        name: str,
        index_spec: IndexSpec,
        ttl_spec: Optional[TtlSpec],
    ) -> bool:
        """
        Idempotently create the partition with its indexes and TTL rule. Returns True if
        this call created it. Raises PartitionIOError if the partition cannot be created and
        PartitionProvisioningError if it exists but an index or the TTL rule failed.
        """
        ...

    async def ensure_ttl(self, name: str, ttl_spec: TtlSpec) -> None:
        """Install or replace the TTL rule on an existing partition."""
        ...

    async def insert(self, handle: PartitionHandle, sample: LocationSample) -> str:
        """Persist sample and return its record id."""
        ...

    async def query(
        self,
        handle: PartitionHandle,
        sample_filter: SampleFilter,
        sort_descending: bool,
        limit: int,
    ) -> List[LocationSample]:
        """Return up to limit matching samples sorted by timestamp."""
        ...

    async def delete_many(self, handle: PartitionHandle, sample_filter: SampleFilter) -> int:
        """Delete matching samples; return the count removed."""
        ...

    async def drop(self, handle: PartitionHandle) -> bool:
        """Drop the partition. Returns False (not an error) if it did not exist."""
        ...

    async def exists(self, name: str) -> bool:
        ...

    async def list_partitions(self, prefix: str) -> List[str]:
        """Catalog enumeration: names of existing partitions starting with prefix."""
        ...

    async def expire(self) -> int:
        """Remove samples past their partition's TTL rule; return the count removed."""
        ...
