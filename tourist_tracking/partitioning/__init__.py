"""Partitioning layer: partition naming, bounded partition I/O, handle registry."""

from tourist_tracking.partitioning.io import guarded_io
from tourist_tracking.partitioning.key_policy import (
    PARTITION_PREFIX,
    PartitionKey,
    PartitionKeyPolicy,
    TimeGranularity,
    UserShardHasher,
    iter_bucket_starts,
    parse_partition_name,
)
from tourist_tracking.partitioning.registry import (
    PartitionRegistry,
    index_spec_for,
    tier_for_partition,
    ttl_spec_for,
)

__all__ = [
    "PARTITION_PREFIX",
    "PartitionKey",
    "PartitionKeyPolicy",
    "PartitionRegistry",
    "TimeGranularity",
    "UserShardHasher",
    "guarded_io",
    "index_spec_for",
    "iter_bucket_starts",
    "parse_partition_name",
    "tier_for_partition",
    "ttl_spec_for",
]
