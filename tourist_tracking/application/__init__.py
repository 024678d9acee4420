# Application layer: services that orchestrate domain, partitioning and infrastructure.
# Services are imported from their modules; this package exports ports and errors only.

from tourist_tracking.application.exceptions import (
    ApplicationError,
    PartitionError,
    PartitionIOError,
    PartitionIOTimeoutError,
    PartitionProvisioningError,
    TierLookupError,
)
from tourist_tracking.application.partition_store import (
    IndexDefinition,
    IndexSpec,
    PartitionFailure,
    PartitionHandle,
    PartitionStore,
    SampleFilter,
    TtlSpec,
)
from tourist_tracking.application.tier_lookup import (
    StaticTouristProfileLookup,
    TouristProfileLookup,
    resolve_tier,
)

__all__ = [
    "ApplicationError",
    "IndexDefinition",
    "IndexSpec",
    "PartitionError",
    "PartitionFailure",
    "PartitionHandle",
    "PartitionIOError",
    "PartitionIOTimeoutError",
    "PartitionProvisioningError",
    "PartitionStore",
    "SampleFilter",
    "StaticTouristProfileLookup",
    "TierLookupError",
    "TouristProfileLookup",
    "TtlSpec",
    "resolve_tier",
]
