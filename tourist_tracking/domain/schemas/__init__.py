"""Domain schemas. Request/response and validation."""

from tourist_tracking.domain.schemas.location import (
    ActivityContext,
    ErasureReportResponse,
    HistoryResponse,
    LocationSampleResponse,
    LocationUpdateRequest,
    NetworkInfo,
    Pagination,
    PartitionFailureResponse,
    PersistedLocationResponse,
)

__all__ = [
    "ActivityContext",
    "ErasureReportResponse",
    "HistoryResponse",
    "LocationSampleResponse",
    "LocationUpdateRequest",
    "NetworkInfo",
    "Pagination",
    "PartitionFailureResponse",
    "PersistedLocationResponse",
]
