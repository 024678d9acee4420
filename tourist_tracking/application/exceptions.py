"""Application-layer exceptions. Do not reuse domain exceptions."""

from typing import Optional


class ApplicationError(Exception):
    """Base for all application-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class PartitionError(ApplicationError):
    """Base for errors tied to one physical partition."""

    def __init__(self, message: str, partition: Optional[str] = None) -> None:
        self.partition = partition
        super().__init__(message)


class PartitionProvisioningError(PartitionError):
    """Index or TTL setup failed. Non-fatal: the partition is usable, only slower or without expiry."""


class PartitionIOError(PartitionError):
    """A create/insert/query/delete/drop against a partition failed."""


class PartitionIOTimeoutError(PartitionIOError):
    """A partition call exceeded its time budget."""


class TierLookupError(ApplicationError):
    """Tourist profile lookup failed. Callers fall back to the standard tier."""
