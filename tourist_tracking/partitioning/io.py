"""Bounded partition I/O: every store call gets a timeout and a partition-scoped error."""

import asyncio
from typing import Awaitable, TypeVar

from tourist_tracking.application.exceptions import (
    ApplicationError,
    PartitionIOError,
    PartitionIOTimeoutError,
)

T = TypeVar("T")


async def guarded_io(
    awaitable: Awaitable[T],
    *,
    partition: str,
    operation: str,
    timeout: float,
) -> T:
    """
    Await a store call with a time budget. Timeouts become PartitionIOTimeoutError, other
    store failures PartitionIOError; application errors raised by the store pass through.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as e:
        raise PartitionIOTimeoutError(
            f"{operation} on {partition} timed out after {timeout}s",
            partition=partition,
        ) from e
    except ApplicationError:
        raise
    except Exception as e:
        raise PartitionIOError(
            f"{operation} on {partition} failed: {e}",
            partition=partition,
        ) from e
