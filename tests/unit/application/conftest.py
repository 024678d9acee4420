"""Fixtures for application tests: in-memory store, static tier lookup, wired services."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from tourist_tracking.application.erasure import ErasureCoordinator
from tourist_tracking.application.history_reader import ScatterGatherReader
from tourist_tracking.application.location_service import LocationService
from tourist_tracking.application.tier_lookup import StaticTouristProfileLookup
from tourist_tracking.application.write_router import WriteRouter
from tourist_tracking.domain.models.location import GeoPoint, LocationSample, LocationSource, UserTier
from tourist_tracking.infrastructure.memory.partition_store import InMemoryPartitionStore
from tourist_tracking.observability.metrics import MetricsCollector
from tourist_tracking.partitioning.key_policy import PartitionKeyPolicy
from tourist_tracking.partitioning.registry import PartitionRegistry

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_sample(
    tourist_id: str,
    timestamp: datetime,
    source: LocationSource = LocationSource.GPS,
    longitude: float = 91.7,
    latitude: float = 26.1,
) -> LocationSample:
    return LocationSample(
        tourist_id=tourist_id,
        location=GeoPoint(longitude=longitude, latitude=latitude),
        timestamp=timestamp,
        source=source,
        accuracy=10,
        battery_level=80,
    )


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def store(clock):
    return InMemoryPartitionStore(clock=clock)


@pytest.fixture
def profiles():
    return StaticTouristProfileLookup({"t2": UserTier.VIP, "p1": UserTier.PREMIUM, "t1": UserTier.STANDARD})


@pytest.fixture
def logger():
    return MagicMock()


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def policy():
    return PartitionKeyPolicy(standard_shards=16)


@pytest.fixture
def registry(store, metrics, logger):
    return PartitionRegistry(store, io_timeout_seconds=1.0, metrics=metrics, logger=logger)


@pytest.fixture
def writer(policy, registry, profiles, logger, metrics):
    return WriteRouter(policy, registry, profiles, logger, io_timeout_seconds=1.0, metrics=metrics)


@pytest.fixture
def reader(policy, registry, profiles, logger, metrics):
    return ScatterGatherReader(policy, registry, profiles, logger, io_timeout_seconds=1.0, metrics=metrics)


@pytest.fixture
def erasure(policy, registry, profiles, logger, metrics, clock):
    return ErasureCoordinator(
        policy, registry, profiles, logger, io_timeout_seconds=1.0, metrics=metrics, clock=clock
    )


@pytest.fixture
def location_service(writer, reader, erasure, profiles, logger, clock):
    return LocationService(writer, reader, erasure, profiles, logger, clock=clock)


@pytest.fixture
def sample():
    return make_sample


@pytest.fixture
def now():
    return NOW
