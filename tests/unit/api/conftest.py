"""Fixtures for API unit tests: in-memory partition store, static tiers, AsyncClient."""

import pytest
from httpx import ASGITransport, AsyncClient

from tourist_tracking.api import dependencies
from tourist_tracking.application.tier_lookup import StaticTouristProfileLookup
from tourist_tracking.config.settings import AppSettings
from tourist_tracking.domain.models.location import UserTier
from tourist_tracking.infrastructure.memory.partition_store import InMemoryPartitionStore
from tourist_tracking.main import app


@pytest.fixture
def store():
    return InMemoryPartitionStore()


@pytest.fixture
def profiles():
    return StaticTouristProfileLookup({"t2": UserTier.VIP, "t1": UserTier.STANDARD})


@pytest.fixture
def components(store, profiles):
    settings = AppSettings(storage_backend="memory", history_max_limit=500, partition_io_timeout_seconds=0.5)
    return dependencies.build_components(settings, store=store, profiles=profiles)


@pytest.fixture
def app_with_overrides(components):
    """App wired to the in-memory store for testing."""
    app.dependency_overrides[dependencies.get_components] = lambda: components
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(app_with_overrides):
    """Async HTTP client for testing; uses overridden app."""
    transport = ASGITransport(app=app_with_overrides)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def location_body():
    return {"tourist_id": "t1", "latitude": 26.1, "longitude": 91.7, "battery_level": 64}
