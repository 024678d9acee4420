"""Tests for API middleware: correlation ID generation and propagation, audit log."""

import logging

import pytest
from httpx import ASGITransport, AsyncClient

from tourist_tracking.api.middleware import _tourist_from_path
from tourist_tracking.main import app


@pytest.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
async def test_correlation_id_generated(client: AsyncClient):
    """When X-Correlation-ID is not sent, response has a generated correlation ID."""
    r = await client.get("/health")
    assert r.status_code == 200
    assert len(r.headers["X-Correlation-ID"]) > 0


@pytest.mark.asyncio
async def test_correlation_id_preserved_when_passed(client: AsyncClient):
    """When X-Correlation-ID is sent, the same value is returned in response."""
    correlation_id = "my-correlation-123"
    r = await client.get("/health", headers={"X-Correlation-ID": correlation_id})
    assert r.headers.get("X-Correlation-ID") == correlation_id
    assert r.json().get("correlation_id") == correlation_id


@pytest.mark.asyncio
async def test_audit_event_logged(client: AsyncClient, caplog):
    with caplog.at_level(logging.INFO, logger="tourist_tracking.api.middleware"):
        await client.get("/health", headers={"X-Correlation-ID": "audit-1"})
    audits = [r for r in caplog.records if r.getMessage() == "request_audit"]
    assert audits
    assert audits[-1].correlation_id == "audit-1"
    assert audits[-1].status_code == 200
    assert audits[-1].path == "/health"
    assert audits[-1].tourist_id is None
    assert audits[-1].latency_ms >= 0


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/locations/t1/history", "t1"),
        ("/tourists/t9/location-data", "t9"),
        ("/locations", None),
        ("/partitions/stats", None),
    ],
)
def test_tourist_id_taken_from_scoped_paths(path, expected):
    assert _tourist_from_path(path) == expected
