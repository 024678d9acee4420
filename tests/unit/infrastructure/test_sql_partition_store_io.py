"""SqlPartitionStore against a throwaway sqlite engine: DDL, reads, deletes, drop and TTL expiry."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from tourist_tracking.application.partition_store import (
    IndexSpec,
    PartitionHandle,
    SampleFilter,
    TtlSpec,
)
from tourist_tracking.domain.models.location import GeoPoint, LocationSample, LocationSource, UserTier
from tourist_tracking.infrastructure.database.models import PartitionTtlRule
from tourist_tracking.infrastructure.database.partition_store_sql import SqlPartitionStore
from tourist_tracking.partitioning.registry import index_spec_for

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
NAME = "location_history_2024_05_shard_3"
HANDLE = PartitionHandle(name=NAME, tier=UserTier.STANDARD)

# sqlite has no point() function; the GiST index is PostgreSQL-only.
BTREE_ONLY = IndexSpec(tuple(d for d in index_spec_for(UserTier.VIP).indexes if d.kind != "geo"))


def _sample(tourist_id: str, ts: datetime, source: LocationSource = LocationSource.GPS, **kwargs) -> LocationSample:
    return LocationSample(
        tourist_id=tourist_id,
        location=GeoPoint(longitude=91.7, latitude=26.1),
        timestamp=ts,
        source=source,
        **kwargs,
    )


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    await engine.dispose()


@pytest.fixture
def sql_store(engine):
    return SqlPartitionStore(engine, clock=lambda: NOW)


async def _ttl_rules(engine) -> dict:
    async with engine.connect() as conn:
        rows = await conn.execute(
            select(PartitionTtlRule.partition_name, PartitionTtlRule.expire_after_seconds)
        )
        return {row.partition_name: row.expire_after_seconds for row in rows}


@pytest.mark.asyncio
async def test_create_is_idempotent_and_listed(sql_store, engine):
    assert await sql_store.create_partition_if_absent(NAME, BTREE_ONLY, TtlSpec(expire_after_seconds=3600)) is True
    assert await sql_store.create_partition_if_absent(NAME, BTREE_ONLY, TtlSpec(expire_after_seconds=3600)) is False
    assert await sql_store.exists(NAME)
    assert not await sql_store.exists("location_history_2024_05_shard_4")
    # The catalog table is not a partition.
    assert await sql_store.list_partitions("location_history_") == [NAME]
    assert await _ttl_rules(engine) == {NAME: 3600}


@pytest.mark.asyncio
async def test_query_filters_sorts_and_limits(sql_store):
    await sql_store.create_partition_if_absent(NAME, BTREE_ONLY, None)
    base = datetime(2024, 5, 10, 8, 0, tzinfo=timezone.utc)
    for minutes in (0, 30, 10, 20):
        await sql_store.insert(HANDLE, _sample("t1", base + timedelta(minutes=minutes)))
    await sql_store.insert(HANDLE, _sample("t1", base + timedelta(minutes=5), LocationSource.NETWORK))
    await sql_store.insert(HANDLE, _sample("t9", base + timedelta(minutes=15)))

    rows = await sql_store.query(HANDLE, SampleFilter(tourist_id="t1"), True, 3)
    assert [r.timestamp for r in rows] == [base + timedelta(minutes=m) for m in (30, 20, 10)]
    assert all(r.tourist_id == "t1" for r in rows)
    assert rows[0].timestamp.tzinfo is not None

    window = SampleFilter(
        tourist_id="t1",
        start=base + timedelta(minutes=5),
        end=base + timedelta(minutes=20),
        source=LocationSource.GPS,
    )
    ascending = await sql_store.query(HANDLE, window, False, 10)
    assert [r.timestamp for r in ascending] == [base + timedelta(minutes=m) for m in (10, 20)]


@pytest.mark.asyncio
async def test_insert_round_trips_optional_fields(sql_store):
    await sql_store.create_partition_if_absent(NAME, BTREE_ONLY, None)
    ts = datetime(2024, 5, 2, tzinfo=timezone.utc)
    record_id = await sql_store.insert(
        HANDLE,
        _sample("t1", ts, battery_level=41.0, device_id="dev-1", context={"zone": "kaziranga"}),
    )
    [row] = await sql_store.query(HANDLE, SampleFilter(tourist_id="t1"), True, 10)
    assert row.record_id == record_id
    assert row.battery_level == 41.0
    assert row.device_id == "dev-1"
    assert row.context == {"zone": "kaziranga"}
    assert row.speed is None
    assert row.location == GeoPoint(longitude=91.7, latitude=26.1)


@pytest.mark.asyncio
async def test_delete_many_removes_only_that_tourist(sql_store):
    await sql_store.create_partition_if_absent(NAME, BTREE_ONLY, None)
    ts = datetime(2024, 5, 3, tzinfo=timezone.utc)
    for i in range(3):
        await sql_store.insert(HANDLE, _sample("t1", ts + timedelta(minutes=i)))
    await sql_store.insert(HANDLE, _sample("t9", ts))

    assert await sql_store.delete_many(HANDLE, SampleFilter(tourist_id="t1")) == 3
    assert await sql_store.query(HANDLE, SampleFilter(tourist_id="t1"), True, 10) == []
    assert len(await sql_store.query(HANDLE, SampleFilter(tourist_id="t9"), True, 10)) == 1
    assert await sql_store.delete_many(HANDLE, SampleFilter(tourist_id="t1")) == 0


@pytest.mark.asyncio
async def test_drop_removes_table_and_ttl_rule(sql_store, engine):
    await sql_store.create_partition_if_absent(NAME, BTREE_ONLY, TtlSpec(expire_after_seconds=3600))
    assert await sql_store.drop(HANDLE) is True
    assert await sql_store.drop(HANDLE) is False
    assert not await sql_store.exists(NAME)
    assert await _ttl_rules(engine) == {}
    # Recreated after a drop, e.g. a new write for the same bucket.
    assert await sql_store.create_partition_if_absent(NAME, BTREE_ONLY, None) is True


@pytest.mark.asyncio
async def test_expire_deletes_rows_older_than_rule(sql_store):
    await sql_store.create_partition_if_absent(NAME, BTREE_ONLY, TtlSpec(expire_after_seconds=30 * 86400))
    await sql_store.insert(HANDLE, _sample("t1", NOW - timedelta(days=45)))
    await sql_store.insert(HANDLE, _sample("t1", NOW - timedelta(days=31)))
    await sql_store.insert(HANDLE, _sample("t1", NOW - timedelta(days=2)))

    assert await sql_store.expire() == 2
    rows = await sql_store.query(HANDLE, SampleFilter(tourist_id="t1"), True, 10)
    assert [r.timestamp for r in rows] == [NOW - timedelta(days=2)]
    assert await sql_store.expire() == 0


@pytest.mark.asyncio
async def test_ensure_ttl_replaces_rule(sql_store, engine):
    await sql_store.create_partition_if_absent(NAME, BTREE_ONLY, TtlSpec(expire_after_seconds=30 * 86400))
    await sql_store.insert(HANDLE, _sample("t1", NOW - timedelta(days=5)))

    await sql_store.ensure_ttl(NAME, TtlSpec(expire_after_seconds=86400))
    assert await _ttl_rules(engine) == {NAME: 86400}
    assert await sql_store.expire() == 1


@pytest.mark.asyncio
async def test_expire_skips_rules_without_table(sql_store):
    await sql_store.ensure_ttl("location_history_2020_01_shard_1", TtlSpec(expire_after_seconds=60))
    await sql_store.create_partition_if_absent(NAME, BTREE_ONLY, TtlSpec(expire_after_seconds=86400))
    await sql_store.insert(HANDLE, _sample("t1", NOW - timedelta(days=3)))
    assert await sql_store.expire() == 1


@pytest.mark.asyncio
async def test_partition_dropped_elsewhere_can_be_recreated(sql_store, engine):
    other_process = SqlPartitionStore(engine, clock=lambda: NOW)
    for _ in range(3):
        assert await sql_store.create_partition_if_absent(NAME, BTREE_ONLY, None) is True
        await sql_store.insert(HANDLE, _sample("t1", NOW))
        assert await other_process.drop(HANDLE) is True

    names = [index.name for index in sql_store._table(NAME).indexes]
    assert len(names) == len(set(names)) == len(BTREE_ONLY.indexes)
