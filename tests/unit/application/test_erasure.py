"""ErasureCoordinator: dedicated drops, shared purges, catalog sweep, partial failure."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from tourist_tracking.application.erasure import ErasureCoordinator
from tourist_tracking.application.partition_store import PartitionHandle
from tourist_tracking.domain.models.location import UserTier
from tourist_tracking.partitioning.key_policy import lookback_start
from tourist_tracking.partitioning.registry import index_spec_for


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_vip_erasure_drops_dedicated_partitions(writer, erasure, store, sample):
    await writer.write(sample("t2", _utc(2024, 1, 10)))
    await writer.write(sample("t2", _utc(2024, 1, 11)))
    await writer.write(sample("t2", _utc(2024, 3, 5)))

    report = await erasure.erase_all("t2")

    assert report.tier is UserTier.VIP
    assert report.partitions_dropped == 2
    assert report.partitions_touched == 2
    assert report.complete
    assert not await store.exists("location_history_2024_01_user_t2")
    assert not await store.exists("location_history_2024_03_user_t2")


@pytest.mark.asyncio
async def test_history_empty_after_vip_erasure_over_full_window(writer, erasure, reader, sample, now):
    await writer.write(sample("t2", _utc(2024, 1, 10)))
    await writer.write(sample("t2", _utc(2024, 3, 5)))
    await erasure.erase_all("t2")
    page = await reader.query("t2", lookback_start(now, 10), now, limit=1000)
    assert page.samples == []
    assert page.complete


@pytest.mark.asyncio
async def test_write_after_erasure_creates_fresh_partition(writer, erasure, store, registry, sample):
    await writer.write(sample("t2", _utc(2024, 1, 10)))
    await writer.write(sample("t2", _utc(2024, 3, 5)))
    await erasure.erase_all("t2")

    persisted = await writer.write(sample("t2", _utc(2024, 5, 20)))
    assert persisted.partition == "location_history_2024_05_user_t2"
    assert store.count("location_history_2024_05_user_t2") == 1
    handle = await registry.resolve(persisted.partition)
    assert handle.created

    # a month that was erased can be written again too
    again = await writer.write(sample("t2", _utc(2024, 3, 6)))
    assert store.count(again.partition) == 1


@pytest.mark.asyncio
async def test_shared_erasure_keeps_neighbours(writer, erasure, reader, store, policy, sample):
    shard = policy.shard_label("t1", UserTier.STANDARD)
    neighbour = next(
        f"n{i}" for i in range(1000) if policy.shard_label(f"n{i}", UserTier.STANDARD) == shard
    )
    await writer.write(sample("t1", _utc(2024, 2, 1)))
    await writer.write(sample("t1", _utc(2024, 4, 1)))
    await writer.write(sample("t1", _utc(2024, 4, 2)))
    persisted = await writer.write(sample(neighbour, _utc(2024, 4, 3)))

    report = await erasure.erase_all("t1")

    assert report.partitions_dropped == 0
    assert report.partitions_purged == 2
    assert report.records_deleted == 3
    assert await store.exists(persisted.partition)
    assert store.count(persisted.partition) == 1
    page = await reader.query("t1", _utc(2024, 1, 1), _utc(2024, 6, 1), limit=10)
    assert page.samples == []


@pytest.mark.asyncio
async def test_catalog_sweep_finds_partitions_outside_lookback(erasure, store, sample):
    old = "location_history_2005_07_user_t2"
    lookalike = "location_history_2005_07_user_t22"
    for name in (old, lookalike):
        await store.create_partition_if_absent(name, index_spec_for(UserTier.VIP), None)
    await store.insert(PartitionHandle(name=old), sample("t2", _utc(2005, 7, 1)))
    await store.insert(PartitionHandle(name=lookalike), sample("t22", _utc(2005, 7, 1)))

    report = await erasure.erase_all("t2")

    assert report.partitions_dropped == 1
    assert not await store.exists(old)
    assert await store.exists(lookalike)


@pytest.mark.asyncio
async def test_unknown_tourist_erasure_is_empty_and_complete(erasure):
    report = await erasure.erase_all("ghost")
    assert report.tier is UserTier.STANDARD
    assert report.partitions_touched == 0
    assert report.records_deleted == 0
    assert report.complete
    # 2014-01 .. 2024-06 inclusive
    assert report.partitions_scanned == 10 * 12 + 6


@pytest.mark.asyncio
async def test_partition_failure_collected_and_sweep_continues(writer, erasure, store, sample, logger):
    await writer.write(sample("p1", _utc(2024, 1, 10)))
    await writer.write(sample("p1", _utc(2024, 2, 10)))
    await writer.write(sample("p1", _utc(2024, 3, 10)))
    delete_many = store.delete_many

    async def flaky(handle, sample_filter):
        if "_2024_02_" in handle.name:
            raise ConnectionError("primary stepped down")
        return await delete_many(handle, sample_filter)

    store.delete_many = flaky
    report = await erasure.erase_all("p1")

    assert report.tier is UserTier.PREMIUM
    assert not report.complete
    assert [f.partition for f in report.failures] == await store.list_partitions("location_history_2024_02_")
    assert report.partitions_purged == 2
    assert report.records_deleted == 2
    logger.error.assert_called()


@pytest.mark.asyncio
async def test_catalog_failure_still_sweeps_computed_names(writer, erasure, store, sample):
    await writer.write(sample("t2", _utc(2024, 1, 10)))
    store.list_partitions = AsyncMock(side_effect=ConnectionError("catalog down"))
    report = await erasure.erase_all("t2")
    assert report.partitions_dropped == 1
    assert not report.complete
    assert report.failures[0].partition == "location_history_*"


@pytest.mark.asyncio
async def test_rerun_after_failure_completes(writer, erasure, store, sample):
    await writer.write(sample("t2", _utc(2024, 1, 10)))
    drop = store.drop
    store.drop = AsyncMock(side_effect=ConnectionError("timeout"))
    first = await erasure.erase_all("t2")
    assert not first.complete
    store.drop = drop
    second = await erasure.erase_all("t2")
    assert second.complete
    assert second.partitions_dropped == 1


@pytest.mark.asyncio
async def test_erasure_metrics(writer, erasure, sample, metrics):
    await writer.write(sample("t2", _utc(2024, 1, 10)))
    await erasure.erase_all("t2")
    assert metrics.counter("erasure_partitions_dropped") == 1


@pytest.mark.asyncio
async def test_concurrency_bound(policy, registry, profiles, logger, clock, writer, sample, store):
    for month in range(1, 6):
        await writer.write(sample("t2", _utc(2024, month, 1)))
    in_flight = 0
    peak = 0
    drop = store.drop

    async def tracked(handle):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        try:
            await asyncio.sleep(0.01)
            return await drop(handle)
        finally:
            in_flight -= 1

    store.drop = tracked
    coordinator = ErasureCoordinator(policy, registry, profiles, logger, max_concurrency=2, clock=clock)
    report = await coordinator.erase_all("t2")
    assert report.partitions_dropped == 5
    assert peak <= 2
