"""PostgreSQL-backed partition store. One table per location history partition."""

import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Index,
    JSON,
    MetaData,
    String,
    Table,
    delete,
    func,
    inspect,
    select,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from tourist_tracking.application.exceptions import PartitionIOError, PartitionProvisioningError
from tourist_tracking.application.partition_store import (
    DESCENDING,
    IndexDefinition,
    IndexSpec,
    PartitionHandle,
    SampleFilter,
    TtlSpec,
)
from tourist_tracking.domain.models.location import GeoPoint, LocationSample, LocationSource
from tourist_tracking.infrastructure.database.models import PartitionTtlRule

# PostgreSQL truncates identifiers longer than this, which would merge distinct partitions.
MAX_IDENTIFIER_LENGTH = 63

# JSONB on PostgreSQL, plain JSON elsewhere (sqlite in tests).
_DOCUMENT = JSON().with_variant(postgresql.JSONB(), "postgresql")

_UPSERT = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


def _location_table(name: str, metadata: MetaData) -> Table:
    return Table(
        name,
        metadata,
        Column("record_id", String(32), primary_key=True),
        Column("tourist_id", String, nullable=False),
        Column("device_id", String, nullable=True),
        Column("longitude", Float, nullable=False),
        Column("latitude", Float, nullable=False),
        Column("timestamp", DateTime(timezone=True), nullable=False),
        Column("accuracy", Float, nullable=True),
        Column("speed", Float, nullable=True),
        Column("heading", Float, nullable=True),
        Column("altitude", Float, nullable=True),
        Column("battery_level", Float, nullable=True),
        Column("source", String(16), nullable=False, default="gps"),
        Column("network_info", _DOCUMENT, nullable=True),
        Column("context", _DOCUMENT, nullable=True),
    )


def _index_name(partition: str, definition: IndexDefinition) -> str:
    digest = hashlib.md5(partition.encode("utf-8")).hexdigest()[:10]
    return f"ix_{digest}_{definition.name}"


def _row_to_sample(row) -> LocationSample:
    m = row._mapping
    ts = m["timestamp"]
    if ts is not None and ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return LocationSample(
        record_id=m["record_id"],
        tourist_id=m["tourist_id"],
        device_id=m["device_id"],
        location=GeoPoint(longitude=m["longitude"], latitude=m["latitude"]),
        timestamp=ts,
        accuracy=m["accuracy"],
        speed=m["speed"],
        heading=m["heading"],
        altitude=m["altitude"],
        battery_level=m["battery_level"],
        source=LocationSource(m["source"]),
        network_info=m["network_info"],
        context=m["context"],
    )


class SqlPartitionStore:
    """
    Implements PartitionStore on PostgreSQL with SQLAlchemy asyncio. Also runs on
    sqlite (aiosqlite) without the geospatial index.

    Geospatial index: GiST over point(longitude, latitude).
    TTL: rules are kept in partition_ttl_rules; expire() deletes rows older than
    each partition's rule.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._engine = engine
        self._metadata = MetaData()
        self._tables: Dict[str, Table] = {}
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._catalog_ready = False

    def _table(self, name: str) -> Table:
        if len(name) > MAX_IDENTIFIER_LENGTH:
            raise PartitionIOError(
                f"partition name exceeds {MAX_IDENTIFIER_LENGTH} characters: {name}",
                partition=name,
            )
        table = self._tables.get(name)
        if table is None:
            table = _location_table(name, self._metadata)
            self._tables[name] = table
        return table

    def _indexes(self, table: Table, index_spec: IndexSpec) -> List[Index]:
        # Indexes stay attached to the cached Table and are re-emitted by table.create().
        attached = {index.name: index for index in table.indexes}
        indexes = []
        for definition in index_spec.indexes:
            index_name = _index_name(table.name, definition)
            if index_name in attached:
                indexes.append(attached[index_name])
                continue
            if definition.kind == "geo":
                indexes.append(
                    Index(
                        index_name,
                        func.point(table.c.longitude, table.c.latitude),
                        postgresql_using="gist",
                    )
                )
                continue
            columns = [
                table.c[field].desc() if direction == DESCENDING else table.c[field]
                for field, direction in definition.fields
            ]
            indexes.append(Index(index_name, *columns))
        return indexes

    async def _ensure_catalog(self) -> None:
        if self._catalog_ready:
            return
        async with self._engine.begin() as conn:
            await conn.run_sync(PartitionTtlRule.__table__.create, checkfirst=True)
        self._catalog_ready = True

    async def create_partition_if_absent(
        self,
        name: str,
        index_spec: IndexSpec,
        ttl_spec: Optional[TtlSpec],
    ) -> bool:
        table = self._table(name)
        try:
            async with self._engine.begin() as conn:
                existed = await conn.run_sync(lambda c: inspect(c).has_table(name))
                await conn.run_sync(table.create, checkfirst=True)
        except SQLAlchemyError as e:
            raise PartitionIOError(f"create {name} failed: {e}", partition=name) from e

        errors = []
        for index in self._indexes(table, index_spec):
            try:
                async with self._engine.begin() as conn:
                    await conn.run_sync(index.create, checkfirst=True)
            except SQLAlchemyError as e:
                errors.append(f"index {index.name}: {e}")
        if ttl_spec is not None:
            try:
                await self.ensure_ttl(name, ttl_spec)
            except PartitionIOError as e:
                errors.append(f"ttl: {e.message}")
        if errors:
            raise PartitionProvisioningError(
                f"partition {name} provisioned without: {'; '.join(errors)}",
                partition=name,
            )
        return not existed

    async def ensure_ttl(self, name: str, ttl_spec: TtlSpec) -> None:
        try:
            await self._ensure_catalog()
            upsert = _UPSERT.get(self._engine.dialect.name, postgresql.insert)
            stmt = upsert(PartitionTtlRule).values(
                partition_name=name,
                field=ttl_spec.field,
                expire_after_seconds=ttl_spec.expire_after_seconds,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["partition_name"],
                set_={
                    "field": ttl_spec.field,
                    "expire_after_seconds": ttl_spec.expire_after_seconds,
                },
            )
            async with self._engine.begin() as conn:
                await conn.execute(stmt)
        except SQLAlchemyError as e:
            raise PartitionIOError(f"ttl rule for {name} failed: {e}", partition=name) from e

    async def insert(self, handle: PartitionHandle, sample: LocationSample) -> str:
        table = self._table(handle.name)
        record_id = sample.record_id or uuid.uuid4().hex
        async with self._engine.begin() as conn:
            await conn.execute(
                table.insert().values(
                    record_id=record_id,
                    tourist_id=sample.tourist_id,
                    device_id=sample.device_id,
                    longitude=sample.location.longitude,
                    latitude=sample.location.latitude,
                    timestamp=sample.timestamp,
                    accuracy=sample.accuracy,
                    speed=sample.speed,
                    heading=sample.heading,
                    altitude=sample.altitude,
                    battery_level=sample.battery_level,
                    source=LocationSource(sample.source).value,
                    network_info=sample.network_info,
                    context=sample.context,
                )
            )
        return record_id

    def _where(self, table: Table, sample_filter: SampleFilter) -> list:
        conditions = [table.c.tourist_id == sample_filter.tourist_id]
        if sample_filter.start is not None:
            conditions.append(table.c.timestamp >= sample_filter.start)
        if sample_filter.end is not None:
            conditions.append(table.c.timestamp <= sample_filter.end)
        if sample_filter.source is not None:
            conditions.append(table.c.source == LocationSource(sample_filter.source).value)
        return conditions

    async def query(
        self,
        handle: PartitionHandle,
        sample_filter: SampleFilter,
        sort_descending: bool,
        limit: int,
    ) -> List[LocationSample]:
        table = self._table(handle.name)
        order = table.c.timestamp.desc() if sort_descending else table.c.timestamp.asc()
        stmt = select(table).where(*self._where(table, sample_filter)).order_by(order).limit(limit)
        async with self._engine.connect() as conn:
            result = await conn.execute(stmt)
            return [_row_to_sample(row) for row in result]

    async def delete_many(self, handle: PartitionHandle, sample_filter: SampleFilter) -> int:
        table = self._table(handle.name)
        async with self._engine.begin() as conn:
            result = await conn.execute(delete(table).where(*self._where(table, sample_filter)))
            return result.rowcount or 0

    async def drop(self, handle: PartitionHandle) -> bool:
        table = self._table(handle.name)
        await self._ensure_catalog()
        async with self._engine.begin() as conn:
            existed = await conn.run_sync(lambda c: inspect(c).has_table(handle.name))
            await conn.run_sync(table.drop, checkfirst=True)
            await conn.execute(
                delete(PartitionTtlRule).where(PartitionTtlRule.partition_name == handle.name)
            )
        self._tables.pop(handle.name, None)
        self._metadata.remove(table)
        return existed

    async def exists(self, name: str) -> bool:
        async with self._engine.connect() as conn:
            return await conn.run_sync(lambda c: inspect(c).has_table(name))

    async def list_partitions(self, prefix: str) -> List[str]:
        async with self._engine.connect() as conn:
            names = await conn.run_sync(lambda c: inspect(c).get_table_names())
        return sorted(n for n in names if n.startswith(prefix))

    async def expire(self) -> int:
        await self._ensure_catalog()
        async with self._engine.connect() as conn:
            rules = (
                await conn.execute(
                    select(
                        PartitionTtlRule.partition_name,
                        PartitionTtlRule.field,
                        PartitionTtlRule.expire_after_seconds,
                    )
                )
            ).all()
        removed = 0
        now = self._clock()
        for rule in rules:
            table = self._table(rule.partition_name)
            cutoff = now - timedelta(seconds=rule.expire_after_seconds)
            async with self._engine.begin() as conn:
                exists = await conn.run_sync(lambda c: inspect(c).has_table(rule.partition_name))
                if not exists:
                    continue
                result = await conn.execute(delete(table).where(table.c[rule.field] < cutoff))
                removed += result.rowcount or 0
        return removed
