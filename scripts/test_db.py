# scripts/test_db.py
import sys
from pathlib import Path

from sqlalchemy import inspect, text

# Ensure project root is on the path when running this script directly
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import asyncio

from tourist_tracking.infrastructure.database.partition_store_sql import SqlPartitionStore
from tourist_tracking.infrastructure.database.session import engine

CATALOG_TABLE = "partition_ttl_rules"


async def test_connection():
    async with engine.begin() as conn:
        result = await conn.execute(text("SELECT 1"))
        print("DB Connected:", result.scalar())

    store = SqlPartitionStore(engine)
    # expire() installs the catalog table on first use.
    print("Expired rows:", await store.expire())
    async with engine.connect() as conn:
        present = await conn.run_sync(lambda c: inspect(c).has_table(CATALOG_TABLE))
    print(f"{CATALOG_TABLE} present:", present)
    print("Partitions:", await store.list_partitions("location_history_"))
    await engine.dispose()


asyncio.run(test_connection())
