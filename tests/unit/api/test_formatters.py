"""History formatters: CSV header and empty values, GeoJSON ordering, JSON pagination."""

from datetime import datetime, timezone

from tourist_tracking.api.formatters import CSV_HEADER, to_csv, to_geojson, to_json
from tourist_tracking.application.history_reader import HistoryPage
from tourist_tracking.application.partition_store import PartitionFailure
from tourist_tracking.domain.models.location import GeoPoint, LocationSample, LocationSource, UserTier

TS = datetime(2024, 3, 15, 10, tzinfo=timezone.utc)


def _page(**overrides) -> HistoryPage:
    sample = LocationSample(
        tourist_id="t1",
        location=GeoPoint(longitude=91.7, latitude=26.1),
        timestamp=TS,
        source=LocationSource.IOT_DEVICE,
        accuracy=5.0,
        record_id="r1",
    )
    fields = dict(
        tourist_id="t1",
        tier=UserTier.STANDARD,
        start=datetime(2024, 3, 1, tzinfo=timezone.utc),
        end=datetime(2024, 3, 31, tzinfo=timezone.utc),
        samples=[sample],
        limit=1,
        has_more=True,
        partitions_queried=["location_history_2024_03_shard_3"],
        failed_partitions=[PartitionFailure(partition="location_history_2024_02_shard_3", error="boom")],
    )
    fields.update(overrides)
    return HistoryPage(**fields)


def test_csv_header_and_row():
    lines = to_csv(_page()).splitlines()
    assert lines[0] == ",".join(CSV_HEADER)
    assert lines[0] == "id,latitude,longitude,accuracy,speed,heading,altitude,batteryLevel,timestamp,source"
    assert lines[1] == "r1,26.1,91.7,5.0,,,,,2024-03-15T10:00:00+00:00,iot_device"


def test_csv_empty_page_has_header_only():
    assert to_csv(_page(samples=[], has_more=False)) == ",".join(CSV_HEADER) + "\n"


def test_geojson_longitude_first():
    collection = to_geojson(_page())
    assert collection["features"][0]["geometry"] == {"type": "Point", "coordinates": [91.7, 26.1]}
    assert collection["metadata"]["failed_partitions"] == ["location_history_2024_02_shard_3"]


def test_json_pagination_and_failures():
    response = to_json(_page())
    assert response.pagination.next_offset == 1
    assert response.partitions_queried == 1
    assert response.failed_partitions == ["location_history_2024_02_shard_3"]
    assert response.locations[0].id == "r1"
