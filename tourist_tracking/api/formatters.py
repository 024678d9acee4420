"""Renderers for a history page: JSON, GeoJSON FeatureCollection, CSV."""

import csv
import io
from typing import Any, Dict, List

from tourist_tracking.application.history_reader import HistoryPage
from tourist_tracking.domain.models.location import LocationSample
from tourist_tracking.domain.schemas.location import (
    HistoryResponse,
    LocationSampleResponse,
    Pagination,
)

CSV_HEADER = [
    "id",
    "latitude",
    "longitude",
    "accuracy",
    "speed",
    "heading",
    "altitude",
    "batteryLevel",
    "timestamp",
    "source",
]


def _pagination(page: HistoryPage) -> Pagination:
    return Pagination(
        limit=page.limit,
        offset=page.offset,
        has_more=page.has_more,
        next_offset=page.offset + len(page.samples) if page.has_more else None,
    )


def to_json(page: HistoryPage) -> HistoryResponse:
    return HistoryResponse(
        tourist_id=page.tourist_id,
        tier=page.tier,
        returned_records=len(page.samples),
        pagination=_pagination(page),
        start=page.start,
        end=page.end,
        source=page.source,
        partitions_queried=len(page.partitions_queried),
        failed_partitions=[f.partition for f in page.failed_partitions],
        locations=[LocationSampleResponse.from_sample(s) for s in page.samples],
    )


def _feature(sample: LocationSample) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "geometry": {
            "type": "Point",
            # GeoJSON order is [longitude, latitude]
            "coordinates": [sample.location.longitude, sample.location.latitude],
        },
        "properties": {
            "id": sample.record_id,
            "timestamp": sample.timestamp.isoformat(),
            "accuracy": sample.accuracy,
            "speed": sample.speed,
            "heading": sample.heading,
            "altitude": sample.altitude,
            "batteryLevel": sample.battery_level,
            "source": sample.source.value,
        },
    }


def to_geojson(page: HistoryPage) -> Dict[str, Any]:
    features: List[Dict[str, Any]] = [_feature(s) for s in page.samples]
    return {
        "type": "FeatureCollection",
        "features": features,
        "metadata": {
            "tourist_id": page.tourist_id,
            "returned_records": len(features),
            "has_more": page.has_more,
            "failed_partitions": [f.partition for f in page.failed_partitions],
        },
    }


def _csv_value(value: Any) -> Any:
    return "" if value is None else value


def to_csv(page: HistoryPage) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for s in page.samples:
        writer.writerow(
            [
                _csv_value(s.record_id),
                s.location.latitude,
                s.location.longitude,
                _csv_value(s.accuracy),
                _csv_value(s.speed),
                _csv_value(s.heading),
                _csv_value(s.altitude),
                _csv_value(s.battery_level),
                s.timestamp.isoformat(),
                s.source.value,
            ]
        )
    return buffer.getvalue()
