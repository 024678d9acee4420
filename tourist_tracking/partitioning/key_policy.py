"""
Partition naming for location history.

A partition name is a pure function of (tourist_id, timestamp, tier):

    location_history_<time bucket>_<shard label>

Time bucket (UTC):
    daily    -> YYYY_MM_DD
    weekly   -> YYYY_wN    (weeks start on Sunday and on 1 January; N is not zero-padded)
    monthly  -> YYYY_MM
    none     -> omitted, giving location_history_<shard label>

Shard label:
    vip      -> user_<tourist_id>              (dedicated partition)
    premium  -> premium_<hash % premium_shards>
    standard -> shard_<hash % standard_shards>

The hash is the first 32 bits of the MD5 digest of the tourist id, so the same
name is produced by every process and every service that follows this scheme.
Reads and erasure rebuild candidate names from this module alone; no catalog
lookup is needed to know where a tourist's samples live.
"""

import hashlib
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterator, List, Optional

from tourist_tracking.domain.models.location import UserTier
from tourist_tracking.domain.validators.location_validator import (
    TimestampLike,
    parse_timestamp,
    validate_time_range,
    validate_tourist_id,
)

PARTITION_PREFIX = "location_history"

DEFAULT_STANDARD_SHARDS = 16
DEFAULT_PREMIUM_SHARDS = 4

_PARTITION_NAME = re.compile(
    rf"^{PARTITION_PREFIX}_"
    r"(?:(?P<bucket>\d{4}_\d{2}_\d{2}|\d{4}_w\d{1,2}|\d{4}_\d{2})_)?"
    r"(?P<label>user_(?P<user>.+)|premium_(?P<premium>\d+)|shard_(?P<shard>\d+))$"
)


class TimeGranularity(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    NONE = "none"


class UserShardHasher:
    """
    Maps tourist_id to a stable shard index.
    Deterministic: same tourist_id always maps to same shard for a given shard count.
    """

    def __init__(self, num_shards: int) -> None:
        if num_shards < 1:
            raise ValueError("num_shards must be >= 1")
        self._num_shards = num_shards

    @property
    def num_shards(self) -> int:
        return self._num_shards

    def get_shard(self, tourist_id: str) -> int:
        """Return shard index in [0, num_shards - 1]."""
        digest = hashlib.md5(tourist_id.encode("utf-8")).hexdigest()
        return int(digest[:8], 16) % self._num_shards


def _js_weekday(day: datetime) -> int:
    """Weekday with Sunday = 0."""
    return (day.weekday() + 1) % 7


def week_number(ts: datetime) -> int:
    """Week of year: ceil((day_of_year_zero_based + weekday_of_jan1 + 1) / 7), Sunday-based."""
    jan1 = ts.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    days = (ts.date() - jan1.date()).days
    return (days + _js_weekday(jan1) + 1 + 6) // 7


def time_bucket_label(ts: datetime, granularity: TimeGranularity) -> Optional[str]:
    if granularity is TimeGranularity.DAILY:
        return f"{ts.year}_{ts.month:02d}_{ts.day:02d}"
    if granularity is TimeGranularity.WEEKLY:
        return f"{ts.year}_w{week_number(ts)}"
    if granularity is TimeGranularity.MONTHLY:
        return f"{ts.year}_{ts.month:02d}"
    return None


def bucket_start(ts: datetime, granularity: TimeGranularity) -> datetime:
    """First instant of the time bucket containing ts."""
    midnight = ts.replace(hour=0, minute=0, second=0, microsecond=0)
    if granularity is TimeGranularity.DAILY:
        return midnight
    if granularity is TimeGranularity.MONTHLY:
        return midnight.replace(day=1)
    if granularity is TimeGranularity.WEEKLY:
        sunday = midnight - timedelta(days=_js_weekday(midnight))
        return max(sunday, midnight.replace(month=1, day=1))
    return midnight


def next_bucket_start(start: datetime, granularity: TimeGranularity) -> datetime:
    """First instant of the bucket after the one beginning at start."""
    if granularity is TimeGranularity.DAILY:
        return start + timedelta(days=1)
    if granularity is TimeGranularity.MONTHLY:
        if start.month == 12:
            return start.replace(year=start.year + 1, month=1, day=1)
        return start.replace(month=start.month + 1, day=1)
    if granularity is TimeGranularity.WEEKLY:
        next_sunday = start + timedelta(days=7 - _js_weekday(start))
        next_jan1 = start.replace(year=start.year + 1, month=1, day=1)
        return min(next_sunday, next_jan1)
    raise ValueError("granularity 'none' has a single bucket")


def iter_bucket_starts(
    start: datetime,
    end: datetime,
    granularity: TimeGranularity,
) -> Iterator[datetime]:
    """Walk the time axis one bucket at a time, covering [start, end] inclusive."""
    current = bucket_start(start, granularity)
    if granularity is TimeGranularity.NONE:
        yield current
        return
    while current <= end:
        yield current
        current = next_bucket_start(current, granularity)


@dataclass(frozen=True)
class PartitionKey:
    """Parsed form of a partition name."""

    time_bucket: Optional[str]
    shard_label: str
    tier: UserTier
    tourist_id: Optional[str] = None
    shard_index: Optional[int] = None

    @property
    def name(self) -> str:
        if self.time_bucket is None:
            return f"{PARTITION_PREFIX}_{self.shard_label}"
        return f"{PARTITION_PREFIX}_{self.time_bucket}_{self.shard_label}"


def parse_partition_name(name: str) -> Optional[PartitionKey]:
    """Return the PartitionKey for a name following the scheme, or None for foreign names."""
    match = _PARTITION_NAME.match(name)
    if match is None:
        return None
    label = match.group("label")
    if match.group("user") is not None:
        return PartitionKey(match.group("bucket"), label, UserTier.VIP, tourist_id=match.group("user"))
    if match.group("premium") is not None:
        return PartitionKey(
            match.group("bucket"), label, UserTier.PREMIUM, shard_index=int(match.group("premium"))
        )
    return PartitionKey(
        match.group("bucket"), label, UserTier.STANDARD, shard_index=int(match.group("shard"))
    )


class PartitionKeyPolicy:
    """
    Derives partition names from (tourist_id, timestamp, tier). Pure and total for
    well-formed input; raises InvalidArgumentError for an empty tourist id or an
    unparseable timestamp.
    """

    def __init__(
        self,
        granularity: TimeGranularity = TimeGranularity.MONTHLY,
        standard_shards: int = DEFAULT_STANDARD_SHARDS,
        premium_shards: int = DEFAULT_PREMIUM_SHARDS,
    ) -> None:
        self._granularity = TimeGranularity(granularity)
        self._standard = UserShardHasher(standard_shards)
        self._premium = UserShardHasher(premium_shards)

    @property
    def granularity(self) -> TimeGranularity:
        return self._granularity

    @staticmethod
    def is_dedicated(tier: UserTier) -> bool:
        """True when the tier stores each tourist in partitions of its own."""
        return UserTier(tier) is UserTier.VIP

    def shard_label(self, tourist_id: str, tier: UserTier) -> str:
        validate_tourist_id(tourist_id)
        tier = UserTier(tier)
        if tier is UserTier.VIP:
            return f"user_{tourist_id}"
        if tier is UserTier.PREMIUM:
            return f"premium_{self._premium.get_shard(tourist_id)}"
        return f"shard_{self._standard.get_shard(tourist_id)}"

    def partition_key(self, tourist_id: str, timestamp: TimestampLike, tier: UserTier) -> PartitionKey:
        ts = parse_timestamp(timestamp)
        tier = UserTier(tier)
        label = self.shard_label(tourist_id, tier)
        return PartitionKey(
            time_bucket=time_bucket_label(ts, self._granularity),
            shard_label=label,
            tier=tier,
            tourist_id=tourist_id if tier is UserTier.VIP else None,
            shard_index=None if tier is UserTier.VIP else int(label.rsplit("_", 1)[1]),
        )

    def partition_name(self, tourist_id: str, timestamp: TimestampLike, tier: UserTier) -> str:
        return self.partition_key(tourist_id, timestamp, tier).name

    def candidate_partitions(
        self,
        tourist_id: str,
        start: TimestampLike,
        end: TimestampLike,
        tier: UserTier,
    ) -> List[str]:
        """
        Every partition name that could hold samples for tourist_id within [start, end],
        oldest bucket first, without duplicates. Names are computed, not looked up, so
        some may refer to partitions that were never created.
        """
        start_ts = parse_timestamp(start)
        end_ts = parse_timestamp(end)
        validate_time_range(start_ts, end_ts)
        names: List[str] = []
        seen = set()
        for bucket in iter_bucket_starts(start_ts, end_ts, self._granularity):
            name = self.partition_name(tourist_id, bucket, tier)
            if name not in seen:
                seen.add(name)
                names.append(name)
        return names

    def owns_partition(self, name: str, tourist_id: str, tier: UserTier) -> bool:
        """True if the partition name carries this tourist's shard label for the tier."""
        key = parse_partition_name(name)
        if key is None:
            return False
        return key.shard_label == self.shard_label(tourist_id, tier)


def lookback_start(now: datetime, years: int) -> datetime:
    """1 January of the year `years` before now (UTC)."""
    now = now.astimezone(timezone.utc)
    return datetime(now.year - years, 1, 1, tzinfo=timezone.utc)
