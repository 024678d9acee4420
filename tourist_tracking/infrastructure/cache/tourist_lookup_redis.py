"""Redis read-through cache in front of another TouristProfileLookup."""

import json
import logging

from redis.exceptions import RedisError

from tourist_tracking.application.tier_lookup import TouristProfileLookup
from tourist_tracking.domain.models.location import TouristProfile, UserTier
from tourist_tracking.infrastructure.cache.redis_client import RedisClient

TIER_CACHE_PREFIX = "tier:"
TIER_CACHE_TTL = 300  # 5 minutes


class CachedTouristProfileLookup:
    """
    Caches {exists, tier} per tourist under tier:<tourist_id>. Implements TouristProfileLookup.

    Redis errors are logged and the call falls through to the wrapped lookup, so a cache
    outage never changes which partition a sample lands in. Unknown tourists are not cached.
    """

    def __init__(
        self,
        inner: TouristProfileLookup,
        redis_client: RedisClient,
        logger: logging.Logger,
        ttl_seconds: int = TIER_CACHE_TTL,
    ) -> None:
        self._inner = inner
        self._redis = redis_client
        self._logger = logger
        self._ttl = ttl_seconds

    async def get_tier_and_existence(self, tourist_id: str) -> TouristProfile:
        key = f"{TIER_CACHE_PREFIX}{tourist_id}"
        try:
            raw = await self._redis.get_cache(key)
        except RedisError as e:
            self._logger.warning("tier_cache_read_failed", extra={"tourist_id": tourist_id, "error": str(e)})
            raw = None
        if raw:
            data = json.loads(raw)
            return TouristProfile(
                tourist_id=tourist_id,
                exists=bool(data["exists"]),
                tier=UserTier(data["tier"]),
            )

        profile = await self._inner.get_tier_and_existence(tourist_id)
        if profile.exists:
            payload = json.dumps({"exists": True, "tier": profile.tier.value})
            try:
                await self._redis.set_cache(key, payload, ttl=self._ttl)
            except RedisError as e:
                self._logger.warning("tier_cache_write_failed", extra={"tourist_id": tourist_id, "error": str(e)})
        return profile

    async def invalidate(self, tourist_id: str) -> None:
        """Drop the cached tier, e.g. after a subscription change."""
        await self._redis.delete_key(f"{TIER_CACHE_PREFIX}{tourist_id}")
