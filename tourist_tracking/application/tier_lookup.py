"""Tourist profile lookup protocol and tier resolution with fallback to standard."""

import logging
from typing import Dict, Optional, Protocol

from tourist_tracking.application.exceptions import TierLookupError
from tourist_tracking.domain.models.location import TouristProfile, UserTier


class TouristProfileLookup(Protocol):
    """Protocol for looking up whether a tourist exists and their current tier."""

    async def get_tier_and_existence(self, tourist_id: str) -> TouristProfile:
        """Return the profile; an unknown tourist yields exists=False, tier=standard."""
        ...


class StaticTouristProfileLookup:
    """In-memory lookup backed by a dict of tourist_id -> tier. Implements TouristProfileLookup."""

    def __init__(self, tiers: Optional[Dict[str, UserTier]] = None) -> None:
        self._tiers: Dict[str, UserTier] = dict(tiers or {})

    def set_tier(self, tourist_id: str, tier: UserTier) -> None:
        self._tiers[tourist_id] = UserTier(tier)

    async def get_tier_and_existence(self, tourist_id: str) -> TouristProfile:
        tier = self._tiers.get(tourist_id)
        if tier is None:
            return TouristProfile(tourist_id=tourist_id, exists=False)
        return TouristProfile(tourist_id=tourist_id, exists=True, tier=tier)


async def resolve_tier(
    lookup: TouristProfileLookup,
    tourist_id: str,
    logger: logging.Logger,
    fixed_tier: Optional[UserTier] = None,
) -> UserTier:
    """
    Current tier for tourist_id. A configured fixed_tier wins without a lookup.
    Unknown tourists and failed lookups resolve to standard; failures are logged, never raised.
    """
    if fixed_tier is not None:
        return UserTier(fixed_tier)
    try:
        profile = await lookup.get_tier_and_existence(tourist_id)
    except Exception as e:
        error = e if isinstance(e, TierLookupError) else TierLookupError(str(e))
        logger.warning(
            "tier_lookup_failed",
            extra={"tourist_id": tourist_id, "error": error.message, "fallback_tier": UserTier.STANDARD.value},
        )
        return UserTier.STANDARD
    if not profile.exists:
        logger.info("tourist_profile_not_found", extra={"tourist_id": tourist_id})
        return UserTier.STANDARD
    return profile.tier
