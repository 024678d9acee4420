"""Tourist profile lookup backed by the tourists table."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tourist_tracking.application.exceptions import TierLookupError
from tourist_tracking.domain.models.location import TouristProfile, UserTier
from tourist_tracking.infrastructure.database.models import Tourist

VIP_SAFETY_SCORE = 90.0
PREMIUM_SAFETY_SCORE = 75.0


def derive_tier(subscription_tier: Optional[str], safety_score: Optional[float]) -> UserTier:
    """Explicit subscription wins; otherwise a high safety score promotes the tourist."""
    score = safety_score or 0.0
    if subscription_tier == UserTier.VIP.value or score > VIP_SAFETY_SCORE:
        return UserTier.VIP
    if subscription_tier == UserTier.PREMIUM.value or score > PREMIUM_SAFETY_SCORE:
        return UserTier.PREMIUM
    return UserTier.STANDARD


class DbTouristProfileLookup:
    """Implements TouristProfileLookup. Soft-deleted tourists count as unknown."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_tier_and_existence(self, tourist_id: str) -> TouristProfile:
        stmt = select(Tourist).where(Tourist.id == tourist_id, Tourist.is_deleted.isnot(True))
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                tourist = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise TierLookupError(f"tourist lookup failed for {tourist_id}: {e}") from e

        if tourist is None:
            return TouristProfile(tourist_id=tourist_id, exists=False)
        return TouristProfile(
            tourist_id=tourist_id,
            exists=True,
            tier=derive_tier(tourist.subscription_tier, tourist.safety_score),
            attributes={
                "subscription_tier": tourist.subscription_tier,
                "safety_score": tourist.safety_score,
            },
        )
