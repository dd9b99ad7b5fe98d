"""
Referral Service - paid referral counters.
"""

import uuid
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.order import ReferralStat

logger = logging.getLogger(__name__)


class ReferralService:
    """Service for referral bookkeeping."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def increment(self, user_id: uuid.UUID) -> int:
        """Add one paid referral for `user_id`. Returns the new count."""
        result = await self.db.execute(
            update(ReferralStat)
            .where(ReferralStat.user_id == user_id)
            .values(referral_count=ReferralStat.referral_count + 1)
        )

        if not result.rowcount:
            self.db.add(ReferralStat(user_id=user_id, referral_count=1))
            await self.db.flush()
            logger.info(f"First referral recorded for {user_id}")
            return 1

        count = await self.get_count(user_id)
        logger.info(f"Referral count for {user_id} is now {count}")
        return count

    async def get_count(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(ReferralStat.referral_count).where(ReferralStat.user_id == user_id)
        )
        return result.scalar_one_or_none() or 0
