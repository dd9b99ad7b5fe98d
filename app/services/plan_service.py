"""
Plan Service - plan lookups and admin plan management.
"""

import uuid
import logging
from typing import Optional, List, Union, Dict, Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.plan import Plan
from app.fsm.states import BillingInterval
from app.services.errors import InvalidRequestError, NotFoundError

logger = logging.getLogger(__name__)


def parse_uuid(value: Union[str, uuid.UUID, None]) -> Optional[uuid.UUID]:
    """Parse a UUID from request input; None when malformed."""
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class PlanService:
    """Service for reading and managing plans."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_plan(
        self,
        plan_id: Union[str, uuid.UUID, None],
        active_only: bool = False,
    ) -> Optional[Plan]:
        """Get plan by id, optionally requiring it to be active."""
        plan_uuid = parse_uuid(plan_id)
        if plan_uuid is None:
            return None

        query = select(Plan).where(Plan.id == plan_uuid)
        if active_only:
            query = query.where(Plan.active.is_(True))

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_active_plan_by_slug(self, slug: str) -> Optional[Plan]:
        result = await self.db.execute(
            select(Plan).where(Plan.slug == slug, Plan.active.is_(True))
        )
        return result.scalar_one_or_none()

    async def list_active_plans(self) -> List[Plan]:
        """Active plans, cheapest first."""
        result = await self.db.execute(
            select(Plan)
            .where(Plan.active.is_(True))
            .order_by(Plan.price_in_paise, Plan.name)
        )
        return list(result.scalars().all())

    async def create_plan(
        self,
        slug: str,
        name: str,
        price_in_paise: int,
        billing_interval: str,
        duration_days: Optional[int] = None,
        exam_id: Optional[uuid.UUID] = None,
        features: Optional[Dict[str, Any]] = None,
    ) -> Plan:
        """Create a new plan. Plans are immutable afterwards apart from `active`."""
        try:
            interval = BillingInterval(billing_interval)
        except ValueError:
            raise InvalidRequestError(f"Unknown billing interval: {billing_interval}")

        if price_in_paise <= 0:
            raise InvalidRequestError("Plan price must be positive")
        if duration_days is not None and duration_days <= 0:
            raise InvalidRequestError("duration_days must be positive")

        existing = await self.db.execute(select(Plan.id).where(Plan.slug == slug))
        if existing.scalar_one_or_none() is not None:
            raise InvalidRequestError(f"Plan slug already exists: {slug}")

        plan = Plan(
            slug=slug,
            name=name,
            price_in_paise=price_in_paise,
            billing_interval=interval.value,
            duration_days=duration_days,
            exam_id=exam_id,
            features=features,
            active=True,
        )
        self.db.add(plan)
        await self.db.flush()

        logger.info(f"Created plan {plan.slug} ({plan.id})")
        return plan

    async def set_active(self, plan_id: Union[str, uuid.UUID], active: bool) -> Plan:
        """Toggle the only mutable plan field."""
        plan = await self.get_plan(plan_id)
        if not plan:
            raise NotFoundError("Plan not found")

        plan.active = active
        await self.db.flush()

        logger.info(f"Plan {plan.slug} active={active}")
        return plan
