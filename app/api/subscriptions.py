"""
Subscription API Router - plans and the caller's entitlements.
"""

import logging
from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.database import get_db
from app.models.plan import Plan
from app.models.subscription import UserSubscription
from app.services.errors import NotFoundError
from app.services.identity_service import AuthenticatedUser
from app.services.plan_service import PlanService
from app.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["subscriptions"])


def serialize_plan(plan: Plan) -> Dict[str, Any]:
    return {
        "id": str(plan.id),
        "slug": plan.slug,
        "name": plan.name,
        "price_in_paise": plan.price_in_paise,
        "billing_interval": plan.billing_interval,
        "duration_days": plan.duration_days,
        "exam_id": str(plan.exam_id) if plan.exam_id else None,
        "features": plan.features,
    }


def serialize_subscription(subscription: Optional[UserSubscription]) -> Optional[Dict[str, Any]]:
    if subscription is None:
        return None
    return {
        "id": str(subscription.id),
        "plan_id": str(subscription.plan_id),
        "status": subscription.status,
        "starts_at": subscription.starts_at.isoformat(),
        "expires_at": subscription.expires_at.isoformat() if subscription.expires_at else None,
        "auto_renew": subscription.auto_renew,
    }


@router.get("/plans")
async def list_plans(db: AsyncSession = Depends(get_db)):
    """Active plans."""
    plans = await PlanService(db).list_active_plans()
    return {"plans": [serialize_plan(p) for p in plans]}


@router.get("/subscriptions")
async def list_my_subscriptions(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's active, unexpired entitlements."""
    subscriptions = await SubscriptionService(db).list_active_subscriptions(user.id)
    return {"subscriptions": [serialize_subscription(s) for s in subscriptions]}


@router.get("/subscriptions/{plan_slug}")
async def get_plan_subscription(
    plan_slug: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Plan page gate: the plan and the caller's active subscription to it.
    Re-queried on every call.
    """
    plan = await PlanService(db).get_active_plan_by_slug(plan_slug)
    if not plan:
        raise NotFoundError("Plan not found or inactive")

    subscription = await SubscriptionService(db).get_active_subscription(user.id, plan.id)

    return {
        "plan": serialize_plan(plan),
        "subscription": serialize_subscription(subscription),
        "is_subscribed": subscription is not None,
    }
