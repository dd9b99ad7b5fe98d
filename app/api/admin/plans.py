"""
Admin Plan Endpoints.
Plan creation, activation toggling and billing reconciliation.
"""

import uuid
import logging
from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_admin_user
from app.api.subscriptions import serialize_plan
from app.database import get_db
from app.fsm.states import BillingInterval
from app.services.plan_service import PlanService
from app.services.reconciliation_service import ReconciliationService
from app.services.subscription_service import SubscriptionService

router = APIRouter()
logger = logging.getLogger(__name__)


class CreatePlanRequest(BaseModel):
    """Request body for creating a plan."""
    slug: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=255)
    price_in_paise: int = Field(gt=0)
    billing_interval: BillingInterval
    duration_days: Optional[int] = Field(None, gt=0)
    exam_id: Optional[uuid.UUID] = None
    features: Optional[Dict[str, Any]] = None


class SetActiveRequest(BaseModel):
    active: bool


@router.post("/plans")
async def create_plan(
    request: CreatePlanRequest,
    db: AsyncSession = Depends(get_db),
    _: str = Depends(get_admin_user),
):
    plan = await PlanService(db).create_plan(
        slug=request.slug,
        name=request.name,
        price_in_paise=request.price_in_paise,
        billing_interval=request.billing_interval.value,
        duration_days=request.duration_days,
        exam_id=request.exam_id,
        features=request.features,
    )
    return {"success": True, "plan": serialize_plan(plan)}


@router.post("/plans/{plan_id}/active")
async def set_plan_active(
    plan_id: uuid.UUID,
    request: SetActiveRequest,
    db: AsyncSession = Depends(get_db),
    _: str = Depends(get_admin_user),
):
    plan = await PlanService(db).set_active(plan_id, request.active)
    return {"success": True, "plan": serialize_plan(plan), "active": plan.active}


@router.post("/billing/reconcile")
async def reconcile_billing(
    db: AsyncSession = Depends(get_db),
    _: str = Depends(get_admin_user),
):
    """Run the enrollment/invoice repair and expiry sweep now."""
    repaired = await ReconciliationService(db).reconcile()
    expired = await SubscriptionService(db).expire_lapsed()

    logger.info(f"Manual reconciliation: {repaired}, expired={expired}")
    return {"success": True, "repaired": repaired, "expired": expired}
