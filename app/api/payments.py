"""
Payment API Router - checkout order creation and payment verification.
"""

import logging
from typing import Optional

import razorpay
from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import authenticate, get_identity_service
from app.database import get_db
from app.services.errors import InvalidRequestError
from app.services.identity_service import IdentityService
from app.services.order_service import OrderService, get_razorpay_client
from app.services.verification_service import VerificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["payments"])


class CreateOrderRequest(BaseModel):
    """Request body for creating a checkout order. Amount is in paise."""
    plan_id: Optional[str] = None
    amount: Optional[int] = None
    referral_user_id: Optional[str] = None


class VerifyPaymentRequest(BaseModel):
    """Fields returned by Razorpay checkout to the client."""
    razorpay_payment_id: Optional[str] = None
    razorpay_order_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    plan_id: Optional[str] = None


@router.post("/create-order")
async def create_order(
    request: CreateOrderRequest,
    authorization: Optional[str] = Header(None),
    identity: IdentityService = Depends(get_identity_service),
    razorpay_client: razorpay.Client = Depends(get_razorpay_client),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a Razorpay order for a plan purchase.

    `amount` is in paise and must equal the plan's `price_in_paise`;
    any other amount is rejected with 400 "Amount does not match plan price".
    """
    if not request.plan_id or not request.amount:
        raise InvalidRequestError("Missing required fields: plan_id and amount")

    user = await authenticate(authorization, identity)

    service = OrderService(db, razorpay_client=razorpay_client)
    order = await service.create_order(
        user=user,
        plan_id=request.plan_id,
        amount=request.amount,
        referral_user_id=request.referral_user_id,
    )

    return {"success": True, **order}


@router.post("/verify-payment")
async def verify_payment(
    request: VerifyPaymentRequest,
    authorization: Optional[str] = Header(None),
    identity: IdentityService = Depends(get_identity_service),
    db: AsyncSession = Depends(get_db),
):
    """
    Verify a checkout payment and activate the subscription.

    Responds with the payment, subscription and invoice identifiers.
    """
    if not all([
        request.razorpay_payment_id,
        request.razorpay_order_id,
        request.razorpay_signature,
        request.plan_id,
    ]):
        raise InvalidRequestError("Missing required payment verification fields")

    user = await authenticate(authorization, identity)

    service = VerificationService(db)
    return await service.verify_payment(
        user=user,
        razorpay_payment_id=request.razorpay_payment_id,
        razorpay_order_id=request.razorpay_order_id,
        razorpay_signature=request.razorpay_signature,
        plan_id=request.plan_id,
    )
