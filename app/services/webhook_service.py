"""
Webhook Service - applies Razorpay webhook events to the `orders` table.
"""

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Optional, Dict, Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.order import Order, WebhookSubscription
from app.fsm.states import OrderPaymentStatus
from app.services.referral_service import ReferralService
from app.services.subscription_service import utcnow

logger = logging.getLogger(__name__)


class WebhookService:
    """Service for provider-pushed payment events."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_order(self, order_id: Optional[str]) -> Optional[Order]:
        if not order_id:
            return None
        result = await self.db.execute(
            select(Order).where(Order.order_id == order_id)
        )
        return result.scalar_one_or_none()

    async def handle_payment_captured(self, payload: Dict[str, Any]) -> str:
        """
        Process payment.captured.

        Marks the order paid, grants a fixed-window subscription and credits
        the referrer. Returns a short status for the response body.
        """
        payment = payload.get("payload", {}).get("payment", {}).get("entity", {})

        payment_id = payment.get("id")
        order_id = payment.get("order_id")
        amount = payment.get("amount", 0)  # paise
        email = payment.get("email")

        order = await self.get_order(order_id)
        if not order:
            logger.warning(f"Order not found for captured payment {payment_id} (order {order_id})")
            return "order_missing"

        if order.payment_status == OrderPaymentStatus.PAID.value:
            logger.info(f"Order {order_id} already paid, ignoring redelivery")
            return "duplicate"

        now = utcnow()

        order.payment_status = OrderPaymentStatus.PAID.value
        order.razorpay_payment_id = payment_id
        order.amount_paid = Decimal(amount) / 100

        self.db.add(WebhookSubscription(
            user_id=order.user_id,
            plan_id=order.plan_id,
            exam_id=order.exam_id,
            subject_id=order.subject_id,
            chapter_id=order.chapter_id,
            valid_from=now,
            valid_to=now + timedelta(days=settings.webhook_subscription_days),
        ))
        await self.db.flush()

        logger.info(f"Subscription activated for user {order.user_id} via webhook ({email})")

        if order.referral_user_id:
            await ReferralService(self.db).increment(order.referral_user_id)

        return "success"

    async def handle_payment_failed(self, payload: Dict[str, Any]) -> str:
        """Process payment.failed: mark the order failed."""
        payment = payload.get("payload", {}).get("payment", {}).get("entity", {})
        order_id = payment.get("order_id")

        order = await self.get_order(order_id)
        if not order:
            logger.warning(f"Order not found for failed payment (order {order_id})")
            return "order_missing"

        if order.payment_status == OrderPaymentStatus.PAID.value:
            logger.warning(f"Ignoring payment.failed for already paid order {order_id}")
            return "ignored"

        order.payment_status = OrderPaymentStatus.FAILED.value
        await self.db.flush()

        logger.info(f"Order {order_id} marked failed")
        return "failed_updated"
