"""
Order Service - registers Razorpay orders for plan purchases.
"""

import time
import logging
from typing import Optional, Dict, Any

import razorpay
from razorpay.errors import BadRequestError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.plan import Plan
from app.models.payment import Payment, PaymentEvent
from app.models.order import Order
from app.fsm.states import PaymentStatus, PaymentEventType, OrderPaymentStatus
from app.services.errors import (
    BillingError,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    ServiceError,
)
from app.services.identity_service import AuthenticatedUser
from app.services.plan_service import PlanService, parse_uuid
from app.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)


def get_razorpay_client() -> razorpay.Client:
    """Razorpay API client from configured credentials."""
    return razorpay.Client(
        auth=(settings.razorpay_key_id.strip(), settings.razorpay_key_secret.strip())
    )


def build_receipt(user: AuthenticatedUser) -> str:
    """receipt_<epoch ms>_<first 8 chars of user id>"""
    return f"receipt_{int(time.time() * 1000)}_{user.short_id}"


class OrderService:
    """Service for creating payment orders."""

    def __init__(self, db: AsyncSession, razorpay_client: Optional[razorpay.Client] = None):
        self.db = db
        self.razorpay = razorpay_client or get_razorpay_client()

    async def create_order(
        self,
        user: AuthenticatedUser,
        plan_id: str,
        amount: int,
        referral_user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create an order for a plan purchase.

        1. Require an active plan
        2. Refuse if the user already holds an active, unexpired subscription to it
        3. Create the Razorpay order
        4. Record a `created` payment, an `orders` row and an `order_created` event

        Returns {orderId, amount, currency, payment_id}.
        """
        if not plan_id or not amount:
            raise InvalidRequestError("Missing required fields: plan_id and amount")

        plan = await PlanService(self.db).get_plan(plan_id, active_only=True)
        if not plan:
            raise NotFoundError("Plan not found or inactive")

        if amount != plan.price_in_paise:
            logger.warning(
                f"Order amount {amount} does not match plan {plan.slug} price {plan.price_in_paise}"
            )
            raise InvalidRequestError("Amount does not match plan price")

        existing = await SubscriptionService(self.db).get_active_subscription(user.id, plan.id)
        if existing:
            raise ConflictError("You already have an active subscription for this plan")

        try:
            return await self._register_order(user, plan, amount, referral_user_id)
        except BillingError:
            raise
        except BadRequestError as e:
            logger.error(f"Razorpay rejected order for plan {plan.slug}: {e}")
            raise ServiceError("Failed to create payment order") from e
        except Exception as e:
            logger.error(f"Error creating order: {e}", exc_info=True)
            raise ServiceError("Failed to create payment order") from e

    async def _register_order(
        self,
        user: AuthenticatedUser,
        plan: Plan,
        amount: int,
        referral_user_id: Optional[str],
    ) -> Dict[str, Any]:
        currency = settings.payment_currency

        razorpay_order = self.razorpay.order.create({
            "amount": amount,
            "currency": currency,
            "receipt": build_receipt(user),
            "notes": {
                "plan_id": str(plan.id),
                "user_id": str(user.id),
                "plan_name": plan.name,
            },
        })
        provider_order_id = razorpay_order["id"]
        logger.info(f"Razorpay order created: {provider_order_id}")

        # A failure below leaves an unmatched order on the Razorpay side
        payment = Payment(
            user_id=user.id,
            plan_id=plan.id,
            exam_id=plan.exam_id,
            amount_in_paise=amount,
            net_amount_in_paise=amount,
            currency=currency,
            status=PaymentStatus.CREATED.value,
            provider="razorpay",
            provider_order_id=provider_order_id,
            idempotency_key=f"order_{provider_order_id}",
            meta={
                "plan_name": plan.name,
                "billing_interval": plan.billing_interval,
                "user_email": user.email,
            },
        )
        self.db.add(payment)

        self.db.add(Order(
            order_id=provider_order_id,
            user_id=user.id,
            plan_id=plan.id,
            exam_id=plan.exam_id,
            referral_user_id=parse_uuid(referral_user_id),
            payment_status=OrderPaymentStatus.CREATED.value,
        ))
        await self.db.flush()

        self.db.add(PaymentEvent(
            payment_id=payment.id,
            event_type=PaymentEventType.ORDER_CREATED.value,
            payload={
                "razorpay_order_id": provider_order_id,
                "amount": amount,
                "currency": currency,
            },
        ))
        await self.db.flush()

        return {
            "orderId": provider_order_id,
            "amount": razorpay_order.get("amount", amount),
            "currency": razorpay_order.get("currency", currency),
            "payment_id": str(payment.id),
        }
