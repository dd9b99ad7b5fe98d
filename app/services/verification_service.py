"""
Verification Service - confirms client-reported Razorpay payments and
materializes the resulting entitlement.
"""

import uuid
import logging
from typing import Optional, Dict, Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.payment import Payment, PaymentEvent
from app.fsm.states import PaymentStatus, PaymentEventType, can_transition
from app.services.errors import (
    BillingError,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    ServiceError,
    SignatureMismatchError,
)
from app.services.identity_service import AuthenticatedUser
from app.services.plan_service import PlanService
from app.services.signature import verify_payment_signature
from app.services.subscription_service import (
    SubscriptionService,
    compute_expires_at,
    utcnow,
)

logger = logging.getLogger(__name__)


class VerificationService:
    """Service for verifying checkout payments."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.subscriptions = SubscriptionService(self.db)

    async def verify_payment(
        self,
        user: AuthenticatedUser,
        razorpay_payment_id: str,
        razorpay_order_id: str,
        razorpay_signature: str,
        plan_id: str,
    ) -> Dict[str, Any]:
        """
        Verify a payment and activate the subscription.

        The signature is checked before any database access. On unexpected
        errors the payment is marked failed on a best-effort basis.
        """
        if not all([razorpay_payment_id, razorpay_order_id, razorpay_signature, plan_id]):
            raise InvalidRequestError(
                "Missing required fields: razorpay_payment_id, razorpay_order_id, "
                "razorpay_signature and plan_id"
            )

        if not verify_payment_signature(razorpay_order_id, razorpay_payment_id, razorpay_signature):
            logger.warning(
                f"Invalid payment signature for order {razorpay_order_id} "
                f"(user {user.id}) - possible fraud"
            )
            raise SignatureMismatchError("Invalid payment signature")

        try:
            return await self._apply_payment(
                user,
                razorpay_payment_id,
                razorpay_order_id,
                razorpay_signature,
                plan_id,
            )
        except BillingError:
            raise
        except Exception as e:
            logger.error(f"Payment verification failed for order {razorpay_order_id}: {e}", exc_info=True)
            await self._mark_failed(user.id, razorpay_order_id, e)
            raise ServiceError("Payment verification failed") from e

    async def _apply_payment(
        self,
        user: AuthenticatedUser,
        razorpay_payment_id: str,
        razorpay_order_id: str,
        razorpay_signature: str,
        plan_id: str,
    ) -> Dict[str, Any]:
        payment = await self._get_payment(user.id, razorpay_order_id)
        if not payment:
            raise NotFoundError("Payment not found")

        if payment.status == PaymentStatus.PAID.value:
            logger.info(f"Payment {payment.id} already processed")
            raise ConflictError("Payment already processed")

        if not can_transition(payment.status, PaymentStatus.PAID.value):
            raise ConflictError(f"Payment is {payment.status} and cannot be verified")

        plan = await PlanService(self.db).get_plan(plan_id)
        if not plan:
            raise NotFoundError("Plan not found")

        if plan.id != payment.plan_id:
            logger.warning(f"Plan {plan.id} does not match ordered plan {payment.plan_id}")
            raise InvalidRequestError("Plan does not match the order")

        now = utcnow()

        payment.status = PaymentStatus.PAID.value
        payment.provider_payment_id = razorpay_payment_id
        payment.provider_signature = razorpay_signature
        payment.raw_response = {
            "razorpay_payment_id": razorpay_payment_id,
            "razorpay_order_id": razorpay_order_id,
            "razorpay_signature": razorpay_signature,
            "plan_id": str(plan.id),
        }
        payment.meta = {**(payment.meta or {}), "verified_at": now.isoformat()}
        await self.db.flush()

        expires_at = compute_expires_at(plan.billing_interval, plan.duration_days, now)

        subscription = await self.subscriptions.upsert_subscription(
            user_id=user.id,
            plan=plan,
            payment=payment,
            starts_at=now,
            expires_at=expires_at,
        )

        # Enrollment and invoice don't fail the payment
        if plan.exam_id:
            try:
                async with self.db.begin_nested():
                    await self.subscriptions.upsert_enrollment(user.id, plan.exam_id, subscription)
            except Exception as e:
                logger.error(f"Enrollment upsert failed for subscription {subscription.id}: {e}")

        invoice_number: Optional[str] = None
        try:
            async with self.db.begin_nested():
                invoice = await self.subscriptions.create_invoice(
                    user.id, payment, plan, subscription, now
                )
                invoice_number = invoice.invoice_number
        except Exception as e:
            logger.error(f"Invoice creation failed for payment {payment.id}: {e}")

        self.db.add(PaymentEvent(
            payment_id=payment.id,
            event_type=PaymentEventType.PAYMENT_VERIFIED.value,
            payload={
                "razorpay_payment_id": razorpay_payment_id,
                "razorpay_order_id": razorpay_order_id,
                "subscription_id": str(subscription.id),
                "invoice_number": invoice_number,
            },
        ))
        await self.db.flush()

        logger.info(f"Payment {payment.id} verified, subscription {subscription.id} active")

        return {
            "success": True,
            "payment_id": str(payment.id),
            "subscription_id": str(subscription.id),
            "invoice_number": invoice_number,
            "expires_at": expires_at.isoformat() if expires_at else None,
            "message": "Payment verified and subscription activated",
        }

    async def _get_payment(self, user_id: uuid.UUID, razorpay_order_id: str) -> Optional[Payment]:
        """Payment for this order owned by this user."""
        result = await self.db.execute(
            select(Payment).where(
                Payment.provider_order_id == razorpay_order_id,
                Payment.user_id == user_id,
            )
        )
        return result.scalars().first()

    async def _mark_failed(self, user_id: uuid.UUID, razorpay_order_id: str, error: Exception) -> None:
        """Best-effort: mark the payment failed and record why. Never raises."""
        try:
            await self.db.rollback()

            payment = await self._get_payment(user_id, razorpay_order_id)
            if not payment or not can_transition(payment.status, PaymentStatus.FAILED.value):
                return

            payment.status = PaymentStatus.FAILED.value
            self.db.add(PaymentEvent(
                payment_id=payment.id,
                event_type=PaymentEventType.PAYMENT_VERIFICATION_FAILED.value,
                payload={
                    "razorpay_order_id": razorpay_order_id,
                    "error": str(error),
                },
            ))
            await self.db.commit()
            logger.info(f"Payment {payment.id} marked failed")
        except Exception as e:
            logger.error(f"Could not mark payment for order {razorpay_order_id} failed: {e}")
            try:
                await self.db.rollback()
            except Exception:
                logger.exception("Rollback after failed compensation also failed")
