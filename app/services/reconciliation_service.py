"""
Reconciliation Service - repairs bookkeeping skipped during verification.

Enrollment and invoice writes are allowed to fail when a payment is
verified. This service finds paid payments missing either record and
creates it.
"""

import logging
from typing import Dict

from sqlalchemy import select, exists, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.plan import Plan
from app.models.payment import Payment
from app.models.subscription import UserSubscription, Enrollment, Invoice
from app.fsm.states import PaymentStatus, SubscriptionStatus, EnrollmentSource
from app.services.subscription_service import (
    SubscriptionService,
    generate_invoice_number,
    utcnow,
)

logger = logging.getLogger(__name__)


class ReconciliationService:
    """Service for repairing missing enrollments and invoices."""

    def __init__(self, db: AsyncSession, batch_size: int = 200):
        self.db = db
        self.batch_size = batch_size
        self.subscriptions = SubscriptionService(db)

    async def reconcile(self) -> Dict[str, int]:
        invoices = await self.repair_missing_invoices()
        enrollments = await self.repair_missing_enrollments()
        return {"invoices": invoices, "enrollments": enrollments}

    async def repair_missing_invoices(self) -> int:
        """Issue invoices for paid payments that have none."""
        result = await self.db.execute(
            select(Payment, Plan, UserSubscription)
            .join(Plan, Plan.id == Payment.plan_id)
            .join(
                UserSubscription,
                and_(
                    UserSubscription.user_id == Payment.user_id,
                    UserSubscription.plan_id == Payment.plan_id,
                ),
            )
            .where(
                Payment.status == PaymentStatus.PAID.value,
                ~exists().where(Invoice.payment_id == Payment.id),
            )
            .limit(self.batch_size)
        )
        rows = result.all()

        # One timestamp per batch; the sequence keeps numbers unique within it
        issued_at = utcnow()
        repaired = 0
        for sequence, (payment, plan, subscription) in enumerate(rows, start=1):
            try:
                async with self.db.begin_nested():
                    await self.subscriptions.create_invoice(
                        payment.user_id,
                        payment,
                        plan,
                        subscription,
                        issued_at,
                        invoice_number=generate_invoice_number(
                            payment.user_id, issued_at, sequence
                        ),
                    )
                repaired += 1
            except Exception as e:
                logger.error(f"Could not issue invoice for payment {payment.id}: {e}")

        if repaired:
            logger.info(f"Issued {repaired} missing invoices")
        return repaired

    async def repair_missing_enrollments(self) -> int:
        """Create enrollments for active exam-linked subscriptions that lack one."""
        result = await self.db.execute(
            select(UserSubscription, Plan)
            .join(Plan, Plan.id == UserSubscription.plan_id)
            .where(
                UserSubscription.status == SubscriptionStatus.ACTIVE.value,
                Plan.exam_id.is_not(None),
                ~exists().where(
                    Enrollment.source == EnrollmentSource.SUBSCRIPTION.value,
                    Enrollment.source_id == UserSubscription.id,
                ),
            )
            .limit(self.batch_size)
        )
        rows = result.all()

        repaired = 0
        for subscription, plan in rows:
            try:
                async with self.db.begin_nested():
                    await self.subscriptions.upsert_enrollment(
                        subscription.user_id, plan.exam_id, subscription
                    )
                repaired += 1
            except Exception as e:
                logger.error(f"Could not create enrollment for subscription {subscription.id}: {e}")

        if repaired:
            logger.info(f"Created {repaired} missing enrollments")
        return repaired
