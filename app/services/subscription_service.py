"""
Subscription Service - entitlement reads and subscription materialization.

Materialization (used after a verified payment):
1. Compute expiry from the plan's billing interval
2. Upsert the (user, plan) subscription
3. Upsert the exam enrollment when the plan is tied to an exam
4. Issue an invoice
"""

import uuid
import calendar
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, List

from sqlalchemy import select, update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.plan import Plan
from app.models.payment import Payment
from app.models.subscription import UserSubscription, Enrollment, Invoice
from app.fsm.states import (
    BillingInterval,
    SubscriptionStatus,
    EnrollmentStatus,
    EnrollmentSource,
)
from app.services.identity_service import short_user_id

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def add_months(moment: datetime, months: int) -> datetime:
    """
    Add calendar months, clamping the day to the target month's length.
    Jan 31 + 1 month -> Feb 28/29.
    """
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def compute_expires_at(
    billing_interval: str,
    duration_days: Optional[int],
    start: datetime,
) -> Optional[datetime]:
    """
    Expiry for a purchase made at `start`.

    monthly -> +1 calendar month
    yearly  -> +1 calendar year
    once with duration_days -> +N days
    anything else -> None (lifetime)
    """
    if billing_interval == BillingInterval.MONTHLY.value:
        return add_months(start, 1)
    if billing_interval == BillingInterval.YEARLY.value:
        return add_months(start, 12)
    if billing_interval == BillingInterval.ONCE.value and duration_days:
        return start + timedelta(days=duration_days)
    return None


def generate_invoice_number(
    user_id: uuid.UUID,
    moment: datetime,
    sequence: Optional[int] = None,
) -> str:
    """
    INV-<epoch ms>-<first 8 chars of the user id>.

    Batch callers pass a sequence, appended as -<n>, so one user's
    invoices issued in the same millisecond stay unique.
    """
    timestamp_ms = int(moment.timestamp() * 1000)
    number = f"INV-{timestamp_ms}-{short_user_id(user_id).upper()}"
    if sequence is not None:
        number = f"{number}-{sequence}"
    return number


class SubscriptionService:
    """Service for reading and writing user entitlements."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # Reader

    async def get_active_subscription(
        self,
        user_id: uuid.UUID,
        plan_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> Optional[UserSubscription]:
        """
        Active, unexpired subscription for (user, plan), or None.
        A null expiry is a lifetime entitlement and always counts.
        """
        now = now or utcnow()
        result = await self.db.execute(
            select(UserSubscription).where(
                UserSubscription.user_id == user_id,
                UserSubscription.plan_id == plan_id,
                UserSubscription.status == SubscriptionStatus.ACTIVE.value,
                or_(
                    UserSubscription.expires_at.is_(None),
                    UserSubscription.expires_at >= now,
                ),
            )
        )
        return result.scalars().first()

    async def list_active_subscriptions(
        self,
        user_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> List[UserSubscription]:
        now = now or utcnow()
        result = await self.db.execute(
            select(UserSubscription)
            .where(
                UserSubscription.user_id == user_id,
                UserSubscription.status == SubscriptionStatus.ACTIVE.value,
                or_(
                    UserSubscription.expires_at.is_(None),
                    UserSubscription.expires_at >= now,
                ),
            )
            .order_by(UserSubscription.starts_at.desc())
        )
        return list(result.scalars().all())

    # Writers

    async def upsert_subscription(
        self,
        user_id: uuid.UUID,
        plan: Plan,
        payment: Payment,
        starts_at: datetime,
        expires_at: Optional[datetime],
    ) -> UserSubscription:
        """
        Activate the (user, plan) subscription with a new window.

        Updates the existing row in place, else inserts. An insert that loses
        the unique (user_id, plan_id) race falls back to updating the winner.
        """
        subscription = await self._lock_subscription(user_id, plan.id)

        if subscription is None:
            subscription = UserSubscription(
                user_id=user_id,
                plan_id=plan.id,
                payment_id=payment.id,
                status=SubscriptionStatus.ACTIVE.value,
                starts_at=starts_at,
                expires_at=expires_at,
                auto_renew=False,
                meta={
                    "purchased_at": starts_at.isoformat(),
                    "razorpay_payment_id": payment.provider_payment_id,
                    "razorpay_order_id": payment.provider_order_id,
                    "exam_id": str(plan.exam_id) if plan.exam_id else None,
                },
            )
            try:
                async with self.db.begin_nested():
                    self.db.add(subscription)
                logger.info(f"Created subscription for user {user_id} plan {plan.slug}")
                return subscription
            except IntegrityError:
                logger.warning(f"Concurrent subscription insert for user {user_id} plan {plan.slug}")
                subscription = await self._lock_subscription(user_id, plan.id)
                if subscription is None:
                    raise

        subscription.status = SubscriptionStatus.ACTIVE.value
        subscription.starts_at = starts_at
        subscription.expires_at = expires_at
        subscription.payment_id = payment.id
        subscription.meta = {
            **(subscription.meta or {}),
            "renewed_at": starts_at.isoformat(),
            "payment_id": str(payment.id),
        }
        await self.db.flush()

        logger.info(f"Renewed subscription {subscription.id} until {expires_at}")
        return subscription

    async def _lock_subscription(self, user_id: uuid.UUID, plan_id: uuid.UUID) -> Optional[UserSubscription]:
        result = await self.db.execute(
            select(UserSubscription)
            .where(
                UserSubscription.user_id == user_id,
                UserSubscription.plan_id == plan_id,
            )
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def upsert_enrollment(
        self,
        user_id: uuid.UUID,
        exam_id: uuid.UUID,
        subscription: UserSubscription,
    ) -> Enrollment:
        """Grant exam access keyed by (user, exam, 'subscription', subscription.id)."""
        result = await self.db.execute(
            select(Enrollment).where(
                Enrollment.user_id == user_id,
                Enrollment.exam_id == exam_id,
                Enrollment.source == EnrollmentSource.SUBSCRIPTION.value,
                Enrollment.source_id == subscription.id,
            )
        )
        enrollment = result.scalar_one_or_none()

        if enrollment:
            enrollment.status = EnrollmentStatus.ACTIVE.value
            enrollment.starts_at = subscription.starts_at
            enrollment.expires_at = subscription.expires_at
        else:
            enrollment = Enrollment(
                user_id=user_id,
                exam_id=exam_id,
                source=EnrollmentSource.SUBSCRIPTION.value,
                source_id=subscription.id,
                status=EnrollmentStatus.ACTIVE.value,
                starts_at=subscription.starts_at,
                expires_at=subscription.expires_at,
            )
            self.db.add(enrollment)

        await self.db.flush()
        return enrollment

    async def create_invoice(
        self,
        user_id: uuid.UUID,
        payment: Payment,
        plan: Plan,
        subscription: UserSubscription,
        issued_at: datetime,
        invoice_number: Optional[str] = None,
    ) -> Invoice:
        invoice = Invoice(
            invoice_number=invoice_number or generate_invoice_number(user_id, issued_at),
            user_id=user_id,
            payment_id=payment.id,
            amount_in_paise=payment.amount_in_paise,
            currency=payment.currency,
            issued_at=issued_at,
            meta={
                "plan_id": str(plan.id),
                "plan_name": plan.name,
                "billing_interval": plan.billing_interval,
                "subscription_id": str(subscription.id),
                "razorpay_order_id": payment.provider_order_id,
                "razorpay_payment_id": payment.provider_payment_id,
            },
        )
        self.db.add(invoice)
        await self.db.flush()

        logger.info(f"Issued invoice {invoice.invoice_number} for payment {payment.id}")
        return invoice

    async def get_invoice_for_payment(self, payment_id: uuid.UUID) -> Optional[Invoice]:
        result = await self.db.execute(
            select(Invoice).where(Invoice.payment_id == payment_id)
        )
        return result.scalars().first()

    async def expire_lapsed(self, now: Optional[datetime] = None) -> int:
        """Mark active subscriptions and enrollments past their expiry as expired."""
        now = now or utcnow()

        result = await self.db.execute(
            update(UserSubscription)
            .where(
                UserSubscription.status == SubscriptionStatus.ACTIVE.value,
                UserSubscription.expires_at.is_not(None),
                UserSubscription.expires_at < now,
            )
            .values(status=SubscriptionStatus.EXPIRED.value)
            .execution_options(synchronize_session="fetch")
        )
        expired = result.rowcount or 0

        await self.db.execute(
            update(Enrollment)
            .where(
                Enrollment.status == EnrollmentStatus.ACTIVE.value,
                Enrollment.expires_at.is_not(None),
                Enrollment.expires_at < now,
            )
            .values(status=EnrollmentStatus.EXPIRED.value)
            .execution_options(synchronize_session="fetch")
        )

        logger.info(f"Expired {expired} lapsed subscriptions")
        return expired
