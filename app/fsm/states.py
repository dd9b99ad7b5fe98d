"""
Lifecycle state definitions.
Payment, order, subscription and enrollment statuses plus plan billing intervals.
"""

from enum import Enum


class PaymentStatus(str, Enum):
    """
    Payment row status.
    A payment moves CREATED -> PAID or CREATED -> FAILED exactly once.
    """

    CREATED = "created"
    PAID = "paid"
    FAILED = "failed"


class OrderPaymentStatus(str, Enum):
    """Status of a row in the webhook-side `orders` table."""

    CREATED = "created"
    PAID = "paid"
    FAILED = "failed"


class PaymentEventType(str, Enum):
    """Append-only payment audit event types."""

    ORDER_CREATED = "order_created"
    PAYMENT_VERIFIED = "payment_verified"
    PAYMENT_VERIFICATION_FAILED = "payment_verification_failed"


class SubscriptionStatus(str, Enum):
    """Entitlement status."""

    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"


class EnrollmentSource(str, Enum):
    """What granted the exam access."""

    SUBSCRIPTION = "subscription"
    MANUAL = "manual"


class BillingInterval(str, Enum):
    """
    Plan billing cadence.
    ONCE with duration_days is a fixed window; ONCE without it is lifetime.
    """

    MONTHLY = "monthly"
    YEARLY = "yearly"
    ONCE = "once"


class AttemptFilter(str, Enum):
    """Practice attempt list filters."""

    ALL = "all"
    BOOKMARKED = "bookmarked"
    FLAGGED = "flagged"
    INCORRECT = "incorrect"


class FlashcardStatus(str, Enum):
    """
    Learning state of a formula card for a user.
    A first view creates the row as NEW; later views keep the status.
    """

    NEW = "new"
    LEARNING = "learning"
    MEMORIZED = "memorized"
    NEED_REVISION = "need_revision"


class ReportType(str, Enum):
    """What a student reports about a question."""

    ERROR = "error"
    WRONG_ANSWER = "wrong_answer"
    UNCLEAR = "unclear"


class ReportStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


# Allowed payment transitions; terminal states have none
PAYMENT_TRANSITIONS = {
    PaymentStatus.CREATED: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PAID: set(),
    PaymentStatus.FAILED: set(),
}


def can_transition(current: str, target: str) -> bool:
    """Check whether a payment may move from `current` to `target`."""
    try:
        return PaymentStatus(target) in PAYMENT_TRANSITIONS[PaymentStatus(current)]
    except ValueError:
        return False
