"""Lifecycle state definitions for payments, orders and entitlements."""

from app.fsm.states import (
    PaymentStatus,
    PaymentEventType,
    SubscriptionStatus,
    BillingInterval,
    can_transition,
)

__all__ = [
    "PaymentStatus",
    "PaymentEventType",
    "SubscriptionStatus",
    "BillingInterval",
    "can_transition",
]
