"""Models package for database models."""

from app.models.catalog import Exam, Subject, Chapter, Question
from app.models.plan import Plan
from app.models.payment import Payment, PaymentEvent
from app.models.subscription import UserSubscription, Enrollment, Invoice
from app.models.order import Order, WebhookSubscription, ReferralStat
from app.models.practice import QuestionAttempt, UserStreak, UserTarget, QuestionReport
from app.models.cards import Topic, FormulaCard, FlashcardProgress

__all__ = [
    "Exam",
    "Subject",
    "Chapter",
    "Question",
    "Plan",
    "Payment",
    "PaymentEvent",
    "UserSubscription",
    "Enrollment",
    "Invoice",
    "Order",
    "WebhookSubscription",
    "ReferralStat",
    "QuestionAttempt",
    "UserStreak",
    "UserTarget",
    "QuestionReport",
    "Topic",
    "FormulaCard",
    "FlashcardProgress",
]
