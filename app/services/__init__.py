"""Services package."""

from app.services.identity_service import IdentityService, AuthenticatedUser
from app.services.plan_service import PlanService
from app.services.subscription_service import SubscriptionService
from app.services.order_service import OrderService
from app.services.verification_service import VerificationService
from app.services.webhook_service import WebhookService
from app.services.referral_service import ReferralService
from app.services.reconciliation_service import ReconciliationService
from app.services.catalog_service import CatalogService
from app.services.practice_service import PracticeService
from app.services.flashcard_service import FlashcardService

__all__ = [
    "IdentityService",
    "AuthenticatedUser",
    "PlanService",
    "SubscriptionService",
    "OrderService",
    "VerificationService",
    "WebhookService",
    "ReferralService",
    "ReconciliationService",
    "CatalogService",
    "PracticeService",
    "FlashcardService",
]
