"""
Billing Workers.

- reconcile_paid_payments: hourly repair of missing enrollments/invoices
- expire_subscriptions: daily expiry sweep
"""

import asyncio
import logging

from app.workers.celery_app import celery_app
from app.database import get_db_context

logger = logging.getLogger(__name__)


async def run_reconciliation() -> dict:
    from app.services.reconciliation_service import ReconciliationService

    async with get_db_context() as db:
        return await ReconciliationService(db).reconcile()


async def run_expiry_sweep() -> int:
    from app.services.subscription_service import SubscriptionService

    async with get_db_context() as db:
        return await SubscriptionService(db).expire_lapsed()


@celery_app.task(bind=True, max_retries=3)
def reconcile_paid_payments(self):
    """Create enrollments and invoices that verification failed to write."""
    try:
        repaired = asyncio.run(run_reconciliation())
        logger.info(f"Billing reconciliation complete: {repaired}")
        return {"success": True, **repaired}
    except Exception as e:
        logger.error(f"Billing reconciliation failed: {e}")
        raise self.retry(exc=e, countdown=60)


@celery_app.task(bind=True, max_retries=3)
def expire_subscriptions(self):
    """Mark lapsed subscriptions and enrollments as expired."""
    try:
        count = asyncio.run(run_expiry_sweep())
        logger.info(f"Expired {count} subscriptions")
        return {"success": True, "count": count}
    except Exception as e:
        logger.error(f"Subscription expiry sweep failed: {e}")
        raise self.retry(exc=e, countdown=300)
