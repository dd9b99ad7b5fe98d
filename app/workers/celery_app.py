"""
Celery application configuration.
"""

from celery import Celery
from celery.schedules import crontab

from app.config import settings

# Create Celery app
celery_app = Celery(
    "biologykingdom",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "app.workers.billing",
    ],
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Asia/Kolkata",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    broker_connection_retry_on_startup=True,
    task_routes={"app.workers.billing.*": {"queue": "billing"}},
    task_default_queue="default",
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    # Repair enrollments/invoices skipped during payment verification
    "hourly-billing-reconcile": {
        "task": "app.workers.billing.reconcile_paid_payments",
        "schedule": crontab(minute=15, hour="*"),
    },
    # Flip lapsed subscriptions to expired shortly after midnight IST
    "daily-subscription-expiry": {
        "task": "app.workers.billing.expire_subscriptions",
        "schedule": crontab(hour=0, minute=5),
    },
}
