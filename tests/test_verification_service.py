"""
Tests for VerificationService and the verify-payment endpoint.
"""

import uuid
from datetime import timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from sqlalchemy import select, func

from app.config import settings
from app.models.payment import Payment, PaymentEvent
from app.models.plan import Plan
from app.models.subscription import UserSubscription, Enrollment, Invoice
from app.services.identity_service import AuthenticatedUser
from app.services.errors import (
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    ServiceError,
    SignatureMismatchError,
)
from app.services.order_service import OrderService
from app.services.signature import compute_signature
from app.services.subscription_service import SubscriptionService, utcnow
from app.services.verification_service import VerificationService


def sign(order_id: str, payment_id: str) -> str:
    return compute_signature(settings.razorpay_key_secret, f"{order_id}|{payment_id}")


async def count(db, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


@pytest_asyncio.fixture
async def order(db, user, monthly_plan, razorpay_client) -> dict:
    """A created order for the monthly plan."""
    return await OrderService(db, razorpay_client=razorpay_client).create_order(
        user, str(monthly_plan.id), 49900
    )


@pytest.mark.asyncio
async def test_verify_activates_monthly_subscription(db, user, monthly_plan, order):
    """Verified ₹499 monthly purchase: paid payment, 1-month subscription, enrollment, invoice."""
    order_id = order["orderId"]
    before = utcnow()

    result = await VerificationService(db).verify_payment(
        user, "pay_001", order_id, sign(order_id, "pay_001"), str(monthly_plan.id)
    )

    assert result["success"] is True
    assert result["payment_id"] == order["payment_id"]
    assert result["invoice_number"].startswith("INV-")

    payment = (await db.execute(select(Payment))).scalar_one()
    assert payment.status == "paid"
    assert payment.provider_payment_id == "pay_001"
    assert payment.raw_response["razorpay_order_id"] == order_id
    assert "verified_at" in payment.meta

    subscription = (await db.execute(select(UserSubscription))).scalar_one()
    assert str(subscription.id) == result["subscription_id"]
    assert subscription.status == "active"
    assert subscription.payment_id == payment.id
    expires_at = subscription.expires_at.replace(tzinfo=timezone.utc)
    assert before + timedelta(days=27) <= expires_at <= before + timedelta(days=32)

    enrollment = (await db.execute(select(Enrollment))).scalar_one()
    assert enrollment.exam_id == monthly_plan.exam_id
    assert enrollment.source == "subscription"
    assert enrollment.source_id == subscription.id

    invoice = (await db.execute(select(Invoice))).scalar_one()
    assert invoice.invoice_number == result["invoice_number"]
    assert invoice.amount_in_paise == 49900
    assert invoice.payment_id == payment.id

    events = (await db.execute(select(PaymentEvent.event_type))).scalars().all()
    assert sorted(events) == ["order_created", "payment_verified"]

    # Reader sees the entitlement
    active = await SubscriptionService(db).get_active_subscription(user.id, monthly_plan.id)
    assert active is not None


@pytest.mark.asyncio
async def test_verify_twice_is_rejected(db, user, monthly_plan, order):
    """Second verification of the same order writes nothing new."""
    order_id = order["orderId"]
    signature = sign(order_id, "pay_001")
    service = VerificationService(db)

    await service.verify_payment(user, "pay_001", order_id, signature, str(monthly_plan.id))

    with pytest.raises(ConflictError) as exc_info:
        await service.verify_payment(user, "pay_001", order_id, signature, str(monthly_plan.id))

    assert exc_info.value.message == "Payment already processed"
    assert await count(db, UserSubscription) == 1
    assert await count(db, Invoice) == 1
    assert await count(db, Enrollment) == 1


@pytest.mark.asyncio
async def test_verify_signature_mismatch_writes_nothing(db, user, monthly_plan, order):
    order_id = order["orderId"]
    bad_signature = compute_signature("wrong_secret", f"{order_id}|pay_001")

    with pytest.raises(SignatureMismatchError):
        await VerificationService(db).verify_payment(
            user, "pay_001", order_id, bad_signature, str(monthly_plan.id)
        )

    payment = (await db.execute(select(Payment))).scalar_one()
    assert payment.status == "created"
    assert await count(db, UserSubscription) == 0
    assert await count(db, Invoice) == 0
    assert await count(db, Payment) == 1
    assert await count(db, PaymentEvent) == 1


@pytest.mark.asyncio
async def test_verify_missing_fields(db, user, monthly_plan):
    with pytest.raises(InvalidRequestError):
        await VerificationService(db).verify_payment(user, "pay_001", "", "sig", str(monthly_plan.id))


@pytest.mark.asyncio
async def test_verify_unknown_order(db, user, monthly_plan):
    with pytest.raises(NotFoundError):
        await VerificationService(db).verify_payment(
            user, "pay_001", "order_unknown", sign("order_unknown", "pay_001"), str(monthly_plan.id)
        )


@pytest.mark.asyncio
async def test_verify_other_users_order(db, user, monthly_plan, order):
    """Payments are looked up per user."""
    stranger = AuthenticatedUser(id=uuid.uuid4(), email="other@example.com")
    order_id = order["orderId"]

    with pytest.raises(NotFoundError):
        await VerificationService(db).verify_payment(
            stranger, "pay_001", order_id, sign(order_id, "pay_001"), str(monthly_plan.id)
        )


@pytest.mark.asyncio
async def test_verify_plan_mismatch(db, user, monthly_plan, order):
    other_plan = Plan(
        slug="neet-yearly",
        name="NEET Yearly",
        price_in_paise=399900,
        billing_interval="yearly",
        active=True,
    )
    db.add(other_plan)
    await db.flush()

    order_id = order["orderId"]
    with pytest.raises(InvalidRequestError):
        await VerificationService(db).verify_payment(
            user, "pay_001", order_id, sign(order_id, "pay_001"), str(other_plan.id)
        )

    payment = (await db.execute(select(Payment))).scalar_one()
    assert payment.status == "created"
    assert await count(db, UserSubscription) == 0


@pytest.mark.asyncio
async def test_enrollment_failure_does_not_fail_payment(db, user, monthly_plan, order):
    order_id = order["orderId"]

    with patch.object(
        SubscriptionService,
        "upsert_enrollment",
        AsyncMock(side_effect=RuntimeError("enrollments unavailable")),
    ):
        result = await VerificationService(db).verify_payment(
            user, "pay_001", order_id, sign(order_id, "pay_001"), str(monthly_plan.id)
        )

    assert result["success"] is True
    assert result["invoice_number"] is not None
    assert await count(db, Enrollment) == 0
    assert await count(db, UserSubscription) == 1

    payment = (await db.execute(select(Payment))).scalar_one()
    assert payment.status == "paid"


@pytest.mark.asyncio
async def test_invoice_failure_does_not_fail_payment(db, user, monthly_plan, order):
    order_id = order["orderId"]

    with patch.object(
        SubscriptionService,
        "create_invoice",
        AsyncMock(side_effect=RuntimeError("invoice numbering down")),
    ):
        result = await VerificationService(db).verify_payment(
            user, "pay_001", order_id, sign(order_id, "pay_001"), str(monthly_plan.id)
        )

    assert result["success"] is True
    assert result["invoice_number"] is None
    assert await count(db, Invoice) == 0
    assert await count(db, UserSubscription) == 1


@pytest.mark.asyncio
async def test_unexpected_error_marks_payment_failed(db, user, monthly_plan, order):
    order_id = order["orderId"]
    await db.commit()

    with patch.object(
        SubscriptionService,
        "upsert_subscription",
        AsyncMock(side_effect=RuntimeError("connection reset")),
    ):
        with pytest.raises(ServiceError) as exc_info:
            await VerificationService(db).verify_payment(
                user, "pay_001", order_id, sign(order_id, "pay_001"), str(monthly_plan.id)
            )

    assert exc_info.value.status_code == 500
    assert isinstance(exc_info.value.__cause__, RuntimeError)

    payment = (await db.execute(select(Payment))).scalar_one()
    assert payment.status == "failed"

    events = (await db.execute(select(PaymentEvent.event_type))).scalars().all()
    assert "payment_verification_failed" in events
    assert await count(db, UserSubscription) == 0


@pytest.mark.asyncio
async def test_renewal_reuses_subscription_row(db, user, monthly_plan, razorpay_client):
    """A renewal after expiry updates the existing (user, plan) row in place."""
    now = utcnow()
    old = UserSubscription(
        user_id=user.id,
        plan_id=monthly_plan.id,
        status="expired",
        starts_at=now - timedelta(days=45),
        expires_at=now - timedelta(days=15),
        meta={"purchased_at": "earlier"},
    )
    db.add(old)
    await db.flush()

    order = await OrderService(db, razorpay_client=razorpay_client).create_order(
        user, str(monthly_plan.id), 49900
    )
    order_id = order["orderId"]

    result = await VerificationService(db).verify_payment(
        user, "pay_002", order_id, sign(order_id, "pay_002"), str(monthly_plan.id)
    )

    assert result["subscription_id"] == str(old.id)
    assert await count(db, UserSubscription) == 1

    subscription = (await db.execute(select(UserSubscription))).scalar_one()
    assert subscription.status == "active"
    assert subscription.meta["purchased_at"] == "earlier"
    assert "renewed_at" in subscription.meta


# Endpoint

@pytest.mark.asyncio
async def test_checkout_flow_over_http(client, auth_headers, monthly_plan):
    created = await client.post(
        "/api/create-order",
        json={"plan_id": str(monthly_plan.id), "amount": 49900},
        headers=auth_headers,
    )
    order_id = created.json()["orderId"]

    response = await client.post(
        "/api/verify-payment",
        json={
            "razorpay_payment_id": "pay_http",
            "razorpay_order_id": order_id,
            "razorpay_signature": sign(order_id, "pay_http"),
            "plan_id": str(monthly_plan.id),
        },
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["subscription_id"]
    assert data["expires_at"] is not None

    page = await client.get(f"/api/subscriptions/{monthly_plan.slug}", headers=auth_headers)
    assert page.json()["is_subscribed"] is True

    again = await client.post(
        "/api/create-order",
        json={"plan_id": str(monthly_plan.id), "amount": 49900},
        headers=auth_headers,
    )
    assert again.status_code == 400


@pytest.mark.asyncio
async def test_verify_endpoint_bad_signature(client, auth_headers, monthly_plan):
    response = await client.post(
        "/api/verify-payment",
        json={
            "razorpay_payment_id": "pay_x",
            "razorpay_order_id": "order_x",
            "razorpay_signature": "deadbeef",
            "plan_id": str(monthly_plan.id),
        },
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid payment signature"}


@pytest.mark.asyncio
async def test_verify_endpoint_missing_fields(client):
    response = await client.post("/api/verify-payment", json={"razorpay_payment_id": "pay_x"})

    assert response.status_code == 400
