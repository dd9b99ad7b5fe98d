"""
Razorpay Webhook Handler.
Verifies signatures over the raw body and processes payment events.
"""

import json
import logging

from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.services.signature import verify_webhook_signature
from app.services.webhook_service import WebhookService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/razorpay")
async def razorpay_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    Handle Razorpay webhook events.

    Key events:
    - payment.captured: mark order paid, activate subscription, credit referrer
    - payment.failed: mark order failed

    Everything except a bad signature is acknowledged with 200 so Razorpay
    does not retry.
    """
    # Raw bytes; parsing happens only after the signature check
    body = await request.body()
    signature = request.headers.get("X-Razorpay-Signature", "")

    if not verify_webhook_signature(body, signature):
        logger.error("Webhook signature mismatch (possible fraud)")
        return JSONResponse(status_code=400, content={"status": "invalid signature"})

    try:
        payload = json.loads(body)
    except ValueError:
        logger.error("Webhook body is not valid JSON")
        return {"status": "ignored"}

    if not isinstance(payload, dict):
        logger.error("Webhook body is not a JSON object")
        return {"status": "ignored"}

    event_type = payload.get("event")
    logger.info(f"Razorpay webhook received: {event_type}")

    service = WebhookService(db)

    try:
        if event_type == "payment.captured":
            result = await service.handle_payment_captured(payload)
        elif event_type == "payment.failed":
            result = await service.handle_payment_failed(payload)
        else:
            logger.info(f"Unhandled Razorpay event: {event_type}")
            result = "ignored"
    except Exception as e:
        logger.error(f"Error processing Razorpay webhook: {e}", exc_info=True)
        await db.rollback()
        # Return 200 to prevent excessive retries
        return {"status": "error"}

    return {"status": result}
