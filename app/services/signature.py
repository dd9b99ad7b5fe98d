"""
Razorpay signature verification (HMAC SHA256).
"""

import hmac
import hashlib
import logging
from typing import Optional, Union

from app.config import settings

logger = logging.getLogger(__name__)


def compute_signature(secret: str, message: Union[str, bytes]) -> str:
    """Hex HMAC-SHA256 of `message` keyed with `secret`."""
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_hmac_signature(
    secret: Optional[str],
    message: Union[str, bytes],
    signature: Optional[str],
) -> bool:
    """
    Recompute the signature of `message` and compare in constant time.
    A missing secret or signature never verifies.
    """
    if not secret:
        logger.error("Signature secret not configured")
        return False
    if not signature:
        return False

    expected = compute_signature(secret, message)
    return hmac.compare_digest(expected, signature)


def verify_payment_signature(order_id: str, payment_id: str, signature: str) -> bool:
    """Checkout handler signature: HMAC of `order_id|payment_id` with the key secret."""
    return verify_hmac_signature(
        settings.razorpay_key_secret,
        f"{order_id}|{payment_id}",
        signature,
    )


def verify_webhook_signature(raw_body: bytes, signature: Optional[str]) -> bool:
    """
    Webhook signature over the exact raw request body.
    The body must not be parsed or re-serialized before this check.
    """
    return verify_hmac_signature(settings.razorpay_webhook_secret, raw_body, signature)
