"""
Payment gateway signature check.

signature = HMAC-SHA256(key_secret, order_id + "|" + payment_id), hex encoded.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Optional

from kmwf.config import settings

logger = logging.getLogger(__name__)


def expected_signature(order_id: str, payment_id: str, secret: Optional[str] = None) -> str:
    key = (secret if secret is not None else settings.RAZORPAY_KEY_SECRET).encode()
    return hmac.new(key, f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


def verify_payment_signature(
    order_id: str, payment_id: str, signature: str, secret: Optional[str] = None
) -> bool:
    if not (secret if secret is not None else settings.RAZORPAY_KEY_SECRET):
        logger.error("Payment secret is not configured, rejecting signature")
        return False
    ok = hmac.compare_digest(expected_signature(order_id, payment_id, secret), signature or "")
    if not ok:
        logger.warning("Payment signature mismatch for order %s", order_id)
    return ok
