"""
Payment signature verification

Razorpay signs a successful checkout with HMAC-SHA256 over
"<order_id>|<payment_id>" keyed by the account's key secret, hex encoded.
"""

import hashlib
import hmac
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def constant_time_compare(a: str, b: str) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks.
    Uses hmac.compare_digest which is designed for this purpose.
    """
    if not a or not b:
        return False
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def compute_payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    """Expected signature for a gateway order/payment pair"""
    payload = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_payment_signature(
    order_id: Optional[str],
    payment_id: Optional[str],
    signature: Optional[str],
    secret: Optional[str],
) -> bool:
    """True only if `signature` matches the one computed from the other inputs"""
    if not order_id or not payment_id or not signature or not secret:
        return False

    expected = compute_payment_signature(order_id, payment_id, secret)
    if constant_time_compare(expected, signature):
        return True

    logger.warning(f"🚫 Payment signature mismatch for order {order_id}")
    return False
