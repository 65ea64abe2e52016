"""Razorpay service - Order creation against the Razorpay Orders API"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

import httpx

from ...config import RAZORPAY_API_URL, RAZORPAY_CURRENCY, RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET

logger = logging.getLogger(__name__)


class RazorpayError(Exception):
    """Raised when the gateway rejects or fails an API call"""

    pass


def to_minor_units(amount: Decimal) -> int:
    """Rupees to paise (or the equivalent minor unit of the configured currency)"""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class RazorpayService:
    """Service for Razorpay API operations"""

    def __init__(
        self,
        key_id: Optional[str] = None,
        key_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.key_id = key_id or RAZORPAY_KEY_ID
        self.key_secret = key_secret or RAZORPAY_KEY_SECRET
        self.base_url = (base_url or RAZORPAY_API_URL).rstrip("/")
        self.currency = RAZORPAY_CURRENCY
        self._transport = transport

    def is_available(self) -> bool:
        """Check if Razorpay credentials are configured"""
        return bool(self.key_id and self.key_secret)

    async def create_order(
        self, amount: int, receipt: str, notes: Optional[dict[str, str]] = None
    ) -> dict[str, Any]:
        """
        Create a gateway order.

        Args:
            amount: Amount in minor units (paise)
            receipt: Merchant receipt reference
            notes: Free-form key/value metadata stored on the order

        Returns:
            The order object returned by Razorpay (id, amount, currency, ...)
        """
        if not self.is_available():
            raise RazorpayError("Razorpay credentials not configured")

        payload = {
            "amount": amount,
            "currency": self.currency,
            "receipt": receipt,
            "notes": notes or {},
        }

        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as http_client:
                response = await http_client.post(
                    f"{self.base_url}/orders",
                    json=payload,
                    auth=(self.key_id, self.key_secret),
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Razorpay order request failed: {e}")
            raise RazorpayError(f"Razorpay request failed: {e}") from e

        if response.status_code not in (200, 201):
            logger.error(f"❌ Razorpay order creation failed: {response.status_code} {response.text}")
            raise RazorpayError(f"Razorpay returned HTTP {response.status_code}")

        order = response.json()
        logger.info(f"✅ Razorpay order created: {order.get('id')} ({amount} {self.currency})")
        return order

    async def fetch_order(self, order_id: str) -> dict[str, Any]:
        """Look up an existing order, including the notes it was created with"""
        if not self.is_available():
            raise RazorpayError("Razorpay credentials not configured")

        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as http_client:
                response = await http_client.get(
                    f"{self.base_url}/orders/{order_id}",
                    auth=(self.key_id, self.key_secret),
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Razorpay order lookup failed: {e}")
            raise RazorpayError(f"Razorpay request failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"❌ Razorpay order {order_id} lookup failed: {response.status_code} {response.text}")
            raise RazorpayError(f"Razorpay returned HTTP {response.status_code}")

        return response.json()
