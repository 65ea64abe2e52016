"""Cancellation refund schedule"""

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

FULL_REFUND_DAYS = 14
HALF_REFUND_DAYS = 7

_NON_NUMERIC = re.compile(r"[^\d.]")
_LEADING_NUMBER = re.compile(r"\d+(?:\.\d*)?")
_CENTS = Decimal("0.01")


def parse_amount(amount: Optional[str]) -> Decimal:
    """
    Extract the numeric value of a display amount such as "₹1,000" or "Rs. 1000.50".

    Everything except digits and dots is dropped, along with dots left in
    front of the first digit by a currency prefix. The leading number is
    used ("1.2.3" is 1.2). No number at all yields 0.
    """
    if not amount:
        return Decimal("0")
    cleaned = _NON_NUMERIC.sub("", str(amount)).lstrip(".")
    match = _LEADING_NUMBER.match(cleaned)
    return Decimal(match.group()) if match else Decimal("0")


def days_until(session_date: date, today: Optional[date] = None) -> int:
    """Whole calendar days from today to the session (negative once it has passed)"""
    return (session_date - (today or date.today())).days


def refund_ratio(days_remaining: int) -> Decimal:
    if days_remaining >= FULL_REFUND_DAYS:
        return Decimal("1")
    if days_remaining >= HALF_REFUND_DAYS:
        return Decimal("0.5")
    return Decimal("0")


def calculate_refund(amount: str, session_date: date, today: Optional[date] = None) -> Decimal:
    """
    Refund owed when a registration is cancelled.

    14 or more days before the session: full amount. 7 to 13 days: half.
    Fewer than 7 days: nothing.
    """
    refund = parse_amount(amount) * refund_ratio(days_until(session_date, today))
    return refund.quantize(_CENTS, rounding=ROUND_HALF_UP)
