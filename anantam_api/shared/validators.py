"""Shared validation utilities"""

import re
from typing import Optional


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate a participant phone number.

    Accepts international formats ("+91 98765 43210", "(080) 1234-5678") as long
    as 10 to 15 digits remain once separators are removed.

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)

    if not 10 <= len(digits) <= 15:
        raise ValueError("Phone number must contain 10 to 15 digits")

    return phone


def validate_required_text(value: Optional[str], field_name: str) -> str:
    """Reject missing or whitespace-only text and return it trimmed"""
    if value is None or not value.strip():
        raise ValueError(f"{field_name} is required")
    return value.strip()
