"""Contact router - Public contact form"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException

from ...email_service import send_contact_confirmation, send_contact_notification
from ...rate_limiter import create_rate_limiter
from ...utils.sanitization import sanitize_multiline, sanitize_string
from .schemas import ContactRequest, ContactResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Contact"])

DEFAULT_SUBJECT = "General Inquiry"

# 5 submissions per IP per hour
contact_rate_limiter = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="contact")


@router.post("/contact", response_model=ContactResponse)
async def submit_contact_form(data: ContactRequest, _: None = Depends(contact_rate_limiter)):
    """Email the submission to the company inbox and a confirmation to the sender"""
    first_name = sanitize_string(data.firstName)
    subject = sanitize_string(data.subject.strip()) if data.subject and data.subject.strip() else DEFAULT_SUBJECT

    try:
        await asyncio.gather(
            send_contact_notification(
                full_name=f"{first_name} {sanitize_string(data.lastName)}",
                email=sanitize_string(data.email),
                phone=sanitize_string(data.phone) or "Not provided",
                subject=subject,
                message_html=sanitize_multiline(data.message),
            ),
            send_contact_confirmation(to=data.email, first_name=first_name, subject=subject),
        )
    except Exception as e:
        logger.error(f"❌ Contact form delivery failed for {data.email}: {e}")
        raise HTTPException(status_code=500, detail="Failed to send message. Please try again later.") from e

    logger.info(f"📨 Contact form submitted by {data.email}")
    return {
        "message": "Message sent successfully! Please check your email for confirmation.",
        "success": True,
    }
