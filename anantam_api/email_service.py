"""
Email Service using an SMTP relay or Resend (fallback)
Templates are MJML, compiled to HTML before sending
"""

import asyncio
import logging
import smtplib
import ssl
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import (
    CONTACT_INBOX,
    EMAIL_FROM_ADDRESS,
    RESEND_API_KEY,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_USE_TLS,
    SMTP_USERNAME,
)
from .email_templates import contact_confirmation_template, contact_notification_template

logger = logging.getLogger(__name__)

if RESEND_API_KEY:
    resend.api_key = RESEND_API_KEY


class EmailDeliveryError(Exception):
    """Raised when no transport could deliver a message"""

    pass


def send_via_smtp(
    to: list[str],
    subject: str,
    html_content: str,
    from_address: str,
    reply_to: Optional[str] = None,
) -> dict:
    """Send email via the configured SMTP relay"""
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = from_address
    msg["To"] = ", ".join(to)
    if reply_to:
        msg["Reply-To"] = reply_to
    msg.attach(MIMEText(html_content, "html"))

    context = ssl.create_default_context()
    try:
        if SMTP_PORT == 465:
            server = smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, context=context, timeout=30)
        else:
            server = smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=30)

        # Leaving the block sends QUIT and closes the socket, also on failure
        with server:
            if SMTP_PORT != 465 and SMTP_USE_TLS:
                server.starttls(context=context)
            if SMTP_USERNAME and SMTP_PASSWORD:
                server.login(SMTP_USERNAME, SMTP_PASSWORD)
            server.sendmail(from_address.split("<")[-1].rstrip(">"), to, msg.as_string())
    except Exception as e:
        logger.error(f"❌ SMTP send failed via {SMTP_HOST}: {e}")
        raise EmailDeliveryError(f"SMTP failed: {e}") from e

    logger.info(f"✅ SMTP email sent via {SMTP_HOST}")
    return {"id": f"smtp-{datetime.utcnow().timestamp()}", "success": True}


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise EmailDeliveryError(f"Failed to compile MJML template: {e}") from e

    # mjml_to_html returns an attribute dict with 'html' and 'errors'
    errors = result.get("errors") if isinstance(result, dict) else None
    if errors:
        logger.warning(f"MJML compilation warnings: {errors}")
    return result.get("html", "") if isinstance(result, dict) else str(result)


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
    reply_to: Optional[str] = None,
) -> dict:
    """
    Send an email using the SMTP relay (if configured) or Resend (fallback)

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address
        reply_to: Optional Reply-To address

    Returns:
        Send response dict
    """
    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to
    sender = from_address or EMAIL_FROM_ADDRESS

    if SMTP_HOST:
        try:
            logger.info(f"📧 Sending email via SMTP relay: {SMTP_HOST}")
            return await asyncio.to_thread(send_via_smtp, recipients, subject, html_content, sender, reply_to)
        except EmailDeliveryError as e:
            logger.warning(f"⚠️ SMTP relay failed, falling back to Resend: {e}")

    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing and no SMTP relay")
        raise EmailDeliveryError("Email service not configured")

    email_data = {
        "from": sender,
        "to": recipients,
        "subject": subject,
        "html": html_content,
    }
    if reply_to:
        email_data["reply_to"] = reply_to

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = await asyncio.to_thread(resend.Emails.send, email_data)
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise EmailDeliveryError(f"Failed to send email: {e}") from e

    logger.info(f"✅ Email sent successfully via Resend: {response}")
    return response


# ============================================
# Contact form
# ============================================


async def send_contact_notification(
    full_name: str, email: str, phone: str, subject: str, message_html: str
) -> dict:
    """Forward a contact form submission to the company inbox"""
    return await send_email(
        to=CONTACT_INBOX,
        subject=f"New Contact Form Submission: {subject}",
        mjml_content=contact_notification_template(full_name, email, phone, subject, message_html),
        reply_to=email,
    )


async def send_contact_confirmation(to: str, first_name: str, subject: str) -> dict:
    """Acknowledge a contact form submission to its sender"""
    submitted_on = datetime.utcnow().strftime("%d %B %Y, %H:%M UTC")
    return await send_email(
        to=to,
        subject="Thank you for contacting Anantam Aerial - We've received your message",
        mjml_content=contact_confirmation_template(first_name, subject, submitted_on),
    )
