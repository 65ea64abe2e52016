"""
MJML Email Templates
All email templates using MJML for responsive, cross-client compatibility

Values interpolated here must already be HTML-escaped by the caller.
"""

from typing import Optional

from .config import FRONTEND_URL

# Brand colors - Slate/Blue scheme
THEME = {
    "primary": "#3b82f6",
    "primary_dark": "#1d4ed8",
    "primary_light": "#e3f2fd",
    "header_bg": "#1a1a1a",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
}

BRAND_NAME = "Anantam Aerial"
BRAND_TAGLINE = "Drone & Robotics Solutions"
CONTACT_DETAILS = {
    "address": "123 Drone Avenue, Tech Park, Bangalore - 560001",
    "email": "info@anantamaerial.com",
    "phone": "+91 98765 43210",
    "hours": "Mon-Fri 9AM-6PM, Sat 10AM-4PM",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
    footer_note: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section background-color="{THEME['card_bg']}" padding="0 40px 40px 40px">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="0"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    footer_extra = ""
    if footer_note:
        footer_extra = f"""
            <mj-text align="center" font-size="12px" color="#94a3b8" padding="12px 0 0 0">
              {footer_note}
            </mj-text>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['header_bg']}" padding="28px 20px">
          <mj-column>
            <mj-text align="center" font-size="26px" font-weight="700" color="{THEME['primary']}" padding="0">
              {BRAND_NAME}
            </mj-text>
            <mj-text align="center" font-size="14px" color="#cccccc" padding="8px 0 0 0">
              {BRAND_TAGLINE}
            </mj-text>
          </mj-column>
        </mj-section>

        <mj-section background-color="{THEME['card_bg']}" padding="40px 40px 24px 40px">
          <mj-column>
            <mj-text font-size="22px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="28px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              {BRAND_NAME} · {CONTACT_DETAILS['email']} · {CONTACT_DETAILS['phone']}
            </mj-text>
            {footer_extra}
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _detail_row(label: str, value: str) -> str:
    return f"""
    <mj-text padding="4px 0">
      <strong style="color: {THEME['text_muted']};">{label}:</strong> {value}
    </mj-text>
    """


def contact_notification_template(
    full_name: str,
    email: str,
    phone: str,
    subject: str,
    message_html: str,
) -> str:
    """Contact form submission, sent to the company inbox"""
    content = f"""
    <mj-text color="{THEME['text_muted']}" padding="0 0 16px 0">
      A visitor submitted the contact form on the website.
    </mj-text>

    {_detail_row("Name", full_name)}
    {_detail_row("Email", email)}
    {_detail_row("Phone", phone)}
    {_detail_row("Subject", subject)}

    <mj-text font-weight="600" color="{THEME['text_primary']}" padding="24px 0 8px 0">
      Message
    </mj-text>
    <mj-text container-background-color="{THEME['background']}" padding="16px"
             css-class="message-body">
      {message_html}
    </mj-text>
    """

    return get_base_template(
        title="New Contact Form Submission",
        preview_text=f"{full_name}: {subject}",
        content_sections=content,
        footer_note=f"Please respond to: {email}",
    )


def contact_confirmation_template(first_name: str, subject: str, submitted_on: str) -> str:
    """Acknowledgement sent to the person who used the contact form"""
    content = f"""
    <mj-text>
      Hello {first_name},
    </mj-text>

    <mj-text>
      Thank you for reaching out to us! We have received your message and our team will review it shortly.
    </mj-text>

    <mj-text font-weight="600" color="{THEME['text_primary']}" padding="16px 0 4px 0">
      Your message summary
    </mj-text>
    {_detail_row("Subject", subject)}
    {_detail_row("Submitted on", submitted_on)}

    <mj-text font-weight="600" color="{THEME['text_primary']}" padding="16px 0 4px 0">
      What happens next?
    </mj-text>
    <mj-text padding="0 0 0 20px">
      • Our team will review your inquiry within 24 hours<br/>
      • You'll receive a detailed response within 1-2 business days<br/>
      • For urgent matters, call us at {CONTACT_DETAILS['phone']}
    </mj-text>

    <mj-text container-background-color="{THEME['primary_light']}" padding="16px" font-size="14px">
      <strong>📍 Address:</strong> {CONTACT_DETAILS['address']}<br/>
      <strong>📧 Email:</strong> {CONTACT_DETAILS['email']}<br/>
      <strong>📞 Phone:</strong> {CONTACT_DETAILS['phone']}<br/>
      <strong>🕒 Hours:</strong> {CONTACT_DETAILS['hours']}
    </mj-text>
    """

    return get_base_template(
        title="We've received your message",
        preview_text="Thank you for contacting Anantam Aerial",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/workshops",
        cta_label="Explore Upcoming Workshops",
        footer_note="This is an automated confirmation email. Please do not reply to this email.",
    )
