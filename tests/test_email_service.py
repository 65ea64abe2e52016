import asyncio
import smtplib
import threading

import pytest

from anantam_api import email_service
from anantam_api.email_templates import contact_confirmation_template, contact_notification_template


@pytest.fixture(autouse=True)
def plain_html(monkeypatch):
    monkeypatch.setattr(email_service, "compile_mjml_to_html", lambda mjml: f"<html>{len(mjml)}</html>")


def test_without_any_transport_delivery_fails(monkeypatch):
    monkeypatch.setattr(email_service, "SMTP_HOST", None)
    monkeypatch.setattr(email_service, "RESEND_API_KEY", None)

    with pytest.raises(email_service.EmailDeliveryError):
        asyncio.run(email_service.send_email("a@example.com", "Hi", "<mjml></mjml>"))


def test_resend_is_used_when_no_smtp_relay(monkeypatch):
    sent = []
    monkeypatch.setattr(email_service, "SMTP_HOST", None)
    monkeypatch.setattr(email_service, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(email_service.resend.Emails, "send", lambda data: sent.append(data) or {"id": "r1"})

    response = asyncio.run(
        email_service.send_email("a@example.com", "Hi", "<mjml></mjml>", reply_to="b@example.com")
    )

    assert response == {"id": "r1"}
    assert sent[0]["to"] == ["a@example.com"]
    assert sent[0]["reply_to"] == "b@example.com"


def test_smtp_failure_falls_back_to_resend(monkeypatch):
    sent = []

    def broken_smtp(*args, **kwargs):
        raise email_service.EmailDeliveryError("SMTP failed: connection refused")

    monkeypatch.setattr(email_service, "SMTP_HOST", "smtp.example.com")
    monkeypatch.setattr(email_service, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(email_service, "send_via_smtp", broken_smtp)
    monkeypatch.setattr(email_service.resend.Emails, "send", lambda data: sent.append(data) or {"id": "r2"})

    assert asyncio.run(email_service.send_email("a@example.com", "Hi", "<mjml></mjml>")) == {"id": "r2"}
    assert len(sent) == 1


def test_contact_notification_goes_to_inbox(monkeypatch):
    captured = {}

    async def fake_send(**kwargs):
        captured.update(kwargs)
        return {"id": "x"}

    monkeypatch.setattr(email_service, "send_email", fake_send)

    asyncio.run(
        email_service.send_contact_notification(
            full_name="Meera Iyer",
            email="meera@example.com",
            phone="Not provided",
            subject="General Inquiry",
            message_html="Hello",
        )
    )

    assert captured["to"] == email_service.CONTACT_INBOX
    assert captured["subject"] == "New Contact Form Submission: General Inquiry"
    assert captured["reply_to"] == "meera@example.com"


def test_templates_carry_submission_details():
    notification = contact_notification_template("Meera Iyer", "meera@example.com", "n/a", "Batches", "Hi<br/>there")
    confirmation = contact_confirmation_template("Meera", "Batches", "01 March 2026, 10:00 UTC")

    assert "<mjml>" in notification
    assert "Meera Iyer" in notification and "Hi<br/>there" in notification
    assert "Hello Meera," in confirmation
    assert "01 March 2026, 10:00 UTC" in confirmation


class FakeSMTP:
    """Records the connection lifecycle of one SMTP session."""

    def __init__(self, host, port, timeout=None, refuse=False):
        self.refuse = refuse
        self.sent = []
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True

    def starttls(self, context=None):
        pass

    def login(self, username, password):
        pass

    def sendmail(self, from_addr, to_addrs, message):
        if self.refuse:
            raise smtplib.SMTPRecipientsRefused({to_addrs[0]: (550, b"No such user")})
        self.sent.append((from_addr, to_addrs))


@pytest.fixture()
def smtp_relay(monkeypatch):
    connections = []

    def connect(refuse):
        def factory(host, port, timeout=None):
            connections.append(FakeSMTP(host, port, timeout, refuse=refuse))
            return connections[-1]

        monkeypatch.setattr(email_service.smtplib, "SMTP", factory)

    monkeypatch.setattr(email_service, "SMTP_HOST", "smtp.example.com")
    monkeypatch.setattr(email_service, "SMTP_PORT", 587)
    monkeypatch.setattr(email_service, "SMTP_USE_TLS", False)
    return connect, connections


def test_smtp_connection_is_closed_after_sending(smtp_relay):
    connect, connections = smtp_relay
    connect(refuse=False)

    result = email_service.send_via_smtp(["a@example.com"], "Hi", "<p>Hi</p>", "Anantam <noreply@example.com>")

    assert result["success"] is True
    assert connections[0].sent == [("noreply@example.com", ["a@example.com"])]
    assert connections[0].closed is True


def test_smtp_connection_is_closed_when_sending_fails(smtp_relay):
    connect, connections = smtp_relay
    connect(refuse=True)

    with pytest.raises(email_service.EmailDeliveryError):
        email_service.send_via_smtp(["a@example.com"], "Hi", "<p>Hi</p>", "noreply@example.com")

    assert connections[0].closed is True


def test_smtp_sends_do_not_block_each_other(monkeypatch):
    # Each send waits for the other one; run one after the other, the barrier times out
    barrier = threading.Barrier(2, timeout=5)

    def relay(to, subject, html_content, from_address, reply_to=None):
        barrier.wait()
        return {"id": to[0], "success": True}

    monkeypatch.setattr(email_service, "SMTP_HOST", "smtp.example.com")
    monkeypatch.setattr(email_service, "send_via_smtp", relay)

    async def send_both():
        return await asyncio.gather(
            email_service.send_email("a@example.com", "Hi", "<mjml></mjml>"),
            email_service.send_email("b@example.com", "Hi", "<mjml></mjml>"),
        )

    first, second = asyncio.run(send_both())

    assert first["id"] == "a@example.com"
    assert second["id"] == "b@example.com"
