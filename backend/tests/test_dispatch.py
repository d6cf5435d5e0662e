import smtplib
from datetime import datetime, timezone

import pytest

from app.core.config import settings
from app.services import email, notifications
from app.services.notifications import ReminderNotice, dispatch_reminder, render_reminder_text


@pytest.fixture
def notice() -> ReminderNotice:
    return ReminderNotice(
        reminder_id=1,
        recipient="bob@example.com",
        recipient_name="Bob",
        event_name="Perseids 2024",
        event_starts_at=datetime(2024, 8, 12, 22, 0, tzinfo=timezone.utc),
    )


class FakeSMTP:
    sent: list = []

    def __init__(self, host, port):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def starttls(self):
        pass

    def login(self, user, password):
        pass

    def send_message(self, msg):
        FakeSMTP.sent.append(msg)


@pytest.fixture
def smtp_settings(monkeypatch):
    monkeypatch.setattr(settings, "smtp_host", "smtp.example.com")
    monkeypatch.setattr(settings, "smtp_port", 587)
    monkeypatch.setattr(settings, "smtp_user", "robot@example.com")
    monkeypatch.setattr(settings, "smtp_password", "pw")
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    FakeSMTP.sent = []


def test_render_reminder_text(notice):
    text = render_reminder_text(notice)

    assert "Bob" in text
    assert "«Perseids 2024»" in text
    assert "2024-08-12 22:00 UTC" in text


async def test_dispatch_without_smtp_is_log_only(notice, monkeypatch):
    monkeypatch.setattr(settings, "smtp_host", None)

    await dispatch_reminder(notice)


async def test_dispatch_sends_email(notice, smtp_settings):
    await dispatch_reminder(notice)

    assert len(FakeSMTP.sent) == 1
    msg = FakeSMTP.sent[0]
    assert msg["To"] == "bob@example.com"
    assert msg["Subject"] == "Скоро начнётся: Perseids 2024"


async def test_dispatch_propagates_transport_errors(notice, monkeypatch):
    def broken_send(**kwargs):
        raise smtplib.SMTPException("connection refused")

    monkeypatch.setattr(notifications, "send_email", broken_send)

    with pytest.raises(smtplib.SMTPException):
        await dispatch_reminder(notice)


def test_smtp_configured(smtp_settings, monkeypatch):
    assert email.smtp_configured() is True

    monkeypatch.setattr(settings, "smtp_password", None)
    assert email.smtp_configured() is False
