# app/services/email.py
import smtplib
from email.message import EmailMessage
from typing import Optional

from app.core.config import settings
from app.loader import APP_LOGGER


def smtp_configured() -> bool:
    return bool(
        settings.smtp_host
        and settings.smtp_port
        and settings.smtp_user
        and settings.smtp_password
    )


def send_email(
    to: str,
    subject: str,
    text: str,
    *,
    reply_to: Optional[str] = None,
) -> bool:
    """
    Простейшая синхронная отправка письма через SMTP.

    Возвращает False, если SMTP не настроен и письмо не отправлялось.
    Ошибки SMTP пробрасываются вызывающему.
    """
    if not smtp_configured():
        APP_LOGGER.warning("[send_email] SMTP is not configured, email to %s skipped", to)
        return False

    msg = EmailMessage()
    msg["From"] = settings.smtp_from or settings.smtp_user
    msg["To"] = to
    msg["Subject"] = subject
    if reply_to:
        msg["Reply-To"] = reply_to
    msg.set_content(text)

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
        server.starttls()
        server.login(settings.smtp_user, settings.smtp_password)
        server.send_message(msg)
    return True
