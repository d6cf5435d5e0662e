import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime

from app.loader import APP_LOGGER
from app.services.email import send_email


@dataclass(frozen=True)
class ReminderNotice:
    """Всё, что нужно, чтобы напомнить пользователю о событии."""

    reminder_id: int
    recipient: str
    recipient_name: str
    event_name: str
    event_starts_at: datetime


Dispatcher = Callable[[ReminderNotice], Awaitable[None]]


def render_reminder_text(notice: ReminderNotice) -> str:
    starts = notice.event_starts_at.strftime("%Y-%m-%d %H:%M UTC")
    return (
        f"Привет, {notice.recipient_name}!\n\n"
        f"Событие «{notice.event_name}» начнётся {starts}.\n"
        "Не забудьте посмотреть на небо!"
    )


async def dispatch_reminder(notice: ReminderNotice) -> None:
    """
    Отправляет напоминание по email.

    Исключение означает неудачную доставку: напоминание останется неотмеченным
    и будет отправлено повторно на следующем проходе.
    """
    APP_LOGGER.info(
        "[reminders.dispatch] sending notification to %s for event %s at %s",
        notice.recipient,
        notice.event_name,
        notice.event_starts_at.isoformat(),
    )
    await asyncio.to_thread(
        send_email,
        to=notice.recipient,
        subject=f"Скоро начнётся: {notice.event_name}",
        text=render_reminder_text(notice),
    )
