import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.loader import APP_LOGGER
from app.models.cosmic_event import CosmicEvent
from app.models.reminder import Reminder
from app.services.notifications import Dispatcher, ReminderNotice, dispatch_reminder
from app.utils.dates import to_utc, utcnow


def reminder_lead() -> timedelta:
    return timedelta(minutes=settings.reminder_lead_minutes)


def reminder_time(starts_at: datetime) -> datetime:
    """Момент отправки напоминания: за LEAD до начала события."""
    return to_utc(starts_at) - reminder_lead()


async def reschedule_pending_reminders(session: AsyncSession, event: CosmicEvent) -> int:
    """
    Пересчитывает notify_at у ещё не отправленных напоминаний события.

    Коммит остаётся за вызывающим.
    """
    stmt = (
        update(Reminder)
        .where(Reminder.event_id == event.id, Reminder.notified.is_(False))
        .values(notify_at=reminder_time(event.starts_at))
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.rowcount


@dataclass
class SweepResult:
    selected: int = 0
    delivered: int = 0
    failed: int = 0
    skipped: bool = False


async def find_due_notices(session: AsyncSession, now: datetime) -> list[ReminderNotice]:
    """Напоминания, которые пора отправить: notify_at <= now и ещё не отправлены."""
    stmt = (
        select(Reminder)
        .options(selectinload(Reminder.user), selectinload(Reminder.event))
        .where(Reminder.notify_at <= now, Reminder.notified.is_(False))
        .order_by(Reminder.notify_at, Reminder.id)
    )
    result = await session.execute(stmt)
    reminders = result.scalars().unique().all()

    # данные забираем сразу: после rollback ORM-объекты протухают
    return [
        ReminderNotice(
            reminder_id=r.id,
            recipient=r.user.email,
            recipient_name=r.user.name,
            event_name=r.event.name,
            event_starts_at=to_utc(r.event.starts_at),
        )
        for r in reminders
    ]


async def mark_notified(session: AsyncSession, reminder_id: int, now: datetime) -> bool:
    """
    Переводит напоминание в состояние «доставлено».

    Условие notified = false делает переход однократным: False, если его уже кто-то отметил.
    """
    stmt = (
        update(Reminder)
        .where(Reminder.id == reminder_id, Reminder.notified.is_(False))
        .values(notified=True, notified_at=now)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount == 1


async def sweep_due_reminders(
    session_factory: async_sessionmaker[AsyncSession],
    dispatcher: Dispatcher = dispatch_reminder,
    now: datetime | None = None,
) -> SweepResult:
    """
    Один проход: отправляет все просроченные напоминания.

    Ошибка по одному напоминанию не останавливает проход, такое напоминание
    остаётся неотмеченным и попадёт в следующий.
    """
    now = to_utc(now) if now is not None else utcnow()
    sweep = SweepResult()

    async with session_factory() as session:
        notices = await find_due_notices(session, now)
        sweep.selected = len(notices)

        for notice in notices:
            try:
                await dispatcher(notice)
            except Exception:
                APP_LOGGER.exception(
                    "[reminders.sweep] dispatch failed reminder_id=%s recipient=%s",
                    notice.reminder_id,
                    notice.recipient,
                )
                sweep.failed += 1
                continue

            try:
                marked = await mark_notified(session, notice.reminder_id, now)
            except SQLAlchemyError:
                await session.rollback()
                APP_LOGGER.exception(
                    "[reminders.sweep] failed to mark reminder_id=%s as notified",
                    notice.reminder_id,
                )
                sweep.failed += 1
                continue

            if marked:
                sweep.delivered += 1
            else:
                APP_LOGGER.warning(
                    "[reminders.sweep] reminder_id=%s was already marked as notified",
                    notice.reminder_id,
                )

    if sweep.selected:
        APP_LOGGER.info(
            "[reminders.sweep] delivered=%s failed=%s selected=%s",
            sweep.delivered,
            sweep.failed,
            sweep.selected,
        )
    return sweep


class ReminderSweeper:
    """
    Фоновая задача, раз в interval_seconds отправляющая просроченные напоминания.

    Проходы не пересекаются: если предыдущий ещё идёт, новый пропускается.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: Dispatcher = dispatch_reminder,
        interval_seconds: float = 60,
    ) -> None:
        self.session_factory = session_factory
        self.dispatcher = dispatcher
        self.interval_seconds = interval_seconds
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self, now: datetime | None = None) -> SweepResult:
        if self._lock.locked():
            APP_LOGGER.warning("[reminders.sweep] previous tick is still running, skipping")
            return SweepResult(skipped=True)

        async with self._lock:
            return await sweep_due_reminders(self.session_factory, self.dispatcher, now)

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception:
                # например, БД недоступна: пробуем на следующем тике
                APP_LOGGER.exception("[reminders.sweep] tick failed")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        APP_LOGGER.info(
            "[reminders.sweep] starting, interval=%ss", self.interval_seconds
        )
        self._task = asyncio.create_task(self._loop(), name="reminder-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        APP_LOGGER.info("[reminders.sweep] stopped")
