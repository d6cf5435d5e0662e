from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError
from app.loader import APP_LOGGER
from app.models.cosmic_event import CosmicEvent
from app.models.membership import EventMembership
from app.models.reminder import Reminder
from app.models.user import User
from app.services.reminders import reminder_time


async def join_event(
    session: AsyncSession,
    user: User,
    event_id: int,
) -> tuple[CosmicEvent, Reminder]:
    """
    Присоединяет пользователя к событию и планирует напоминание.

    Членство и напоминание пишутся одной транзакцией: либо есть оба, либо ничего.
    Повторное присоединение — ConflictError без записей.

    Если напоминание без членства уже есть, оно переиспользуется и снова
    становится запланированным: notified=False, notify_at пересчитан.
    """
    stmt = select(CosmicEvent).where(CosmicEvent.id == event_id)
    result = await session.execute(stmt)
    event = result.scalar_one_or_none()
    if event is None:
        APP_LOGGER.warning("[events.join] event not found event_id=%s", event_id)
        raise NotFoundError("Событие не найдено")

    # обе стороны связи берутся из одной строки членства, поэтому расходиться не могут
    if user.id in event.interested_user_ids and event.id in user.saved_event_ids:
        APP_LOGGER.warning(
            "[events.join] already joined user_id=%s event_id=%s", user.id, event.id
        )
        raise ConflictError("Вы уже присоединились к этому событию")

    # напоминание без членства (например, из старых данных) не дублируем, а переиспользуем
    rem_stmt = select(Reminder).where(
        Reminder.user_id == user.id,
        Reminder.event_id == event.id,
    )
    rem_res = await session.execute(rem_stmt)
    reminder = rem_res.scalar_one_or_none()

    user_id = user.id
    session.add(EventMembership(user=user, event=event))

    if reminder is None:
        reminder = Reminder(
            user_id=user.id,
            event_id=event.id,
            notify_at=reminder_time(event.starts_at),
            notified=False,
        )
        session.add(reminder)
    else:
        APP_LOGGER.warning(
            "[events.join] reusing orphan reminder_id=%s user_id=%s event_id=%s",
            reminder.id,
            user.id,
            event.id,
        )
        reminder.notify_at = reminder_time(event.starts_at)
        reminder.notified = False
        reminder.notified_at = None

    try:
        await session.commit()
    except IntegrityError:
        # параллельный запрос того же пользователя успел раньше;
        # после rollback объекты сессии протухли, читаем только сохранённые id
        await session.rollback()
        APP_LOGGER.warning(
            "[events.join] concurrent join rejected user_id=%s event_id=%s",
            user_id,
            event_id,
        )
        raise ConflictError("Вы уже присоединились к этому событию")

    await session.refresh(event, attribute_names=["memberships"])
    await session.refresh(reminder)

    APP_LOGGER.info(
        "[events.join] user_id=%s joined event_id=%s reminder_id=%s notify_at=%s",
        user.id,
        event.id,
        reminder.id,
        reminder.notify_at,
    )
    return event, reminder
