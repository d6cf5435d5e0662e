from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.deps.auth import get_current_user
from app.core.exceptions import NotFoundError
from app.db.session import get_session
from app.models.cosmic_event import CosmicEvent
from app.models.reminder import Reminder
from app.models.user import User
from app.schemas.common import ApiResponse
from app.schemas.reminder import ReminderWithEvent

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
)


@router.get("/", response_model=ApiResponse[list[ReminderWithEvent]])
async def list_my_notifications(
    notified: bool | None = None,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[ReminderWithEvent]]:
    """
    Напоминания текущего пользователя, ближайшие первыми.

    notified=false — только запланированные, notified=true — только отправленные.
    """
    stmt = (
        select(Reminder)
        .options(selectinload(Reminder.event))
        .where(Reminder.user_id == current_user.id)
        .order_by(Reminder.notify_at, Reminder.id)
    )
    if notified is not None:
        stmt = stmt.where(Reminder.notified.is_(notified))

    result = await session.execute(stmt)
    reminders = result.scalars().unique().all()
    return ApiResponse[list[ReminderWithEvent]](
        message="Все уведомления получены",
        data=[ReminderWithEvent.model_validate(r) for r in reminders],
        count=len(reminders),
    )


@router.get("/{event_id}", response_model=ApiResponse[list[ReminderWithEvent]])
async def list_my_event_notifications(
    event_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[ReminderWithEvent]]:
    """Напоминания текущего пользователя по одному событию."""
    if await session.get(CosmicEvent, event_id) is None:
        raise NotFoundError("Событие не найдено")

    stmt = (
        select(Reminder)
        .options(selectinload(Reminder.event))
        .where(
            Reminder.user_id == current_user.id,
            Reminder.event_id == event_id,
        )
        .order_by(Reminder.notify_at, Reminder.id)
    )
    result = await session.execute(stmt)
    reminders = result.scalars().unique().all()
    return ApiResponse[list[ReminderWithEvent]](
        message="Уведомления по событию получены",
        data=[ReminderWithEvent.model_validate(r) for r in reminders],
        count=len(reminders),
    )
