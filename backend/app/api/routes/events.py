from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from app.db.session import get_session
from app.loader import APP_LOGGER
from app.models.cosmic_event import CosmicEvent, CosmicEventType, EventRegion
from app.models.post import Post
from app.models.user import User
from app.schemas.common import ApiResponse
from app.schemas.event import EventCreate, EventRead, EventUpdate
from app.schemas.reminder import JoinEventResult, ReminderRead
from app.services.membership import join_event
from app.services.reminders import reschedule_pending_reminders
from app.utils.dates import to_utc, utcnow

router = APIRouter(
    prefix="/cosmic-events",
    tags=["cosmic-events"],
)


async def get_event_or_404(session: AsyncSession, event_id: int) -> CosmicEvent:
    stmt = select(CosmicEvent).where(CosmicEvent.id == event_id)
    result = await session.execute(stmt)
    event = result.scalar_one_or_none()
    if event is None:
        APP_LOGGER.warning("[events] event not found event_id=%s", event_id)
        raise NotFoundError("Событие не найдено")
    return event


async def name_taken(session: AsyncSession, name: str) -> bool:
    stmt = select(CosmicEvent.id).where(CosmicEvent.name == name)
    res = await session.execute(stmt)
    return res.scalar_one_or_none() is not None


@router.get("/", response_model=ApiResponse[list[EventRead]])
async def list_events(
    session: AsyncSession = Depends(get_session),
    type: str | None = Query(default=None),
    region: str | None = Query(default=None, min_length=1),
    upcoming: bool = False,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    limit: int | None = Query(default=None, ge=1, le=100),
) -> ApiResponse[list[EventRead]]:
    """
    Список событий с фильтрами.

    - type — тип события;
    - region — регион видимости;
    - upcoming — только будущие, ближайшие первыми;
    - start_date + end_date — события, пересекающиеся с интервалом.
    """
    conditions = []
    order_by = [CosmicEvent.created_at.desc()]
    message = "Все события получены"

    if type is not None:
        valid_types = [t.value for t in CosmicEventType]
        if type not in valid_types:
            raise BadRequestError(
                f"Неверный тип события. Допустимые типы: {', '.join(valid_types)}"
            )
        conditions.append(CosmicEvent.type == CosmicEventType(type))
        message = f"События типа {type} получены"

    if region:
        conditions.append(CosmicEvent.regions.any(EventRegion.region == region))
        message = f"События, видимые в регионе {region}, получены"

    if upcoming:
        conditions.append(CosmicEvent.starts_at >= utcnow())
        order_by = [CosmicEvent.starts_at.asc()]
        message = "Предстоящие события получены"

    if start_date is not None or end_date is not None:
        if start_date is None or end_date is None:
            raise BadRequestError(
                "Для фильтра по датам нужны и start_date, и end_date"
            )
        start, end = to_utc(start_date), to_utc(end_date)
        if start > end:
            raise BadRequestError("Дата начала не может быть позже даты окончания")

        conditions.append(
            or_(
                and_(CosmicEvent.starts_at >= start, CosmicEvent.starts_at <= end),
                and_(CosmicEvent.ends_at >= start, CosmicEvent.ends_at <= end),
                and_(CosmicEvent.starts_at <= start, CosmicEvent.ends_at >= end),
            )
        )
        order_by = [CosmicEvent.starts_at.asc()]
        message = "События в интервале дат получены"

    stmt = select(CosmicEvent).where(*conditions).order_by(*order_by, CosmicEvent.id)
    if limit is not None:
        stmt = stmt.limit(limit)

    result = await session.execute(stmt)
    events = result.scalars().unique().all()
    return ApiResponse[list[EventRead]](
        message=message,
        data=[EventRead.model_validate(e) for e in events],
        count=len(events),
    )


@router.get("/my", response_model=ApiResponse[list[EventRead]])
async def list_my_events(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[EventRead]]:
    """События, созданные текущим пользователем."""
    stmt = (
        select(CosmicEvent)
        .where(CosmicEvent.posted_user_id == current_user.id)
        .order_by(CosmicEvent.created_at.desc(), CosmicEvent.id.desc())
    )
    result = await session.execute(stmt)
    events = result.scalars().unique().all()
    return ApiResponse[list[EventRead]](
        message="События пользователя получены",
        data=[EventRead.model_validate(e) for e in events],
        count=len(events),
    )


@router.get("/user/{user_id}", response_model=ApiResponse[list[EventRead]])
async def list_user_events(
    user_id: int,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[EventRead]]:
    """События, созданные указанным пользователем."""
    if await session.get(User, user_id) is None:
        raise NotFoundError("Пользователь не найден")

    stmt = (
        select(CosmicEvent)
        .where(CosmicEvent.posted_user_id == user_id)
        .order_by(CosmicEvent.created_at.desc(), CosmicEvent.id.desc())
    )
    result = await session.execute(stmt)
    events = result.scalars().unique().all()
    return ApiResponse[list[EventRead]](
        message="События пользователя получены",
        data=[EventRead.model_validate(e) for e in events],
        count=len(events),
    )


@router.get("/{event_id}", response_model=ApiResponse[EventRead])
async def get_event(
    event_id: int,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[EventRead]:
    """Одно событие по id вместе с автором."""
    event = await get_event_or_404(session, event_id)
    return ApiResponse[EventRead](
        message="Событие найдено",
        data=EventRead.model_validate(event),
    )


@router.post(
    "/",
    response_model=ApiResponse[EventRead],
    status_code=status.HTTP_201_CREATED,
)
async def create_event(
    payload: EventCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[EventRead]:
    """Создание события. Имя события уникально."""
    if await name_taken(session, payload.name):
        APP_LOGGER.warning("[events.create] name already exists %s", payload.name)
        raise ConflictError(f"Событие с именем «{payload.name}» уже существует")

    event = CosmicEvent(
        name=payload.name,
        description=payload.description,
        type=payload.type,
        starts_at=payload.starts_at,
        ends_at=payload.ends_at,
        moon_phase=payload.moon_phase,
        source=payload.source,
        posted_user_id=current_user.id,
    )
    event.visibility_regions = payload.visibility_regions
    session.add(event)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError(f"Событие с именем «{payload.name}» уже существует")
    await session.refresh(event)

    APP_LOGGER.info(
        "[events.create] event_id=%s created by user_id=%s", event.id, current_user.id
    )
    return ApiResponse[EventRead](
        status_code=status.HTTP_201_CREATED,
        message="Событие создано",
        data=EventRead.model_validate(event),
    )


@router.patch("/{event_id}", response_model=ApiResponse[EventRead])
async def update_event(
    event_id: int,
    payload: EventUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[EventRead]:
    """
    Обновление события автором.

    При переносе начала события неотправленные напоминания переносятся вместе с ним.
    """
    event = await get_event_or_404(session, event_id)

    if event.posted_user_id != current_user.id:
        APP_LOGGER.warning(
            "[events.update] user_id=%s is not the author of event_id=%s",
            current_user.id,
            event_id,
        )
        raise ForbiddenError("Нельзя редактировать чужое событие")

    if payload.name is not None and payload.name != event.name:
        if await name_taken(session, payload.name):
            raise ConflictError(f"Событие с именем «{payload.name}» уже существует")

    starts_at = payload.starts_at or to_utc(event.starts_at)
    ends_at = payload.ends_at or to_utc(event.ends_at)
    if ends_at < starts_at:
        raise BadRequestError("Время окончания не может быть раньше начала")

    start_moved = payload.starts_at is not None and payload.starts_at != to_utc(event.starts_at)

    if payload.name is not None:
        event.name = payload.name
    if payload.description is not None:
        event.description = payload.description
    if payload.type is not None:
        event.type = payload.type

    if payload.starts_at is not None:
        event.starts_at = payload.starts_at
    if payload.ends_at is not None:
        event.ends_at = payload.ends_at

    if payload.visibility_regions is not None:
        event.visibility_regions = payload.visibility_regions
    if payload.moon_phase is not None:
        event.moon_phase = payload.moon_phase
    if payload.source is not None:
        event.source = payload.source

    session.add(event)
    if start_moved:
        moved = await reschedule_pending_reminders(session, event)
        APP_LOGGER.info(
            "[events.update] event_id=%s start moved, rescheduled %s reminders",
            event.id,
            moved,
        )

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("Событие с таким именем уже существует")
    await session.refresh(event)

    return ApiResponse[EventRead](
        message="Событие обновлено",
        data=EventRead.model_validate(event),
    )


@router.delete("/{event_id}", response_model=ApiResponse[EventRead])
async def delete_event(
    event_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[EventRead]:
    """
    Удаление события автором.

    Событие, к которому есть посты, удалить нельзя. Участники и напоминания
    удаляются вместе с событием.
    """
    event = await get_event_or_404(session, event_id)

    if event.posted_user_id != current_user.id:
        APP_LOGGER.warning(
            "[events.delete] user_id=%s is not the author of event_id=%s",
            current_user.id,
            event_id,
        )
        raise ForbiddenError("Нельзя удалять чужое событие")

    posts_cnt = await session.scalar(
        select(func.count()).select_from(Post).where(Post.event_id == event_id)
    )
    if posts_cnt:
        APP_LOGGER.warning(
            "[events.delete] event_id=%s has %s posts", event_id, posts_cnt
        )
        raise BadRequestError(
            f"Нельзя удалить событие: к нему привязано постов — {posts_cnt}"
        )

    data = EventRead.model_validate(event)
    await session.delete(event)
    await session.commit()

    APP_LOGGER.info("[events.delete] event_id=%s deleted", event_id)
    return ApiResponse[EventRead](message="Событие удалено", data=data)


@router.post("/{event_id}/join", response_model=ApiResponse[JoinEventResult])
async def join_cosmic_event(
    event_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[JoinEventResult]:
    """
    Присоединение к событию.

    Создаёт напоминание за час до начала события.
    """
    event, reminder = await join_event(session, current_user, event_id)
    return ApiResponse[JoinEventResult](
        message="Вы присоединились к событию, напоминание создано",
        data=JoinEventResult(
            event=EventRead.model_validate(event),
            reminder=ReminderRead.model_validate(reminder),
        ),
    )
