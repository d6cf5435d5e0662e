from fastapi import APIRouter, Depends, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.core.exceptions import ConflictError, NotFoundError
from app.core.security import hash_password
from app.db.session import get_session
from app.loader import APP_LOGGER
from app.models.cosmic_event import CosmicEvent
from app.models.membership import EventMembership
from app.models.post import Post, PostReaction
from app.models.user import User
from app.schemas.common import ApiResponse
from app.schemas.event import EventBrief
from app.schemas.user import UserCreate, UserRead, UserUpdate
from app.services.reactions import sync_reaction_counters

router = APIRouter(prefix="/users", tags=["users"])


class UserWithEvents(UserRead):
    """Профиль пользователя с событиями, к которым он присоединился."""

    saved_events: list[EventBrief] = []


async def email_taken(session: AsyncSession, email: str) -> bool:
    stmt = select(User.id).where(User.email == email)
    res = await session.execute(stmt)
    return res.scalar_one_or_none() is not None


@router.post(
    "/",
    response_model=ApiResponse[UserRead],
    status_code=status.HTTP_201_CREATED,
)
async def register_user(
    payload: UserCreate,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[UserRead]:
    """Регистрация пользователя."""
    # Нормализуем email один раз
    normalized_email = payload.email.strip().lower()

    if await email_taken(session, normalized_email):
        APP_LOGGER.warning("[users.register] email already exists %s", normalized_email)
        raise ConflictError("Пользователь с таким email уже существует")

    user = User(
        name=payload.name,
        email=normalized_email,
        hashed_password=hash_password(payload.password),
        bio=payload.bio,
        longitude=payload.location.longitude,
        latitude=payload.location.latitude,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("Пользователь с таким email уже существует")
    await session.refresh(user)

    APP_LOGGER.info("[users.register] user_id=%s created", user.id)
    return ApiResponse[UserRead](
        status_code=status.HTTP_201_CREATED,
        message="Пользователь создан",
        data=UserRead.model_validate(user),
    )


@router.get("/", response_model=ApiResponse[list[UserRead]])
async def list_users(
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[UserRead]]:
    """Список всех пользователей (без паролей)."""
    stmt = select(User).order_by(User.id)
    result = await session.execute(stmt)
    users = result.scalars().unique().all()
    return ApiResponse[list[UserRead]](
        message="Пользователи получены",
        data=[UserRead.model_validate(u) for u in users],
        count=len(users),
    )


@router.patch("/me", response_model=ApiResponse[UserRead])
async def update_me(
    payload: UserUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[UserRead]:
    """Обновляет профиль текущего пользователя."""
    if payload.email is not None:
        normalized_email = payload.email.strip().lower()
        if normalized_email != current_user.email:
            if await email_taken(session, normalized_email):
                raise ConflictError("Пользователь с таким email уже существует")
            current_user.email = normalized_email

    if payload.name is not None:
        current_user.name = payload.name
    if payload.bio is not None:
        current_user.bio = payload.bio
    if payload.location is not None:
        current_user.longitude = payload.location.longitude
        current_user.latitude = payload.location.latitude

    session.add(current_user)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("Пользователь с таким email уже существует")
    await session.refresh(current_user)

    return ApiResponse[UserRead](
        message="Профиль обновлён",
        data=UserRead.model_validate(current_user),
    )


@router.delete("/me", response_model=ApiResponse[None])
async def delete_me(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[None]:
    """
    Удаление аккаунта.

    Пока у пользователя есть свои события или посты, удаление запрещено.
    Участие в событиях, напоминания и реакции удаляются вместе с аккаунтом,
    счётчики реакций затронутых постов пересчитываются.
    """
    events_cnt = await session.scalar(
        select(func.count()).select_from(CosmicEvent).where(
            CosmicEvent.posted_user_id == current_user.id
        )
    )
    posts_cnt = await session.scalar(
        select(func.count()).select_from(Post).where(Post.user_id == current_user.id)
    )
    if events_cnt or posts_cnt:
        APP_LOGGER.warning(
            "[users.delete] user_id=%s still owns events=%s posts=%s",
            current_user.id,
            events_cnt,
            posts_cnt,
        )
        raise ConflictError(
            f"Сначала удалите свои события ({events_cnt}) и посты ({posts_cnt})"
        )

    res = await session.execute(
        select(PostReaction.post_id).where(PostReaction.user_id == current_user.id)
    )
    touched_post_ids = list(res.scalars().all())

    user_id = current_user.id
    await session.delete(current_user)
    await session.flush()

    for post_id in touched_post_ids:
        await sync_reaction_counters(session, post_id)

    await session.commit()

    APP_LOGGER.info("[users.delete] user_id=%s deleted", user_id)
    return ApiResponse[None](message="Пользователь удалён")


@router.get("/{user_id}", response_model=ApiResponse[UserWithEvents])
async def get_user(
    user_id: int,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[UserWithEvents]:
    """Профиль пользователя с сохранёнными событиями."""
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("Пользователь не найден")

    stmt = (
        select(CosmicEvent)
        .join(EventMembership, EventMembership.event_id == CosmicEvent.id)
        .where(EventMembership.user_id == user_id)
        .order_by(EventMembership.id)
    )
    result = await session.execute(stmt)
    events = result.scalars().unique().all()

    data = UserWithEvents.model_validate(user)
    data.saved_events = [EventBrief.model_validate(e) for e in events]
    return ApiResponse[UserWithEvents](message="Пользователь найден", data=data)
