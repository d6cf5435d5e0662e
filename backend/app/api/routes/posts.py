from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from app.db.session import get_session
from app.loader import APP_LOGGER
from app.models.cosmic_event import CosmicEvent
from app.models.post import Post, ReactionKind
from app.models.user import User
from app.schemas.common import ApiResponse
from app.schemas.post import PostCreate, PostRead, PostUpdate, ReactionState
from app.services.reactions import toggle_reaction

router = APIRouter(
    prefix="/posts",
    tags=["posts"],
)


async def get_post_or_404(
    session: AsyncSession,
    post_id: int,
    *,
    for_update: bool = False,
) -> Post:
    stmt = select(Post).where(Post.id == post_id)
    if for_update:
        # переключения реакций на один пост идут по очереди
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    post = result.scalar_one_or_none()
    if post is None:
        APP_LOGGER.warning("[posts] post not found post_id=%s", post_id)
        raise NotFoundError("Пост не найден")
    return post


def posts_response(posts: list[Post], message: str) -> ApiResponse[list[PostRead]]:
    return ApiResponse[list[PostRead]](
        message=message,
        data=[PostRead.model_validate(p) for p in posts],
        count=len(posts),
    )


@router.get("/", response_model=ApiResponse[list[PostRead]])
async def list_posts(
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[PostRead]]:
    """Все посты, новые первыми."""
    stmt = select(Post).order_by(Post.created_at.desc(), Post.id.desc())
    result = await session.execute(stmt)
    return posts_response(result.scalars().unique().all(), "Все посты получены")


@router.get("/my", response_model=ApiResponse[list[PostRead]])
async def list_my_posts(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[PostRead]]:
    """Посты текущего пользователя, новые первыми."""
    stmt = (
        select(Post)
        .where(Post.user_id == current_user.id)
        .order_by(Post.created_at.desc(), Post.id.desc())
    )
    result = await session.execute(stmt)
    return posts_response(result.scalars().unique().all(), "Посты пользователя получены")


@router.get("/event/{event_id}", response_model=ApiResponse[list[PostRead]])
async def list_event_posts(
    event_id: int,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[PostRead]]:
    """Посты о событии."""
    if await session.get(CosmicEvent, event_id) is None:
        raise NotFoundError("Событие не найдено")

    stmt = (
        select(Post)
        .where(Post.event_id == event_id)
        .order_by(Post.created_at.desc(), Post.id.desc())
    )
    result = await session.execute(stmt)
    return posts_response(result.scalars().unique().all(), "Посты события получены")


@router.get("/user/{user_id}", response_model=ApiResponse[list[PostRead]])
async def list_user_posts(
    user_id: int,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[PostRead]]:
    """Посты указанного пользователя."""
    if await session.get(User, user_id) is None:
        raise NotFoundError("Пользователь не найден")

    stmt = (
        select(Post)
        .where(Post.user_id == user_id)
        .order_by(Post.created_at.desc(), Post.id.desc())
    )
    result = await session.execute(stmt)
    return posts_response(result.scalars().unique().all(), "Посты пользователя получены")


@router.post(
    "/event/{event_id}",
    response_model=ApiResponse[PostRead],
    status_code=status.HTTP_201_CREATED,
)
async def create_post(
    event_id: int,
    payload: PostCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[PostRead]:
    """
    Создание поста о событии.

    У пользователя может быть только один пост на событие.
    """
    if await session.get(CosmicEvent, event_id) is None:
        APP_LOGGER.warning("[posts.create] event not found event_id=%s", event_id)
        raise NotFoundError("Событие не найдено")

    check_stmt = select(Post.id).where(
        Post.user_id == current_user.id,
        Post.event_id == event_id,
    )
    check_res = await session.execute(check_stmt)
    if check_res.scalar_one_or_none() is not None:
        APP_LOGGER.warning(
            "[posts.create] user_id=%s already posted for event_id=%s",
            current_user.id,
            event_id,
        )
        raise ConflictError("У вас уже есть пост об этом событии")

    post = Post(
        user_id=current_user.id,
        event_id=event_id,
        image_url=payload.image_url,
        caption=payload.caption,
        longitude=payload.location.longitude,
        latitude=payload.location.latitude,
        visibility_score=payload.visibility_score,
        likes_count=0,
        dislikes_count=0,
    )
    session.add(post)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("У вас уже есть пост об этом событии")
    await session.refresh(post)

    APP_LOGGER.info(
        "[posts.create] post_id=%s created by user_id=%s", post.id, current_user.id
    )
    return ApiResponse[PostRead](
        status_code=status.HTTP_201_CREATED,
        message="Пост создан",
        data=PostRead.model_validate(post),
    )


@router.get("/{post_id}", response_model=ApiResponse[PostRead])
async def get_post(
    post_id: int,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[PostRead]:
    post = await get_post_or_404(session, post_id)
    return ApiResponse[PostRead](message="Пост найден", data=PostRead.model_validate(post))


@router.patch("/{post_id}", response_model=ApiResponse[PostRead])
async def update_post(
    post_id: int,
    payload: PostUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[PostRead]:
    """Обновление поста автором."""
    post = await get_post_or_404(session, post_id)

    if post.user_id != current_user.id:
        APP_LOGGER.warning(
            "[posts.update] user_id=%s is not the author of post_id=%s",
            current_user.id,
            post_id,
        )
        raise ForbiddenError("Нельзя редактировать чужой пост")

    if payload.image_url is not None:
        post.image_url = payload.image_url
    if payload.caption is not None:
        post.caption = payload.caption
    if payload.location is not None:
        post.longitude = payload.location.longitude
        post.latitude = payload.location.latitude
    if payload.visibility_score is not None:
        post.visibility_score = payload.visibility_score

    session.add(post)
    await session.commit()
    await session.refresh(post)

    return ApiResponse[PostRead](message="Пост обновлён", data=PostRead.model_validate(post))


@router.delete("/{post_id}", response_model=ApiResponse[PostRead])
async def delete_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[PostRead]:
    """Удаление поста автором."""
    post = await get_post_or_404(session, post_id)

    if post.user_id != current_user.id:
        APP_LOGGER.warning(
            "[posts.delete] user_id=%s is not the author of post_id=%s",
            current_user.id,
            post_id,
        )
        raise ForbiddenError("Нельзя удалять чужой пост")

    data = PostRead.model_validate(post)
    await session.delete(post)
    await session.commit()

    APP_LOGGER.info("[posts.delete] post_id=%s deleted", post_id)
    return ApiResponse[PostRead](message="Пост удалён", data=data)


@router.post("/{post_id}/like", response_model=ApiResponse[ReactionState])
async def toggle_like(
    post_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[ReactionState]:
    """Поставить или снять лайк. Лайк снимает дизлайк этого пользователя."""
    post = await get_post_or_404(session, post_id, for_update=True)
    state = await toggle_reaction(session, post, current_user.id, ReactionKind.like)
    return ApiResponse[ReactionState](
        message="Лайк поставлен" if state.liked else "Лайк снят",
        data=state,
    )


@router.post("/{post_id}/dislike", response_model=ApiResponse[ReactionState])
async def toggle_dislike(
    post_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[ReactionState]:
    """Поставить или снять дизлайк. Дизлайк снимает лайк этого пользователя."""
    post = await get_post_or_404(session, post_id, for_update=True)
    state = await toggle_reaction(session, post, current_user.id, ReactionKind.dislike)
    return ApiResponse[ReactionState](
        message="Дизлайк поставлен" if state.disliked else "Дизлайк снят",
        data=state,
    )
