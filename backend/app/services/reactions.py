from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.post import Post, PostReaction, ReactionKind
from app.schemas.post import ReactionState


async def count_reactions(session: AsyncSession, post_id: int) -> dict[ReactionKind, int]:
    stmt = (
        select(PostReaction.kind, func.count())
        .where(PostReaction.post_id == post_id)
        .group_by(PostReaction.kind)
    )
    res = await session.execute(stmt)

    counts = {ReactionKind.like: 0, ReactionKind.dislike: 0}
    for kind, cnt in res.all():
        counts[kind] = cnt
    return counts


async def sync_reaction_counters(session: AsyncSession, post_id: int) -> dict[ReactionKind, int]:
    """Приводит likes_count/dislikes_count к числу строк реакций."""
    counts = await count_reactions(session, post_id)
    await session.execute(
        update(Post)
        .where(Post.id == post_id)
        .values(
            likes_count=counts[ReactionKind.like],
            dislikes_count=counts[ReactionKind.dislike],
        )
    )
    return counts


async def toggle_reaction(
    session: AsyncSession,
    post: Post,
    user_id: int,
    kind: ReactionKind,
) -> ReactionState:
    """
    Переключает лайк или дизлайк пользователя.

    Повторная такая же реакция снимается, противоположная — заменяется.
    Счётчики пересчитываются в той же транзакции.
    """
    existing = next((r for r in post.reactions if r.user_id == user_id), None)

    if existing is None:
        post.reactions.append(PostReaction(user_id=user_id, kind=kind))
        current = kind
    elif existing.kind == kind:
        post.reactions.remove(existing)
        current = None
    else:
        existing.kind = kind
        current = kind

    await session.flush()
    counts = await sync_reaction_counters(session, post.id)
    await session.commit()

    return ReactionState(
        post_id=post.id,
        liked=current == ReactionKind.like,
        disliked=current == ReactionKind.dislike,
        likes_count=counts[ReactionKind.like],
        dislikes_count=counts[ReactionKind.dislike],
    )
