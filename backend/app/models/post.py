import enum
from datetime import datetime

from sqlalchemy import (
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.cosmic_event import CosmicEvent
from app.models.user import User
from app.utils.dates import utcnow


class ReactionKind(str, enum.Enum):
    like = "like"
    dislike = "dislike"


class Post(Base):
    """Пост пользователя о наблюдении события."""

    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="uq_post_user_event"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("user.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    user: Mapped[User] = relationship(lazy="selectin")

    # удалить событие с постами нельзя
    event_id: Mapped[int] = mapped_column(
        ForeignKey("cosmicevent.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    event: Mapped[CosmicEvent] = relationship(lazy="selectin")

    image_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    caption: Mapped[str] = mapped_column(Text, nullable=False)

    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)

    visibility_score: Mapped[float] = mapped_column(Float, nullable=False)

    likes_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    dislikes_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    reactions: Mapped[list["PostReaction"]] = relationship(
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="PostReaction.id",
        lazy="selectin",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    @property
    def likes(self) -> list[int]:
        return [r.user_id for r in self.reactions if r.kind == ReactionKind.like]

    @property
    def dislikes(self) -> list[int]:
        return [r.user_id for r in self.reactions if r.kind == ReactionKind.dislike]

    @property
    def location(self) -> dict:
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}


class PostReaction(Base):
    """
    Лайк или дизлайк поста.

    Одна строка на пару (пост, пользователь): одновременно лайк и дизлайк невозможны.
    """

    __tablename__ = "post_reaction"
    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_post_reaction_post_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    post_id: Mapped[int] = mapped_column(
        ForeignKey("post.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    kind: Mapped[ReactionKind] = mapped_column(
        Enum(ReactionKind, name="post_reaction_kind_enum"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    post: Mapped[Post] = relationship(back_populates="reactions")
    user: Mapped[User] = relationship(back_populates="reactions")
