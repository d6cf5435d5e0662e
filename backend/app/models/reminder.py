from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.cosmic_event import CosmicEvent
from app.models.user import User
from app.utils.dates import utcnow


class Reminder(Base):
    """
    Напоминание о событии, созданное при присоединении к нему.

    Состояния: запланировано (notified=False) -> доставлено (notified=True).
    Обратного перехода нет.
    """

    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="uq_reminder_user_event"),
        Index("ix_reminder_due", "notified", "notify_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user: Mapped[User] = relationship(back_populates="reminders", lazy="selectin")

    event_id: Mapped[int] = mapped_column(
        ForeignKey("cosmicevent.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    event: Mapped[CosmicEvent] = relationship(back_populates="reminders", lazy="selectin")

    notify_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    notified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
