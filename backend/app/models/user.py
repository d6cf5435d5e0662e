from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.utils.dates import utcnow

if TYPE_CHECKING:
    from app.models.membership import EventMembership
    from app.models.post import PostReaction
    from app.models.reminder import Reminder


class User(Base):
    """Пользователь: автор событий и постов, участник событий."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)

    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)

    # одна строка членства хранит обе стороны связи user <-> event
    memberships: Mapped[list["EventMembership"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="EventMembership.id",
        lazy="selectin",
    )
    reminders: Mapped[list["Reminder"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
    reactions: Mapped[list["PostReaction"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
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
    def saved_event_ids(self) -> list[int]:
        """События, к которым присоединился пользователь, в порядке присоединения."""
        return [m.event_id for m in self.memberships]

    @property
    def location(self) -> dict:
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}
