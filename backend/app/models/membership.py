from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.cosmic_event import CosmicEvent
from app.models.user import User
from app.utils.dates import utcnow


class EventMembership(Base):
    """
    Участие пользователя в событии.

    Единственный источник для User.saved_event_ids и CosmicEvent.interested_user_ids.
    """

    __tablename__ = "event_membership"
    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="uq_event_membership_user_event"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    event_id: Mapped[int] = mapped_column(
        ForeignKey("cosmicevent.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    user: Mapped[User] = relationship(back_populates="memberships")
    event: Mapped[CosmicEvent] = relationship(back_populates="memberships")
