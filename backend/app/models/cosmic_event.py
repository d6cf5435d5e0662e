import enum
from datetime import datetime
from typing import TYPE_CHECKING

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
from app.models.user import User
from app.utils.dates import utcnow

if TYPE_CHECKING:
    from app.models.membership import EventMembership
    from app.models.reminder import Reminder


class CosmicEventType(str, enum.Enum):
    meteor_shower = "Meteor Shower"
    iss_pass = "ISS Pass"
    lunar_eclipse = "Lunar Eclipse"


class EventRegion(Base):
    """Регион, в котором событие видно."""

    __tablename__ = "event_region"
    __table_args__ = (
        UniqueConstraint("event_id", "region", name="uq_event_region_event_region"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    event_id: Mapped[int] = mapped_column(
        ForeignKey("cosmicevent.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    region: Mapped[str] = mapped_column(String(100), nullable=False, index=True)


class CosmicEvent(Base):
    """Астрономическое событие: метеорный поток, пролёт МКС, затмение."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    type: Mapped[CosmicEventType] = mapped_column(
        Enum(CosmicEventType, name="cosmic_event_type_enum"),
        default=CosmicEventType.meteor_shower,
        nullable=False,
        index=True,
    )

    starts_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    moon_phase: Mapped[float | None] = mapped_column(Float, nullable=True)
    source: Mapped[str | None] = mapped_column(String(255), nullable=True)

    posted_user_id: Mapped[int] = mapped_column(
        ForeignKey("user.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    posted_user: Mapped[User] = relationship(lazy="selectin")

    regions: Mapped[list[EventRegion]] = relationship(
        cascade="all, delete-orphan",
        order_by=EventRegion.id,
        lazy="selectin",
    )
    memberships: Mapped[list["EventMembership"]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventMembership.id",
        lazy="selectin",
    )
    reminders: Mapped[list["Reminder"]] = relationship(
        back_populates="event",
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
    def visibility_regions(self) -> list[str]:
        return [r.region for r in self.regions]

    @visibility_regions.setter
    def visibility_regions(self, values: list[str]) -> None:
        # дубликаты отбрасываем, порядок сохраняем; уже сохранённые строки переиспользуем
        current = {r.region: r for r in self.regions}
        self.regions = [
            current.get(value) or EventRegion(region=value)
            for value in dict.fromkeys(values)
        ]

    @property
    def interested_user_ids(self) -> list[int]:
        """Участники события в порядке присоединения."""
        return [m.user_id for m in self.memberships]
