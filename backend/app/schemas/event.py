from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models.cosmic_event import CosmicEventType
from app.schemas.user import UserBrief
from app.utils.dates import to_utc


class EventBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    type: CosmicEventType = CosmicEventType.meteor_shower

    starts_at: datetime
    ends_at: datetime

    visibility_regions: list[str] = Field(default_factory=list)
    moon_phase: float | None = None
    source: str | None = Field(default=None, max_length=255)

    @field_validator("starts_at", "ends_at")
    @classmethod
    def normalize_dates(cls, value: datetime) -> datetime:
        return to_utc(value)

    @model_validator(mode="after")
    def check_dates(self) -> "EventBase":
        """Время окончания не может быть раньше начала."""
        if self.ends_at < self.starts_at:
            raise ValueError("Время окончания не может быть раньше начала")
        return self


class EventCreate(EventBase):
    """Данные для создания события."""
    pass


class EventUpdate(BaseModel):
    """
    Данные для обновления события (все поля опциональны).

    Порядок дат с учётом текущих значений проверяется в обработчике.
    """

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    type: CosmicEventType | None = None

    starts_at: datetime | None = None
    ends_at: datetime | None = None

    visibility_regions: list[str] | None = None
    moon_phase: float | None = None
    source: str | None = Field(default=None, max_length=255)

    @field_validator("starts_at", "ends_at")
    @classmethod
    def normalize_dates(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value is not None else None


class EventBrief(BaseModel):
    id: int
    name: str
    type: CosmicEventType
    starts_at: datetime
    ends_at: datetime
    moon_phase: float | None

    model_config = ConfigDict(from_attributes=True)


class EventRead(BaseModel):
    id: int
    name: str
    description: str | None
    type: CosmicEventType

    starts_at: datetime
    ends_at: datetime

    visibility_regions: list[str]
    moon_phase: float | None
    source: str | None

    posted_user_id: int
    posted_user: UserBrief
    interested_user_ids: list[int]

    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
