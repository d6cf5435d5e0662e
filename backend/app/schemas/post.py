from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import GeoPoint
from app.schemas.event import EventBrief
from app.schemas.user import UserBrief


class PostCreate(BaseModel):
    image_url: str = Field(..., min_length=1, max_length=1024)
    caption: str = Field(..., min_length=1, max_length=5000)
    location: GeoPoint
    visibility_score: float = Field(..., ge=0)


class PostUpdate(BaseModel):
    """Данные для обновления поста (все поля опциональны)."""

    image_url: str | None = Field(default=None, min_length=1, max_length=1024)
    caption: str | None = Field(default=None, min_length=1, max_length=5000)
    location: GeoPoint | None = None
    visibility_score: float | None = Field(default=None, ge=0)


class PostRead(BaseModel):
    id: int
    user_id: int
    user: UserBrief
    event_id: int
    event: EventBrief

    image_url: str
    caption: str
    location: GeoPoint
    visibility_score: float

    likes: list[int]
    dislikes: list[int]
    likes_count: int
    dislikes_count: int

    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReactionState(BaseModel):
    """Состояние реакций на пост после переключения лайка/дизлайка."""

    post_id: int
    liked: bool
    disliked: bool
    likes_count: int
    dislikes_count: int
