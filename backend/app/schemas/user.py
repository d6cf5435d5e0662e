from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.schemas.common import GeoPoint


class UserBrief(BaseModel):
    """Автор события или поста во вложенных ответах."""

    id: int
    name: str
    email: EmailStr
    bio: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    bio: str = Field(..., min_length=1, max_length=2000)
    location: GeoPoint


class UserRead(BaseModel):
    id: int
    name: str
    email: EmailStr
    bio: str | None
    location: GeoPoint
    saved_event_ids: list[int] = []
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserUpdate(BaseModel):
    """Данные для обновления профиля (все поля опциональны)."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    bio: str | None = Field(default=None, max_length=2000)
    location: GeoPoint | None = None
