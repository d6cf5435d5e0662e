from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, Field, field_validator

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Единый формат ответа API."""

    status_code: int = 200
    success: bool = True
    message: str
    data: T | None = None
    count: int | None = None


class ErrorResponse(BaseModel):
    status_code: int
    success: bool = False
    message: str
    data: Any | None = None


class GeoPoint(BaseModel):
    """Точка в формате GeoJSON: coordinates = [долгота, широта]."""

    type: Literal["Point"] = "Point"
    coordinates: list[float] = Field(..., min_length=2, max_length=2)

    @field_validator("coordinates")
    @classmethod
    def check_ranges(cls, value: list[float]) -> list[float]:
        lng, lat = value
        if not -180 <= lng <= 180:
            raise ValueError("Долгота должна быть в диапазоне [-180, 180]")
        if not -90 <= lat <= 90:
            raise ValueError("Широта должна быть в диапазоне [-90, 90]")
        return value

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]
