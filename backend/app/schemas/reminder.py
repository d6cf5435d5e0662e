from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.schemas.event import EventBrief, EventRead


class ReminderRead(BaseModel):
    id: int
    user_id: int
    event_id: int
    notify_at: datetime
    notified: bool
    notified_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReminderWithEvent(ReminderRead):
    """Напоминание с вложенным событием — для /notifications."""

    event: EventBrief


class JoinEventResult(BaseModel):
    event: EventRead
    reminder: ReminderRead
