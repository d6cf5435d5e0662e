from app.models.user import User
from app.models.cosmic_event import CosmicEvent, CosmicEventType, EventRegion
from app.models.membership import EventMembership
from app.models.post import Post, PostReaction, ReactionKind
from app.models.reminder import Reminder

__all__ = [
    "CosmicEvent",
    "CosmicEventType",
    "EventMembership",
    "EventRegion",
    "Post",
    "PostReaction",
    "ReactionKind",
    "Reminder",
    "User",
]
