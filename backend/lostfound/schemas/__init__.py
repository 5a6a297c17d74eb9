from .item import FoundItemSchema, LostItemSchema
from .match import MatchSchema, RejectMatchSchema, VerifyMatchSchema
from .notification import NotificationSchema

__all__ = [
    "FoundItemSchema",
    "LostItemSchema",
    "MatchSchema",
    "RejectMatchSchema",
    "VerifyMatchSchema",
    "NotificationSchema",
]
