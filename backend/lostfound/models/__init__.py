from .user import User
from .lost_item import LostItem
from .found_item import FoundItem
from .match import Match
from .notification import Notification

__all__ = ["User", "LostItem", "FoundItem", "Match", "Notification"]
