"""
Pydantic schemas for the activity (audit) trail.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .game import GameSummary
from .user import UserSummary


class ActivityAction(str, Enum):
    """Closed set of actions recorded in the activity trail."""

    ADDED_TO_WISHLIST = "added_to_wishlist"
    REMOVED_FROM_WISHLIST = "removed_from_wishlist"
    MARKED_AS_PLAYED = "marked_as_played"
    REVIEW_SUBMITTED = "review_submitted"
    REVIEW_UPDATED = "review_updated"
    REVIEW_DELETED = "review_deleted"


class ActivityRead(BaseModel):
    id: int
    user_id: int
    game_id: int
    action: ActivityAction
    timestamp: str
    meta: Dict[str, Any] = {}
    user: Optional[UserSummary] = None
    game: Optional[GameSummary] = None


class ActionCount(BaseModel):
    action: ActivityAction
    count: int


class ActivityStats(BaseModel):
    total_activities: int
    breakdown: List[ActionCount]
    recent_activity: Optional[ActivityRead] = None
