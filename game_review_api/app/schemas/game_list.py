"""
Pydantic schemas for a user's game list.

Every user owns one list with two collections kept in insertion
order: the wishlist and the games already played.  A game appears in
at most one of the two.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from .game import GameSummary


class WishlistAdd(BaseModel):
    game_id: int = Field(..., ge=1)


class PlayedAdd(BaseModel):
    game_id: int = Field(..., ge=1)
    completion_hours: Optional[int] = Field(None, ge=0, description="Hours it took to finish the game")


class WishlistEntry(BaseModel):
    game_id: int
    added_at: str
    game: Optional[GameSummary] = None


class PlayedEntry(BaseModel):
    game_id: int
    completed_at: str
    completion_hours: Optional[int] = None
    game: Optional[GameSummary] = None


class GameListRead(BaseModel):
    id: int
    user_id: int
    wishlist: List[WishlistEntry] = []
    played: List[PlayedEntry] = []
