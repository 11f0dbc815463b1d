"""
Pydantic models for game data.

``GameCreate`` and ``GameUpdate`` describe the catalogue fields an
administrator may set.  ``avg_rating`` and ``total_reviews`` are
derived from the reviews of a game and only ever appear in ``GameRead``.
"""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class Platform(str, Enum):
    PS4 = "PS4"
    PS5 = "PS5"


def _clean_genres(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return None
    cleaned = []
    for genre in v:
        genre = genre.strip()
        if genre and genre not in cleaned:
            cleaned.append(genre)
    if not cleaned:
        raise ValueError("At least one genre is required")
    return cleaned


class GameCreate(BaseModel):
    """Schema for adding a game to the catalogue."""

    model_config = {"str_strip_whitespace": True}

    title: str = Field(..., min_length=1, max_length=200, examples=["God of War Ragnarök"])
    platform: Platform = Field(..., examples=["PS5"])
    genres: List[str] = Field(..., min_length=1, examples=[["Action", "Adventure"]])
    release_date: date = Field(..., examples=["2022-11-09"])
    publisher: str = Field(..., min_length=1, max_length=200, examples=["Sony Interactive Entertainment"])

    @field_validator("genres")
    @classmethod
    def check_genres(cls, v: List[str]) -> List[str]:
        return _clean_genres(v)


class GameUpdate(BaseModel):
    """Schema for updating a game.

    All fields are optional; only provided fields will be updated.
    """

    model_config = {"str_strip_whitespace": True}

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    platform: Optional[Platform] = None
    genres: Optional[List[str]] = Field(None, min_length=1)
    release_date: Optional[date] = None
    publisher: Optional[str] = Field(None, min_length=1, max_length=200)

    @field_validator("genres")
    @classmethod
    def check_genres(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_genres(v)


class GameSummary(BaseModel):
    """Subset of a game embedded in reviews, lists and activity entries."""

    id: int
    title: str
    platform: str
    genres: Optional[List[str]] = None
    avg_rating: Optional[float] = None


class GameRead(BaseModel):
    """Schema for reading a game from the API."""

    id: int
    title: str
    platform: Platform
    genres: List[str]
    release_date: date
    publisher: str
    avg_rating: float
    total_reviews: int

    model_config = {
        "from_attributes": True,
    }
