"""
Pydantic schemas for game reviews.

Each user may review a game once.  Title and body are trimmed, length
checked and HTML‑escaped on input so stored text is safe to render.
"""

import html
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .game import GameSummary
from .user import UserSummary


class ReviewCreate(BaseModel):
    """Schema for creating a new review."""

    model_config = {"str_strip_whitespace": True}

    game_id: int = Field(..., ge=1, description="Identifier of the game being reviewed")
    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5")
    title: str = Field(..., min_length=3, max_length=100)
    body: str = Field(..., min_length=10, max_length=1000)

    @field_validator("title", "body")
    @classmethod
    def escape_text(cls, v: str) -> str:
        return html.escape(v)


class ReviewUpdate(BaseModel):
    """Schema for updating a review.  Omitted fields keep their value."""

    model_config = {"str_strip_whitespace": True}

    rating: Optional[int] = Field(None, ge=1, le=5)
    title: Optional[str] = Field(None, min_length=3, max_length=100)
    body: Optional[str] = Field(None, min_length=10, max_length=1000)

    @field_validator("title", "body")
    @classmethod
    def escape_text(cls, v: Optional[str]) -> Optional[str]:
        return html.escape(v) if v is not None else None


class ReviewRead(BaseModel):
    """Schema for reading a review, with its author and game populated."""

    id: int
    user_id: int
    game_id: int
    rating: int
    title: str
    body: str
    created_at: str
    updated_at: Optional[str] = None
    user: Optional[UserSummary] = None
    game: Optional[GameSummary] = None

    model_config = {
        "from_attributes": True,
    }
