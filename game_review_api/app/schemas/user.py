"""
Pydantic models for user data.

Defines schemas for registering, authenticating, updating and reading
users.  Passwords are accepted on input only and never returned.
"""

import re
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, Field


USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _check_username(v: str) -> str:
    if not USERNAME_RE.match(v):
        raise ValueError("Username can only contain letters, numbers, and underscores")
    return v


def _normalize_email(v: str) -> str:
    v = v.strip().lower()
    if not EMAIL_RE.match(v):
        raise ValueError("Please provide a valid email")
    return v


Username = Annotated[str, Field(min_length=3, max_length=30), AfterValidator(_check_username)]
Email = Annotated[str, AfterValidator(_normalize_email)]
Country = Annotated[str, Field(min_length=1, max_length=60)]


class UserCreate(BaseModel):
    """Schema for registering a user."""

    model_config = {"str_strip_whitespace": True}

    username: Username = Field(..., examples=["kratos_fan"])
    email: Email = Field(..., examples=["player@example.com"])
    password: str = Field(..., min_length=6)
    country: Country = Field(..., examples=["Canada"])


class UserLogin(BaseModel):
    email: Email
    password: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    """Administrative update of another user's account.

    All fields are optional; only provided fields will be updated.
    """

    model_config = {"str_strip_whitespace": True}

    username: Optional[Username] = None
    email: Optional[Email] = None
    country: Optional[Country] = None
    role: Optional[str] = Field(None, pattern="^(user|admin)$")


class ProfileUpdate(BaseModel):
    """Self‑service profile update.  The role cannot be changed here."""

    model_config = {"str_strip_whitespace": True}

    username: Optional[Username] = None
    email: Optional[Email] = None
    country: Optional[Country] = None


class UserSummary(BaseModel):
    """Public subset of a user embedded in reviews and activity entries."""

    id: int
    username: str
    country: Optional[str] = None


class UserRead(BaseModel):
    """Schema for reading a user from the API."""

    id: int
    username: str
    email: str
    country: str
    role: str
    created_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead
