"""
Business logic for users.

Handles registration, authentication and account management.
Passwords are stored as PBKDF2 hashes (see ``core.security``).  New
accounts get the ``user`` role unless their e‑mail is listed in
``settings.admin_emails``.

Deleting a user cascades to their reviews, so the rating aggregate of
every game they reviewed is recomputed in the same atomic unit.
"""

import logging
import sqlite3
from typing import Dict, List, Optional

from game_review_api.app.core.config import settings
from game_review_api.app.core.db import AtomicUnit, get_connection, is_unique_violation, run_in_unit, translate_error
from game_review_api.app.core.errors import ConflictError, NotFoundError
from game_review_api.app.core.permissions import ROLES
from game_review_api.app.core.security import hash_password, verify_password
from game_review_api.app.schemas.user import ProfileUpdate, UserCreate, UserRead, UserUpdate
from game_review_api.app.services.rating_service import RatingService


logger = logging.getLogger(__name__)

DUPLICATE_USER_MESSAGE = "User with this email or username already exists"

_USER_COLUMNS = "id, username, email, country, role, created_at"


def _row_to_user(row) -> UserRead:
    return UserRead(
        id=row["id"],
        username=row["username"],
        email=row["email"],
        country=row["country"],
        role=row["role"],
        created_at=row["created_at"],
    )


class UserService:
    """Service for working with user accounts."""

    @classmethod
    async def create_user(cls, data: UserCreate) -> UserRead:
        """Register a new user and return it.

        Raises ``ConflictError`` if the e‑mail or username is taken.
        """
        role = ROLES.ADMIN if data.email in settings.admin_email_set() else ROLES.USER
        conn = get_connection()
        try:
            try:
                cursor = conn.execute(
                    "INSERT INTO users (username, email, password, country, role) VALUES (?, ?, ?, ?, ?)",
                    (data.username, data.email, hash_password(data.password), data.country, role),
                )
            except sqlite3.IntegrityError as exc:
                if not is_unique_violation(exc):
                    raise translate_error(exc) from exc
                raise ConflictError(DUPLICATE_USER_MESSAGE) from exc
            user_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        logger.info("Registered user %s (%s) with role %s", user_id, data.username, role)
        return await cls.get_user(user_id)

    @classmethod
    async def authenticate(cls, email: str, password: str) -> Optional[UserRead]:
        """Return the user if the credentials match, otherwise ``None``."""
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {_USER_COLUMNS}, password FROM users WHERE email = ?",
                (email,),
            ).fetchone()
        finally:
            conn.close()
        if not row or not verify_password(password, row["password"]):
            return None
        return _row_to_user(row)

    @classmethod
    async def get_user(cls, user_id: int) -> UserRead:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError("User not found")
        return _row_to_user(row)

    @classmethod
    async def list_users(cls) -> List[UserRead]:
        conn = get_connection()
        try:
            rows = conn.execute(f"SELECT {_USER_COLUMNS} FROM users ORDER BY id").fetchall()
            return [_row_to_user(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def _apply_updates(cls, user_id: int, updates: Dict) -> UserRead:
        conn = get_connection()
        try:
            if not conn.execute("SELECT id FROM users WHERE id = ?", (user_id,)).fetchone():
                raise NotFoundError("User not found")
            if updates:
                assignments = ", ".join(f"{field} = ?" for field in updates)
                try:
                    conn.execute(
                        f"UPDATE users SET {assignments}, "
                        "updated_at = strftime('%Y-%m-%d %H:%M:%f', 'now') WHERE id = ?",
                        (*updates.values(), user_id),
                    )
                except sqlite3.IntegrityError as exc:
                    if not is_unique_violation(exc):
                        raise translate_error(exc) from exc
                    raise ConflictError(DUPLICATE_USER_MESSAGE) from exc
                conn.commit()
                logger.info("User %s updated: %s", user_id, ", ".join(updates))
        finally:
            conn.close()
        return await cls.get_user(user_id)

    @classmethod
    async def update_user(cls, user_id: int, data: UserUpdate) -> UserRead:
        """Administrative update; may change the role."""
        return await cls._apply_updates(user_id, data.model_dump(exclude_none=True))

    @classmethod
    async def update_profile(cls, user_id: int, data: ProfileUpdate) -> UserRead:
        """Update the caller's own username, e‑mail or country."""
        return await cls._apply_updates(user_id, data.model_dump(exclude_none=True))

    @classmethod
    async def delete_user(cls, user_id: int) -> None:
        """Delete a user together with their reviews, lists and activity.

        The aggregates of the games the user reviewed are recomputed in
        the same unit so they never count a review that no longer exists.
        """

        def _delete(unit: AtomicUnit) -> List[int]:
            game_ids = [
                row["game_id"]
                for row in unit.fetchall("SELECT DISTINCT game_id FROM reviews WHERE user_id = ?", (user_id,))
            ]
            cursor = unit.execute("DELETE FROM users WHERE id = ?", (user_id,))
            if cursor.rowcount == 0:
                raise NotFoundError("User not found")
            RatingService.recalculate_many(unit, game_ids)
            return game_ids

        game_ids = await run_in_unit(_delete)
        logger.info("User %s deleted; recomputed ratings of %s games", user_id, len(game_ids))
