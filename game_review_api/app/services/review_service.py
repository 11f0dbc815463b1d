"""
Business logic for reviews.

Creating, updating or deleting a review changes three things: the
review row itself, the activity trail and the rating aggregate of the
reviewed game.  Each mutation performs all three inside a single
atomic unit (see ``core.db.run_in_unit``): the review write is staged
first, the activity entry is appended, and the aggregate is recomputed
from the reviews as they stand after the write.  If any step fails the
unit is discarded and none of the writes become visible.

Preconditions that do not need the write lock (the game exists, the
caller owns the review, the caller has not reviewed the game yet) are
checked before the unit is opened so rejected requests have no side
effects and never wait for other writers.  The ones that could be
invalidated by a concurrent request are checked again inside the unit.
"""

import logging
import sqlite3
from typing import Dict, List, Optional

from game_review_api.app.core.db import (
    NOW_SQL,
    AtomicUnit,
    get_connection,
    is_unique_violation,
    run_in_unit,
    translate_error,
)
from game_review_api.app.core.errors import ConflictError, ForbiddenError, NotFoundError
from game_review_api.app.core.permissions import has_permission
from game_review_api.app.schemas.activity import ActivityAction
from game_review_api.app.schemas.game import GameSummary
from game_review_api.app.schemas.review import ReviewCreate, ReviewRead, ReviewUpdate
from game_review_api.app.schemas.user import UserSummary
from game_review_api.app.services.audit_service import AuditService
from game_review_api.app.services.rating_service import RatingService


logger = logging.getLogger(__name__)

DUPLICATE_REVIEW_MESSAGE = (
    "You have already reviewed this game. Please update your existing review instead."
)

_SELECT_REVIEW = """
    SELECT r.id, r.user_id, r.game_id, r.rating, r.title, r.body, r.created_at, r.updated_at,
           u.username, u.country, g.title AS game_title, g.platform, g.avg_rating
    FROM reviews r
    JOIN users u ON u.id = r.user_id
    JOIN games g ON g.id = r.game_id
"""

_SORT_OPTIONS = {
    "rating_high": "r.rating DESC, r.created_at DESC, r.id DESC",
    "rating_low": "r.rating ASC, r.created_at DESC, r.id DESC",
    "oldest": "r.created_at ASC, r.id ASC",
}
_DEFAULT_SORT = "r.created_at DESC, r.id DESC"


def _row_to_review(row) -> ReviewRead:
    return ReviewRead(
        id=row["id"],
        user_id=row["user_id"],
        game_id=row["game_id"],
        rating=row["rating"],
        title=row["title"],
        body=row["body"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        user=UserSummary(id=row["user_id"], username=row["username"], country=row["country"]),
        game=GameSummary(
            id=row["game_id"],
            title=row["game_title"],
            platform=row["platform"],
            avg_rating=row["avg_rating"],
        ),
    )


class ReviewService:
    """Service coordinating review mutations and their side effects."""

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def _fetch_review_row(review_id: int) -> Optional[sqlite3.Row]:
        conn = get_connection()
        try:
            return conn.execute(
                "SELECT id, user_id, game_id, rating FROM reviews WHERE id = ?",
                (review_id,),
            ).fetchone()
        finally:
            conn.close()

    @classmethod
    async def get_review(cls, review_id: int) -> ReviewRead:
        """Retrieve a single review with its author and game populated."""
        conn = get_connection()
        try:
            row = conn.execute(_SELECT_REVIEW + " WHERE r.id = ?", (review_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError("Review not found")
        return _row_to_review(row)

    @classmethod
    async def list_game_reviews(cls, game_id: int, sort: Optional[str] = None) -> List[ReviewRead]:
        """List the reviews of a game.

        ``sort`` may be ``rating_high``, ``rating_low`` or ``oldest``;
        anything else sorts newest first.  Raises ``NotFoundError`` if the
        game does not exist.
        """
        order_by = _SORT_OPTIONS.get(sort or "", _DEFAULT_SORT)
        conn = get_connection()
        try:
            if not conn.execute("SELECT id FROM games WHERE id = ?", (game_id,)).fetchone():
                raise NotFoundError("Game not found")
            rows = conn.execute(
                _SELECT_REVIEW + f" WHERE r.game_id = ? ORDER BY {order_by}",
                (game_id,),
            ).fetchall()
            return [_row_to_review(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def list_user_reviews(cls, user_id: int) -> List[ReviewRead]:
        """List the reviews written by a user, newest first."""
        conn = get_connection()
        try:
            rows = conn.execute(
                _SELECT_REVIEW + f" WHERE r.user_id = ? ORDER BY {_DEFAULT_SORT}",
                (user_id,),
            ).fetchall()
            return [_row_to_review(row) for row in rows]
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @classmethod
    async def create_review(cls, data: ReviewCreate, current_user: Dict) -> ReviewRead:
        """Create a review, log it and refresh the game's aggregate.

        Raises ``NotFoundError`` if the game or the author no longer exists and
        ``ConflictError`` if the user already reviewed it.
        """
        user_id = current_user["user_id"]
        game_id = data.game_id

        conn = get_connection()
        try:
            if not conn.execute("SELECT id FROM games WHERE id = ?", (game_id,)).fetchone():
                raise NotFoundError("Game not found")
            existing = conn.execute(
                "SELECT id FROM reviews WHERE user_id = ? AND game_id = ?",
                (user_id, game_id),
            ).fetchone()
        finally:
            conn.close()
        if existing:
            raise ConflictError(DUPLICATE_REVIEW_MESSAGE)

        def _create(unit: AtomicUnit) -> int:
            # The game may have been deleted since the precondition check.
            if not unit.fetchone("SELECT id FROM games WHERE id = ?", (game_id,)):
                raise NotFoundError("Game not found")
            # So may the author's account.
            if not unit.fetchone("SELECT id FROM users WHERE id = ?", (user_id,)):
                raise NotFoundError("User not found")
            try:
                unit.execute(
                    "INSERT INTO reviews (user_id, game_id, rating, title, body) VALUES (?, ?, ?, ?, ?)",
                    (user_id, game_id, data.rating, data.title, data.body),
                )
            except sqlite3.IntegrityError as exc:
                if not is_unique_violation(exc):
                    raise translate_error(exc) from exc
                # Lost the race against a concurrent create by the same user.
                raise ConflictError(DUPLICATE_REVIEW_MESSAGE) from exc
            review_id = unit.lastrowid
            AuditService.append(
                unit,
                user_id,
                game_id,
                ActivityAction.REVIEW_SUBMITTED,
                {"rating": data.rating, "review_id": review_id},
            )
            RatingService.recalculate(unit, game_id)
            return review_id

        review_id = await run_in_unit(_create)
        logger.info("User %s submitted review %s for game %s", user_id, review_id, game_id)
        return await cls.get_review(review_id)

    @classmethod
    async def update_review(cls, review_id: int, data: ReviewUpdate, current_user: Dict) -> ReviewRead:
        """Update the caller's own review, log it and refresh the aggregate.

        Raises ``NotFoundError`` if the review does not exist and
        ``ForbiddenError`` if it belongs to someone else.
        """
        user_id = current_user["user_id"]
        existing = cls._fetch_review_row(review_id)
        if not existing:
            raise NotFoundError("Review not found")
        if existing["user_id"] != user_id:
            raise ForbiddenError("You are not authorized to update this review")

        changes = data.model_dump(exclude_none=True)

        def _update(unit: AtomicUnit) -> None:
            row = unit.fetchone("SELECT game_id, rating FROM reviews WHERE id = ?", (review_id,))
            if not row:
                raise NotFoundError("Review not found")
            if changes:
                assignments = ", ".join(f"{field} = ?" for field in changes)
                unit.execute(
                    f"UPDATE reviews SET {assignments}, updated_at = {NOW_SQL} WHERE id = ?",
                    (*changes.values(), review_id),
                )
            AuditService.append(
                unit,
                user_id,
                row["game_id"],
                ActivityAction.REVIEW_UPDATED,
                {"rating": changes.get("rating", row["rating"]), "review_id": review_id},
            )
            RatingService.recalculate(unit, row["game_id"])

        await run_in_unit(_update)
        logger.info("User %s updated review %s", user_id, review_id)
        return await cls.get_review(review_id)

    @classmethod
    async def delete_review(cls, review_id: int, current_user: Dict) -> None:
        """Delete a review, log it and refresh the aggregate.

        Owners may delete their own reviews; callers whose role grants
        ``reviews:delete_any`` may delete any review.  Raises
        ``NotFoundError`` or ``ForbiddenError`` otherwise.
        """
        user_id = current_user["user_id"]
        existing = cls._fetch_review_row(review_id)
        if not existing:
            raise NotFoundError("Review not found")
        if existing["user_id"] != user_id and not has_permission(current_user.get("role"), "reviews:delete_any"):
            raise ForbiddenError("You are not authorized to delete this review")

        # Captured before the row disappears.
        game_id = existing["game_id"]

        def _delete(unit: AtomicUnit) -> None:
            cursor = unit.execute("DELETE FROM reviews WHERE id = ?", (review_id,))
            if cursor.rowcount == 0:
                raise NotFoundError("Review not found")
            AuditService.append(
                unit,
                user_id,
                game_id,
                ActivityAction.REVIEW_DELETED,
                {"review_id": review_id, "review_owner_id": existing["user_id"]},
            )
            RatingService.recalculate(unit, game_id)

        await run_in_unit(_delete)
        logger.info("User %s deleted review %s of game %s", user_id, review_id, game_id)
