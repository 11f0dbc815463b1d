"""
Business logic for a user's wishlist and played list.

Each user owns one ``game_lists`` row, created lazily on first use,
with two ordered collections: ``wishlist_entries`` and
``played_entries``.  A game is in at most one of them; marking a
wishlisted game as played moves it.  Every change and its activity
entry are written in one atomic unit.  List changes never affect game
rating aggregates.
"""

import json
import logging
from typing import List, Optional

from game_review_api.app.core.db import AtomicUnit, get_connection, run_in_unit
from game_review_api.app.core.errors import ConflictError, NotFoundError
from game_review_api.app.schemas.activity import ActivityAction
from game_review_api.app.schemas.game import GameSummary
from game_review_api.app.schemas.game_list import GameListRead, PlayedEntry, WishlistEntry
from game_review_api.app.services.audit_service import AuditService


logger = logging.getLogger(__name__)


def _summary(row) -> GameSummary:
    return GameSummary(
        id=row["game_id"],
        title=row["title"],
        platform=row["platform"],
        genres=json.loads(row["genres"]),
        avg_rating=row["avg_rating"],
    )


class GameListService:
    """Service for the wishlist / played collections of a user."""

    @staticmethod
    def _find_list_id(unit: AtomicUnit, user_id: int) -> Optional[int]:
        row = unit.fetchone("SELECT id FROM game_lists WHERE user_id = ?", (user_id,))
        return row["id"] if row else None

    @classmethod
    def _ensure_list(cls, unit: AtomicUnit, user_id: int) -> int:
        list_id = cls._find_list_id(unit, user_id)
        if list_id is None:
            unit.execute("INSERT INTO game_lists (user_id) VALUES (?)", (user_id,))
            list_id = unit.lastrowid
            logger.info("Created game list %s for user %s", list_id, user_id)
        return list_id

    @staticmethod
    def _require_game(game_id: int) -> None:
        conn = get_connection()
        try:
            found = conn.execute("SELECT id FROM games WHERE id = ?", (game_id,)).fetchone()
        finally:
            conn.close()
        if not found:
            raise NotFoundError("Game not found")

    @staticmethod
    def _contains(unit: AtomicUnit, table: str, list_id: int, game_id: int) -> bool:
        return unit.fetchone(
            f"SELECT id FROM {table} WHERE list_id = ? AND game_id = ?",
            (list_id, game_id),
        ) is not None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @classmethod
    async def get_wishlist(cls, user_id: int) -> List[WishlistEntry]:
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT w.game_id, w.added_at, g.title, g.platform, g.genres, g.avg_rating
                FROM wishlist_entries w
                JOIN game_lists l ON l.id = w.list_id
                JOIN games g ON g.id = w.game_id
                WHERE l.user_id = ?
                ORDER BY w.id
                """,
                (user_id,),
            ).fetchall()
        finally:
            conn.close()
        return [WishlistEntry(game_id=r["game_id"], added_at=r["added_at"], game=_summary(r)) for r in rows]

    @classmethod
    async def get_played(cls, user_id: int) -> List[PlayedEntry]:
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT p.game_id, p.completed_at, p.completion_hours,
                       g.title, g.platform, g.genres, g.avg_rating
                FROM played_entries p
                JOIN game_lists l ON l.id = p.list_id
                JOIN games g ON g.id = p.game_id
                WHERE l.user_id = ?
                ORDER BY p.id
                """,
                (user_id,),
            ).fetchall()
        finally:
            conn.close()
        return [
            PlayedEntry(
                game_id=r["game_id"],
                completed_at=r["completed_at"],
                completion_hours=r["completion_hours"],
                game=_summary(r),
            )
            for r in rows
        ]

    @classmethod
    async def get_game_list(cls, user_id: int) -> GameListRead:
        """Return the user's list, creating an empty one on first access."""
        list_id = await run_in_unit(lambda unit: cls._ensure_list(unit, user_id))
        return GameListRead(
            id=list_id,
            user_id=user_id,
            wishlist=await cls.get_wishlist(user_id),
            played=await cls.get_played(user_id),
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @classmethod
    async def add_to_wishlist(cls, user_id: int, game_id: int) -> GameListRead:
        """Add a game to the wishlist.

        Raises ``NotFoundError`` for an unknown game and ``ConflictError``
        if the game is already wishlisted or already played.
        """
        cls._require_game(game_id)

        def _add(unit: AtomicUnit) -> None:
            list_id = cls._ensure_list(unit, user_id)
            if cls._contains(unit, "wishlist_entries", list_id, game_id):
                raise ConflictError("Game is already in your wishlist")
            if cls._contains(unit, "played_entries", list_id, game_id):
                raise ConflictError("Game is already in your played list. Cannot add to wishlist.")
            unit.execute(
                "INSERT INTO wishlist_entries (list_id, game_id) VALUES (?, ?)",
                (list_id, game_id),
            )
            AuditService.append(unit, user_id, game_id, ActivityAction.ADDED_TO_WISHLIST, {"source": "web"})

        await run_in_unit(_add)
        logger.info("User %s added game %s to wishlist", user_id, game_id)
        return await cls.get_game_list(user_id)

    @classmethod
    async def remove_from_wishlist(cls, user_id: int, game_id: int) -> GameListRead:
        def _remove(unit: AtomicUnit) -> None:
            list_id = cls._find_list_id(unit, user_id)
            if list_id is None:
                raise NotFoundError("Game list not found")
            cursor = unit.execute(
                "DELETE FROM wishlist_entries WHERE list_id = ? AND game_id = ?",
                (list_id, game_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Game not found in wishlist")
            AuditService.append(unit, user_id, game_id, ActivityAction.REMOVED_FROM_WISHLIST, {})

        await run_in_unit(_remove)
        logger.info("User %s removed game %s from wishlist", user_id, game_id)
        return await cls.get_game_list(user_id)

    @classmethod
    async def mark_as_played(
        cls,
        user_id: int,
        game_id: int,
        completion_hours: Optional[int] = None,
    ) -> GameListRead:
        """Move a game to the played list, taking it off the wishlist if present.

        Raises ``NotFoundError`` for an unknown game and ``ConflictError``
        if the game is already in the played list.
        """
        cls._require_game(game_id)

        def _mark(unit: AtomicUnit) -> None:
            list_id = cls._ensure_list(unit, user_id)
            if cls._contains(unit, "played_entries", list_id, game_id):
                raise ConflictError("Game is already in your played list")
            moved = unit.execute(
                "DELETE FROM wishlist_entries WHERE list_id = ? AND game_id = ?",
                (list_id, game_id),
            ).rowcount
            unit.execute(
                "INSERT INTO played_entries (list_id, game_id, completion_hours) VALUES (?, ?, ?)",
                (list_id, game_id, completion_hours),
            )
            AuditService.append(
                unit,
                user_id,
                game_id,
                ActivityAction.MARKED_AS_PLAYED,
                {"completion_hours": completion_hours, "from_wishlist": bool(moved)},
            )

        await run_in_unit(_mark)
        logger.info("User %s marked game %s as played", user_id, game_id)
        return await cls.get_game_list(user_id)

    @classmethod
    async def remove_from_played(cls, user_id: int, game_id: int) -> GameListRead:
        """Remove a game from the played list.  No activity entry is written for this."""
        def _remove(unit: AtomicUnit) -> None:
            list_id = cls._find_list_id(unit, user_id)
            if list_id is None:
                raise NotFoundError("Game list not found")
            cursor = unit.execute(
                "DELETE FROM played_entries WHERE list_id = ? AND game_id = ?",
                (list_id, game_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Game not found in played list")

        await run_in_unit(_remove)
        logger.info("User %s removed game %s from played list", user_id, game_id)
        return await cls.get_game_list(user_id)
