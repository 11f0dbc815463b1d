"""
Business logic for the game catalogue.

Games are created and edited by administrators and read by everyone.
The rating aggregate (``avg_rating``/``total_reviews``) is owned by
``RatingService``; nothing in this module writes it except the
zero values a new game starts with.  Deleting a game cascades to its
reviews, list entries and activity entries through foreign keys.
"""

import json
import logging
import sqlite3
from typing import Any, List, Optional

from game_review_api.app.core.db import get_connection, is_unique_violation, translate_error
from game_review_api.app.core.errors import ConflictError, InvalidInputError, NotFoundError
from game_review_api.app.schemas.game import GameCreate, GameRead, GameUpdate, Platform


logger = logging.getLogger(__name__)

DUPLICATE_GAME_MESSAGE = "Game with this title and platform already exists"

_GAME_COLUMNS = "id, title, platform, genres, release_date, publisher, avg_rating, total_reviews"

_SORT_OPTIONS = {
    "rating": "avg_rating DESC, total_reviews DESC, title ASC",
    "newest": "release_date DESC, title ASC",
    "oldest": "release_date ASC, title ASC",
}
_DEFAULT_SORT = "title COLLATE NOCASE ASC"


def row_to_game(row) -> GameRead:
    return GameRead(
        id=row["id"],
        title=row["title"],
        platform=row["platform"],
        genres=json.loads(row["genres"]),
        release_date=row["release_date"],
        publisher=row["publisher"],
        avg_rating=row["avg_rating"],
        total_reviews=row["total_reviews"],
    )


def parse_platform(value: str) -> Platform:
    try:
        return Platform(value.strip().upper())
    except ValueError:
        raise InvalidInputError("Invalid platform. Must be PS4 or PS5") from None


class GameService:
    """Service for reading and administering games."""

    @classmethod
    async def list_games(
        cls,
        platform: Optional[str] = None,
        genre: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> List[GameRead]:
        """List games filtered by platform and genre.

        ``sort`` may be ``rating``, ``newest`` or ``oldest``; by default
        games are ordered alphabetically.  The genre filter matches any
        genre of the game, case insensitive.
        """
        query = f"SELECT {_GAME_COLUMNS} FROM games"
        params: List[Any] = []
        if platform:
            query += " WHERE platform = ?"
            params.append(parse_platform(platform).value)
        query += f" ORDER BY {_SORT_OPTIONS.get(sort or '', _DEFAULT_SORT)}"
        conn = get_connection()
        try:
            games = [row_to_game(row) for row in conn.execute(query, tuple(params)).fetchall()]
        finally:
            conn.close()
        if genre:
            wanted = genre.strip().lower()
            games = [g for g in games if wanted in (x.lower() for x in g.genres)]
        return games

    @classmethod
    async def get_game(cls, game_id: int) -> GameRead:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {_GAME_COLUMNS} FROM games WHERE id = ?", (game_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError("Game not found")
        return row_to_game(row)

    @classmethod
    async def search_games(cls, q: Optional[str]) -> List[GameRead]:
        """Search titles for the words of ``q``.

        Titles matching more words rank higher; an exact title match
        ranks first.  Raises ``InvalidInputError`` for an empty query.
        """
        terms = [t for t in (q or "").lower().split() if t]
        if not terms:
            raise InvalidInputError("Search query is required")
        where = " OR ".join("lower(title) LIKE ? ESCAPE '\\'" for _ in terms)
        params = [
            "%" + t.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
            for t in terms
        ]
        conn = get_connection()
        try:
            rows = conn.execute(f"SELECT {_GAME_COLUMNS} FROM games WHERE {where}", tuple(params)).fetchall()
        finally:
            conn.close()
        phrase = " ".join(terms)

        def score(game: GameRead) -> tuple:
            title = game.title.lower()
            matched = sum(1 for t in terms if t in title)
            return (title != phrase, -matched, title)

        return sorted((row_to_game(row) for row in rows), key=score)

    @classmethod
    async def top_rated(cls, limit: int = 10) -> List[GameRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT {_GAME_COLUMNS} FROM games "
                "ORDER BY avg_rating DESC, total_reviews DESC, title ASC LIMIT ?",
                (limit,),
            ).fetchall()
            return [row_to_game(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def games_by_platform(cls, platform: str) -> List[GameRead]:
        """Games of one platform, best rated first."""
        value = parse_platform(platform).value
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT {_GAME_COLUMNS} FROM games WHERE platform = ? "
                "ORDER BY avg_rating DESC, total_reviews DESC, title ASC",
                (value,),
            ).fetchall()
            return [row_to_game(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def create_game(cls, data: GameCreate) -> GameRead:
        """Add a game with an empty rating aggregate.

        Raises ``ConflictError`` when a game with the same title already
        exists on the same platform.
        """
        conn = get_connection()
        try:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO games (title, platform, genres, release_date, publisher, avg_rating, total_reviews)
                    VALUES (?, ?, ?, ?, ?, 0, 0)
                    """,
                    (
                        data.title,
                        data.platform.value,
                        json.dumps(data.genres),
                        data.release_date.isoformat(),
                        data.publisher,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                if not is_unique_violation(exc):
                    raise translate_error(exc) from exc
                raise ConflictError(DUPLICATE_GAME_MESSAGE) from exc
            game_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        logger.info("Game %s created: %s (%s)", game_id, data.title, data.platform.value)
        return await cls.get_game(game_id)

    @classmethod
    async def update_game(cls, game_id: int, data: GameUpdate) -> GameRead:
        """Update catalogue fields of a game.  The rating aggregate is never touched."""
        updates = data.model_dump(exclude_none=True)
        if "platform" in updates:
            updates["platform"] = updates["platform"].value
        if "genres" in updates:
            updates["genres"] = json.dumps(updates["genres"])
        if "release_date" in updates:
            updates["release_date"] = updates["release_date"].isoformat()
        conn = get_connection()
        try:
            if not conn.execute("SELECT id FROM games WHERE id = ?", (game_id,)).fetchone():
                raise NotFoundError("Game not found")
            if updates:
                assignments = ", ".join(f"{field} = ?" for field in updates)
                try:
                    conn.execute(
                        f"UPDATE games SET {assignments} WHERE id = ?",
                        (*updates.values(), game_id),
                    )
                except sqlite3.IntegrityError as exc:
                    if not is_unique_violation(exc):
                        raise translate_error(exc) from exc
                    raise ConflictError(DUPLICATE_GAME_MESSAGE) from exc
                conn.commit()
                logger.info("Game %s updated: %s", game_id, ", ".join(updates))
        finally:
            conn.close()
        return await cls.get_game(game_id)

    @classmethod
    async def delete_game(cls, game_id: int) -> None:
        conn = get_connection()
        try:
            cursor = conn.execute("DELETE FROM games WHERE id = ?", (game_id,))
            if cursor.rowcount == 0:
                raise NotFoundError("Game not found")
            conn.commit()
            logger.info("Game %s deleted", game_id)
        finally:
            conn.close()
