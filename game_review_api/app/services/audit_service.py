"""
Audit service for recording and querying user activity.

This module provides a centralized API for appending entries to the
``activity_logs`` table and retrieving them with filters.  Entries
record what a user did to a game (wishlist changes, played marks,
review submissions, updates and deletions) and are never updated.
The trail is informational only; no live state is derived from it.

``append`` writes through the caller's atomic unit so an entry is
committed or discarded together with the change it describes.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from game_review_api.app.core.db import AtomicUnit, get_connection
from game_review_api.app.core.errors import NotFoundError
from game_review_api.app.schemas.activity import ActionCount, ActivityAction, ActivityRead, ActivityStats
from game_review_api.app.schemas.game import GameSummary
from game_review_api.app.schemas.user import UserSummary


logger = logging.getLogger(__name__)

_SELECT_ACTIVITY = """
    SELECT a.id, a.user_id, a.game_id, a.action, a.timestamp, a.meta,
           u.username, u.country, g.title AS game_title, g.platform
    FROM activity_logs a
    JOIN users u ON u.id = a.user_id
    JOIN games g ON g.id = a.game_id
"""


def _row_to_activity(row) -> ActivityRead:
    try:
        meta = json.loads(row["meta"]) if row["meta"] else {}
    except json.JSONDecodeError:
        meta = {"raw": row["meta"]}
    return ActivityRead(
        id=row["id"],
        user_id=row["user_id"],
        game_id=row["game_id"],
        action=row["action"],
        timestamp=row["timestamp"],
        meta=meta,
        user=UserSummary(id=row["user_id"], username=row["username"], country=row["country"]),
        game=GameSummary(id=row["game_id"], title=row["game_title"], platform=row["platform"]),
    )


class AuditService:
    """Service class for writing and retrieving activity entries."""

    @classmethod
    def append(
        cls,
        unit: AtomicUnit,
        user_id: int,
        game_id: int,
        action: ActivityAction,
        meta: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Append one entry within ``unit`` and return its id.

        Parameters
        ----------
        unit : AtomicUnit
            The caller's open unit; the entry is committed with it.
        user_id : int
            The user performing the action.
        game_id : int
            The game the action applies to.
        action : ActivityAction
            One of the closed set of actions.
        meta : Optional[dict]
            Action specific details, stored as JSON without validation.
        """
        unit.execute(
            "INSERT INTO activity_logs (user_id, game_id, action, meta) VALUES (?, ?, ?, ?)",
            (user_id, game_id, ActivityAction(action).value, json.dumps(meta or {}, default=str)),
        )
        return unit.lastrowid

    @classmethod
    async def list_activities(
        cls,
        user_id: Optional[int] = None,
        game_id: Optional[int] = None,
        action: Optional[ActivityAction] = None,
        limit: int = 50,
    ) -> List[ActivityRead]:
        """Retrieve entries, newest first, optionally filtered by user, game and action."""
        where_clauses: List[str] = []
        params: List[Any] = []
        if user_id is not None:
            where_clauses.append("a.user_id = ?")
            params.append(user_id)
        if game_id is not None:
            where_clauses.append("a.game_id = ?")
            params.append(game_id)
        if action is not None:
            where_clauses.append("a.action = ?")
            params.append(ActivityAction(action).value)
        query = _SELECT_ACTIVITY
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY a.timestamp DESC, a.id DESC LIMIT ?"
        params.append(limit)
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
            return [_row_to_activity(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def user_stats(cls, user_id: int) -> ActivityStats:
        """Return the total, per‑action breakdown and latest entry for a user."""
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT action, COUNT(*) AS count FROM activity_logs
                WHERE user_id = ? GROUP BY action ORDER BY count DESC, action
                """,
                (user_id,),
            ).fetchall()
            recent = conn.execute(
                _SELECT_ACTIVITY + " WHERE a.user_id = ? ORDER BY a.timestamp DESC, a.id DESC LIMIT 1",
                (user_id,),
            ).fetchone()
        finally:
            conn.close()
        breakdown = [ActionCount(action=row["action"], count=row["count"]) for row in rows]
        return ActivityStats(
            total_activities=sum(item.count for item in breakdown),
            breakdown=breakdown,
            recent_activity=_row_to_activity(recent) if recent else None,
        )

    @classmethod
    async def delete_activity(cls, activity_id: int) -> None:
        """Administrative removal of one entry.  Has no effect on any other data."""
        conn = get_connection()
        try:
            cursor = conn.execute("DELETE FROM activity_logs WHERE id = ?", (activity_id,))
            if cursor.rowcount == 0:
                raise NotFoundError("Activity log not found")
            conn.commit()
            logger.info("Activity log %s deleted", activity_id)
        finally:
            conn.close()
