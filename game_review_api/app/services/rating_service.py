"""
Derived rating statistics for games.

``games.avg_rating`` and ``games.total_reviews`` are denormalised
copies of what the ``reviews`` table says about a game.  They are
recomputed from scratch inside the atomic unit of every review
mutation instead of being adjusted incrementally, so a recompute
always repairs any earlier drift and running it twice gives the same
result.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Tuple

from game_review_api.app.core.db import AtomicUnit
from game_review_api.app.core.errors import NotFoundError


logger = logging.getLogger(__name__)


def average_rating(rating_sum: int, count: int) -> float:
    """Mean rating rounded half‑up to one decimal, ``0.0`` when there are no reviews."""
    if count == 0:
        return 0.0
    mean = Decimal(rating_sum) / Decimal(count)
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class RatingService:
    """Recomputes game aggregates from the current set of reviews."""

    @classmethod
    def recalculate(cls, unit: AtomicUnit, game_id: int) -> Tuple[float, int]:
        """Recompute and store the aggregate of ``game_id`` within ``unit``.

        Reads the reviews as staged in the unit, so the result reflects
        the mutation being committed.  Returns ``(avg_rating, total_reviews)``.
        Raises ``NotFoundError`` when the game does not exist, which aborts
        the enclosing unit.
        """
        row = unit.fetchone(
            "SELECT COUNT(*) AS total, COALESCE(SUM(rating), 0) AS rating_sum FROM reviews WHERE game_id = ?",
            (game_id,),
        )
        total = row["total"]
        avg = average_rating(row["rating_sum"], total)
        cursor = unit.execute(
            "UPDATE games SET avg_rating = ?, total_reviews = ? WHERE id = ?",
            (avg, total, game_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError("Game not found")
        logger.debug("Game %s aggregate set to %.1f over %s reviews", game_id, avg, total)
        return avg, total

    @classmethod
    def recalculate_many(cls, unit: AtomicUnit, game_ids: Iterable[int]) -> None:
        """Recompute every game in ``game_ids``; games that no longer exist are skipped."""
        for game_id in sorted(set(game_ids)):
            try:
                cls.recalculate(unit, game_id)
            except NotFoundError:
                logger.info("Skipping aggregate of deleted game %s", game_id)
