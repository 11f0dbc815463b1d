import asyncio

import pytest

from game_review_api.app.core.db import run_in_unit
from game_review_api.app.core.errors import NotFoundError
from game_review_api.app.schemas.review import ReviewCreate
from game_review_api.app.services.rating_service import RatingService, average_rating
from game_review_api.app.services.review_service import ReviewService


@pytest.mark.parametrize(
    "rating_sum, count, expected",
    [
        (0, 0, 0.0),
        (5, 1, 5.0),
        (8, 2, 4.0),
        (10, 3, 3.3),
        (17, 4, 4.3),
        (11, 3, 3.7),
        (5, 2, 2.5),
    ],
)
def test_average_rating_rounds_half_up(rating_sum, count, expected):
    assert average_rating(rating_sum, count) == expected


def _review(game_id, rating):
    return ReviewCreate(game_id=game_id, rating=rating, title="Solid game", body="Played it through twice.")


def test_recalculate_repairs_drift_and_is_idempotent(player, other_player, game, fetch):
    asyncio.run(ReviewService.create_review(_review(game, 4), player))
    asyncio.run(ReviewService.create_review(_review(game, 3), other_player))

    # Corrupt the stored aggregate behind the service's back.
    asyncio.run(run_in_unit(lambda unit: unit.execute(
        "UPDATE games SET avg_rating = 1.0, total_reviews = 9 WHERE id = ?", (game,)
    )))

    first = asyncio.run(run_in_unit(lambda unit: RatingService.recalculate(unit, game)))
    second = asyncio.run(run_in_unit(lambda unit: RatingService.recalculate(unit, game)))

    assert first == second == (3.5, 2)
    row = fetch("SELECT avg_rating, total_reviews FROM games WHERE id = ?", (game,))[0]
    assert (row["avg_rating"], row["total_reviews"]) == (3.5, 2)


def test_recalculate_unknown_game_raises():
    with pytest.raises(NotFoundError):
        asyncio.run(run_in_unit(lambda unit: RatingService.recalculate(unit, 999)))


def test_recalculate_many_skips_missing_games(player, game, fetch):
    asyncio.run(ReviewService.create_review(_review(game, 2), player))
    asyncio.run(run_in_unit(lambda unit: RatingService.recalculate_many(unit, [game, 999, game])))
    row = fetch("SELECT avg_rating, total_reviews FROM games WHERE id = ?", (game,))[0]
    assert (row["avg_rating"], row["total_reviews"]) == (2.0, 1)
