import asyncio
from datetime import date

import pytest

from game_review_api.app.core.errors import ConflictError, InvalidInputError, NotFoundError
from game_review_api.app.schemas.game import GameCreate, GameUpdate
from game_review_api.app.schemas.review import ReviewCreate
from game_review_api.app.services.game_service import GameService
from game_review_api.app.services.review_service import ReviewService


def run(coro):
    return asyncio.run(coro)


def test_same_title_on_each_platform(make_game):
    make_game(title="Horizon Forbidden West", platform="PS4")
    make_game(title="Horizon Forbidden West", platform="PS5")
    with pytest.raises(ConflictError):
        make_game(title="Horizon Forbidden West", platform="PS5")


def test_filters_and_sorting(make_game):
    make_game(title="Bloodborne", platform="PS4", genres=["Action", "RPG"])
    make_game(title="Astro Bot", platform="PS5", genres=["Platformer"])
    make_game(title="Demon's Souls", platform="PS5", genres=["rpg"])

    assert [g.title for g in run(GameService.list_games())] == ["Astro Bot", "Bloodborne", "Demon's Souls"]
    assert [g.title for g in run(GameService.list_games(platform="ps5"))] == ["Astro Bot", "Demon's Souls"]
    assert [g.title for g in run(GameService.list_games(genre="RPG"))] == ["Bloodborne", "Demon's Souls"]
    with pytest.raises(InvalidInputError):
        run(GameService.list_games(platform="Switch"))


def test_search_ranks_exact_title_first(make_game):
    make_game(title="God of War Ragnarok")
    make_game(title="God of War")
    make_game(title="Ghost of Tsushima")

    assert [g.title for g in run(GameService.search_games("god of war"))] == [
        "God of War",
        "God of War Ragnarok",
        "Ghost of Tsushima",
    ]
    assert run(GameService.search_games("100%")) == []
    with pytest.raises(InvalidInputError):
        run(GameService.search_games("   "))


def test_top_rated_and_platform_listing(player, make_game):
    low = make_game(title="Knack", platform="PS4")
    high = make_game(title="Astro Bot", platform="PS5")
    make_game(title="Unrated", platform="PS5")
    for game_id, rating in ((low, 2), (high, 5)):
        run(ReviewService.create_review(
            ReviewCreate(game_id=game_id, rating=rating, title="Verdict", body="Here is what I think."),
            player,
        ))

    assert [g.title for g in run(GameService.top_rated(2))] == ["Astro Bot", "Knack"]
    assert [g.title for g in run(GameService.games_by_platform("PS5"))] == ["Astro Bot", "Unrated"]


def test_update_keeps_aggregate(player, game):
    run(ReviewService.create_review(
        ReviewCreate(game_id=game, rating=4, title="Verdict", body="Here is what I think."), player
    ))
    updated = run(GameService.update_game(game, GameUpdate(publisher="Team Asobi", genres=["Action", " "])))
    assert updated.publisher == "Team Asobi"
    assert updated.genres == ["Action"]
    assert (updated.avg_rating, updated.total_reviews) == (4.0, 1)


def test_missing_game():
    with pytest.raises(NotFoundError):
        run(GameService.get_game(42))
    with pytest.raises(NotFoundError):
        run(GameService.update_game(42, GameUpdate(publisher="x")))
    with pytest.raises(NotFoundError):
        run(GameService.delete_game(42))


def test_genres_are_required():
    with pytest.raises(ValueError):
        GameCreate(
            title="Empty", platform="PS5", genres=["  "],
            release_date=date(2020, 1, 1), publisher="Nobody",
        )
