import asyncio

import pytest

from game_review_api.app.core.errors import ConflictError, NotFoundError
from game_review_api.app.schemas.review import ReviewCreate
from game_review_api.app.schemas.user import ProfileUpdate, UserCreate, UserUpdate
from game_review_api.app.services.game_service import GameService
from game_review_api.app.services.review_service import ReviewService
from game_review_api.app.services.user_service import UserService

PASSWORD = "secret123"


def run(coro):
    return asyncio.run(coro)


def test_roles_on_registration(player, admin):
    assert player["role"] == "user"
    assert admin["role"] == "admin"


def test_duplicate_registration(player):
    with pytest.raises(ConflictError):
        run(UserService.create_user(UserCreate(
            username="someone_else", email="PLAYER_ONE@example.com", password=PASSWORD, country="Peru"
        )))


def test_authenticate(player):
    assert run(UserService.authenticate("player_one@example.com", PASSWORD)).id == player["user_id"]
    assert run(UserService.authenticate("player_one@example.com", "wrong-password")) is None
    assert run(UserService.authenticate("nobody@example.com", PASSWORD)) is None


def test_profile_and_admin_updates(player, other_player):
    updated = run(UserService.update_profile(player["user_id"], ProfileUpdate(country="Brazil")))
    assert updated.country == "Brazil"

    promoted = run(UserService.update_user(player["user_id"], UserUpdate(role="admin")))
    assert promoted.role == "admin"

    with pytest.raises(ConflictError):
        run(UserService.update_profile(player["user_id"], ProfileUpdate(username="player_two")))
    with pytest.raises(NotFoundError):
        run(UserService.update_user(999, UserUpdate(country="Chile")))


def test_deleting_a_user_recomputes_their_games(player, other_player, make_game):
    first = make_game(title="Returnal")
    second = make_game(title="Returnal", platform="PS4")
    for game_id, rating in ((first, 5), (second, 1)):
        run(ReviewService.create_review(
            ReviewCreate(game_id=game_id, rating=rating, title="My take", body="Long enough review body."),
            player,
        ))
    run(ReviewService.create_review(
        ReviewCreate(game_id=first, rating=2, title="Hmm", body="Not for me, sadly."),
        other_player,
    ))

    run(UserService.delete_user(player["user_id"]))

    assert [(g.avg_rating, g.total_reviews) for g in (
        run(GameService.get_game(first)),
        run(GameService.get_game(second)),
    )] == [(2.0, 1), (0.0, 0)]
    with pytest.raises(NotFoundError):
        run(UserService.get_user(player["user_id"]))
    with pytest.raises(NotFoundError):
        run(UserService.delete_user(player["user_id"]))
