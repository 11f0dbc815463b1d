import asyncio

import pytest

from game_review_api.app.core.errors import ConflictError, NotFoundError
from game_review_api.app.services.audit_service import AuditService
from game_review_api.app.services.game_list_service import GameListService
from game_review_api.app.services.game_service import GameService


def run(coro):
    return asyncio.run(coro)


def test_game_list_is_created_on_first_access(player):
    game_list = run(GameListService.get_game_list(player["user_id"]))
    assert game_list.user_id == player["user_id"]
    assert game_list.wishlist == [] and game_list.played == []
    assert run(GameListService.get_game_list(player["user_id"])).id == game_list.id


def test_wishlist_add_and_remove(player, game):
    uid = player["user_id"]
    game_list = run(GameListService.add_to_wishlist(uid, game))
    assert [entry.game_id for entry in game_list.wishlist] == [game]
    assert game_list.wishlist[0].game.genres == ["Platformer"]

    with pytest.raises(ConflictError):
        run(GameListService.add_to_wishlist(uid, game))

    game_list = run(GameListService.remove_from_wishlist(uid, game))
    assert game_list.wishlist == []
    with pytest.raises(NotFoundError):
        run(GameListService.remove_from_wishlist(uid, game))

    logged = [a.action.value for a in run(AuditService.list_activities(user_id=uid))]
    assert logged == ["removed_from_wishlist", "added_to_wishlist"]


def test_remove_without_a_list(player, game):
    with pytest.raises(NotFoundError) as excinfo:
        run(GameListService.remove_from_wishlist(player["user_id"], game))
    assert excinfo.value.message == "Game list not found"


def test_unknown_game_cannot_be_listed(player):
    with pytest.raises(NotFoundError):
        run(GameListService.add_to_wishlist(player["user_id"], 999))
    with pytest.raises(NotFoundError):
        run(GameListService.mark_as_played(player["user_id"], 999))


def test_marking_as_played_moves_game_off_wishlist(player, game):
    uid = player["user_id"]
    run(GameListService.add_to_wishlist(uid, game))
    game_list = run(GameListService.mark_as_played(uid, game, completion_hours=12))

    assert game_list.wishlist == []
    assert [(p.game_id, p.completion_hours) for p in game_list.played] == [(game, 12)]

    entry = run(AuditService.list_activities(user_id=uid, action="marked_as_played"))[0]
    assert entry.meta == {"completion_hours": 12, "from_wishlist": True}

    with pytest.raises(ConflictError):
        run(GameListService.mark_as_played(uid, game))
    with pytest.raises(ConflictError):
        run(GameListService.add_to_wishlist(uid, game))


def test_remove_from_played_is_not_logged(player, game):
    uid = player["user_id"]
    run(GameListService.mark_as_played(uid, game))
    game_list = run(GameListService.remove_from_played(uid, game))
    assert game_list.played == []
    with pytest.raises(NotFoundError):
        run(GameListService.remove_from_played(uid, game))

    logged = [a.action.value for a in run(AuditService.list_activities(user_id=uid))]
    assert logged == ["marked_as_played"]


def test_list_changes_leave_ratings_alone(player, game):
    run(GameListService.add_to_wishlist(player["user_id"], game))
    run(GameListService.mark_as_played(player["user_id"], game))
    found = run(GameService.get_game(game))
    assert (found.avg_rating, found.total_reviews) == (0.0, 0)


def test_lists_are_private_per_user(player, other_player, game):
    run(GameListService.add_to_wishlist(player["user_id"], game))
    assert run(GameListService.get_wishlist(other_player["user_id"])) == []
    run(GameListService.add_to_wishlist(other_player["user_id"], game))
    assert len(run(GameListService.get_wishlist(player["user_id"]))) == 1
