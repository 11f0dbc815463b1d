import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest

from game_review_api.app.core.config import settings
from game_review_api.app.core.errors import ConflictError, ForbiddenError, NotFoundError
from game_review_api.app.schemas.review import ReviewCreate, ReviewUpdate
from game_review_api.app.services.audit_service import AuditService
from game_review_api.app.services.game_service import GameService
from game_review_api.app.services.rating_service import RatingService, average_rating
from game_review_api.app.services.review_service import DUPLICATE_REVIEW_MESSAGE, ReviewService
from game_review_api.app.services.user_service import UserService


def run(coro):
    return asyncio.run(coro)


def new_review(game_id, rating, title="Great game", body="Loved every minute of it."):
    return ReviewCreate(game_id=game_id, rating=rating, title=title, body=body)


def aggregate(game_id):
    game = run(GameService.get_game(game_id))
    return game.avg_rating, game.total_reviews


def actions(fetch, game_id):
    rows = fetch("SELECT action FROM activity_logs WHERE game_id = ? ORDER BY id", (game_id,))
    return [row["action"] for row in rows]


def test_aggregate_follows_every_review_mutation(player, other_player, game, fetch):
    first = run(ReviewService.create_review(new_review(game, 5), player))
    assert aggregate(game) == (5.0, 1)

    second = run(ReviewService.create_review(new_review(game, 3), other_player))
    assert aggregate(game) == (4.0, 2)

    updated = run(ReviewService.update_review(first.id, ReviewUpdate(rating=1), player))
    assert updated.rating == 1
    assert updated.updated_at is not None
    assert aggregate(game) == (2.0, 2)

    run(ReviewService.delete_review(first.id, player))
    assert aggregate(game) == (3.0, 1)
    run(ReviewService.delete_review(second.id, other_player))
    assert aggregate(game) == (0.0, 0)

    assert actions(fetch, game) == [
        "review_submitted",
        "review_submitted",
        "review_updated",
        "review_deleted",
        "review_deleted",
    ]


def test_create_review_populates_author_and_game(player, game):
    review = run(ReviewService.create_review(new_review(game, 4), player))
    assert review.user.username == "player_one"
    assert review.user.country == "Canada"
    assert review.game.title == "Astro Bot"
    assert review.game.avg_rating == 4.0


def test_review_text_is_escaped(player, game):
    review = run(ReviewService.create_review(
        new_review(game, 4, title="<b>Wow</b>", body="  <script>alert(1)</script>  "), player
    ))
    assert review.title == "&lt;b&gt;Wow&lt;/b&gt;"
    assert review.body == "&lt;script&gt;alert(1)&lt;/script&gt;"


def test_duplicate_review_is_rejected_without_side_effects(player, game, fetch):
    run(ReviewService.create_review(new_review(game, 5), player))
    with pytest.raises(ConflictError) as excinfo:
        run(ReviewService.create_review(new_review(game, 1), player))
    assert excinfo.value.message == DUPLICATE_REVIEW_MESSAGE
    assert aggregate(game) == (5.0, 1)
    assert actions(fetch, game) == ["review_submitted"]


def test_review_for_unknown_game(player):
    with pytest.raises(NotFoundError):
        run(ReviewService.create_review(new_review(404, 3), player))


def test_only_owner_may_update(player, other_player, game):
    review = run(ReviewService.create_review(new_review(game, 5), player))
    with pytest.raises(ForbiddenError):
        run(ReviewService.update_review(review.id, ReviewUpdate(rating=1), other_player))
    assert aggregate(game) == (5.0, 1)


def test_update_missing_review(player):
    with pytest.raises(NotFoundError):
        run(ReviewService.update_review(12345, ReviewUpdate(rating=2), player))


def test_non_owner_cannot_delete(player, other_player, game):
    review = run(ReviewService.create_review(new_review(game, 2), player))
    with pytest.raises(ForbiddenError):
        run(ReviewService.delete_review(review.id, other_player))
    assert run(ReviewService.get_review(review.id)).id == review.id


def test_admin_may_delete_any_review(player, admin, game, fetch):
    review = run(ReviewService.create_review(new_review(game, 2), player))
    run(ReviewService.delete_review(review.id, admin))

    with pytest.raises(NotFoundError):
        run(ReviewService.get_review(review.id))
    assert aggregate(game) == (0.0, 0)
    entry = run(AuditService.list_activities(game_id=game, action="review_deleted"))[0]
    assert entry.user_id == admin["user_id"]
    assert entry.meta == {"review_id": review.id, "review_owner_id": player["user_id"]}


def test_failed_activity_append_discards_the_review(player, game, fetch, monkeypatch):
    def broken_append(*args, **kwargs):
        raise RuntimeError("activity store unavailable")

    monkeypatch.setattr(AuditService, "append", broken_append)
    with pytest.raises(RuntimeError):
        run(ReviewService.create_review(new_review(game, 5), player))

    assert fetch("SELECT id FROM reviews") == []
    assert aggregate(game) == (0.0, 0)


def test_failed_recompute_discards_the_update(player, game, fetch, monkeypatch):
    review = run(ReviewService.create_review(new_review(game, 5), player))

    def broken_recalculate(cls, unit, game_id):
        raise RuntimeError("boom")

    monkeypatch.setattr(RatingService, "recalculate", classmethod(broken_recalculate))
    with pytest.raises(RuntimeError):
        run(ReviewService.update_review(review.id, ReviewUpdate(rating=1), player))

    assert run(ReviewService.get_review(review.id)).rating == 5
    assert aggregate(game) == (5.0, 1)
    assert actions(fetch, game) == ["review_submitted"]


def test_failed_recompute_keeps_deleted_review(player, game, monkeypatch):
    review = run(ReviewService.create_review(new_review(game, 4), player))
    monkeypatch.setattr(
        RatingService, "recalculate", classmethod(lambda cls, unit, game_id: 1 / 0)
    )
    with pytest.raises(ZeroDivisionError):
        run(ReviewService.delete_review(review.id, player))
    assert run(ReviewService.get_review(review.id)).rating == 4


def test_list_game_reviews_sorting(make_user, game):
    users = [make_user(f"reviewer_{i}") for i in range(3)]
    for user, rating in zip(users, (3, 5, 1)):
        run(ReviewService.create_review(new_review(game, rating), user))

    newest = run(ReviewService.list_game_reviews(game))
    assert [r.rating for r in newest] == [1, 5, 3]
    assert [r.rating for r in run(ReviewService.list_game_reviews(game, "oldest"))] == [3, 5, 1]
    assert [r.rating for r in run(ReviewService.list_game_reviews(game, "rating_high"))] == [5, 3, 1]
    assert [r.rating for r in run(ReviewService.list_game_reviews(game, "rating_low"))] == [1, 3, 5]


def test_list_reviews_of_unknown_game():
    with pytest.raises(NotFoundError):
        run(ReviewService.list_game_reviews(777))


def test_deleting_a_game_removes_its_reviews(player, game, make_game):
    other = make_game(title="Gran Turismo 7")
    run(ReviewService.create_review(new_review(game, 4), player))
    run(ReviewService.create_review(new_review(other, 2), player))
    run(GameService.delete_game(game))
    remaining = run(ReviewService.list_user_reviews(player["user_id"]))
    assert [r.game_id for r in remaining] == [other]


def test_review_by_deleted_author_is_not_reported_as_duplicate(player, game, fetch):
    run(UserService.delete_user(player["user_id"]))
    with pytest.raises(NotFoundError) as excinfo:
        run(ReviewService.create_review(new_review(game, 4), player))
    assert excinfo.value.message == "User not found"
    assert fetch("SELECT id FROM reviews") == []
    assert aggregate(game) == (0.0, 0)


def test_concurrent_review_mutations_keep_the_aggregate_exact(make_user, game, fetch, monkeypatch):
    monkeypatch.setattr(settings, "db_busy_timeout", 10.0)
    monkeypatch.setattr(settings, "review_retry_attempts", 5)
    ratings = [5, 4, 3, 2, 1, 5, 4, 2]
    users = [make_user(f"racer_{i}") for i in range(len(ratings))]

    def submit(args):
        user, rating = args
        return run(ReviewService.create_review(new_review(game, rating), user))

    with ThreadPoolExecutor(max_workers=len(users)) as pool:
        reviews = list(pool.map(submit, zip(users, ratings)))
    assert aggregate(game) == (average_rating(sum(ratings), len(ratings)), len(ratings))
    assert aggregate(game) == (3.3, 8)

    def lower(i):
        run(ReviewService.update_review(reviews[i].id, ReviewUpdate(rating=1), users[i]))

    def withdraw(i):
        run(ReviewService.delete_review(reviews[i].id, users[i]))

    with ThreadPoolExecutor(max_workers=5) as pool:
        futures = [pool.submit(lower, i) for i in (0, 1, 2)]
        futures += [pool.submit(withdraw, i) for i in (3, 4)]
        for future in futures:
            future.result()

    remaining = [1, 1, 1, 5, 4, 2]
    assert aggregate(game) == (average_rating(sum(remaining), len(remaining)), len(remaining))
    assert aggregate(game) == (2.3, 6)
    assert sorted(actions(fetch, game)) == sorted(
        ["review_submitted"] * 8 + ["review_updated"] * 3 + ["review_deleted"] * 2
    )
