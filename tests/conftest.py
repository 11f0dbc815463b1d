import asyncio
from datetime import date

import pytest
from fastapi.testclient import TestClient

from game_review_api.app.core.config import settings
from game_review_api.app.core.db import get_connection, init_db
from game_review_api.app.main import app
from game_review_api.app.schemas.game import GameCreate
from game_review_api.app.schemas.user import UserCreate
from game_review_api.app.services.game_service import GameService
from game_review_api.app.services.user_service import UserService


ADMIN_EMAIL = "admin@example.com"
PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    """Give every test its own migrated database file."""
    monkeypatch.setattr(settings, "database_url", str(tmp_path / "reviews.db"))
    monkeypatch.setattr(settings, "admin_emails", ADMIN_EMAIL)
    monkeypatch.setattr(settings, "review_retry_backoff", 0.0)
    init_db()
    yield


@pytest.fixture
def make_user():
    def _make(username: str, email: str = None, country: str = "Canada") -> dict:
        user = asyncio.run(
            UserService.create_user(
                UserCreate(
                    username=username,
                    email=email or f"{username}@example.com",
                    password=PASSWORD,
                    country=country,
                )
            )
        )
        return {"user_id": user.id, "username": user.username, "role": user.role}

    return _make


@pytest.fixture
def make_game():
    def _make(title: str = "Astro Bot", platform: str = "PS5", genres=None) -> int:
        game = asyncio.run(
            GameService.create_game(
                GameCreate(
                    title=title,
                    platform=platform,
                    genres=genres or ["Platformer"],
                    release_date=date(2024, 9, 6),
                    publisher="Sony Interactive Entertainment",
                )
            )
        )
        return game.id

    return _make


@pytest.fixture
def player(make_user):
    return make_user("player_one")


@pytest.fixture
def other_player(make_user):
    return make_user("player_two", country="Japan")


@pytest.fixture
def admin(make_user):
    return make_user("site_admin", email=ADMIN_EMAIL)


@pytest.fixture
def game(make_game):
    return make_game()


@pytest.fixture
def fetch():
    """Run a read query against the test database and return all rows."""

    def _fetch(sql: str, params=()):
        conn = get_connection()
        try:
            return conn.execute(sql, params).fetchall()
        finally:
            conn.close()

    return _fetch


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
