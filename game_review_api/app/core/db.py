"""
SQLite database integration, atomic units and a simple migration system.

This module provides functions for obtaining a database connection
(``get_connection``), running a group of writes as one all‑or‑nothing
unit (``atomic_unit`` / ``run_in_unit``) and applying migrations on
application start (``init_db``).

Atomic units open the transaction with ``BEGIN IMMEDIATE`` which takes
the database write lock up front.  Two units that read the reviews of
a game, recompute the aggregate and write it back can therefore never
interleave: the second one waits (up to ``settings.db_busy_timeout``)
and then sees the first one's committed state.  When the wait times
out the unit fails with ``StorageConflictError`` and ``run_in_unit``
re‑runs the whole operation.

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.
"""

import asyncio
import logging
import os
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, Sequence, TypeVar

from .config import settings
from .errors import ConflictError, StorageConflictError, StorageFailureError


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Millisecond precision keeps "newest first" ordering stable for rows
# written within the same second.
NOW_SQL = "(strftime('%Y-%m-%d %H:%M:%f', 'now'))"


def get_database_path() -> str:
    """Compute the path to the SQLite database file.

    If ``settings.database_url`` is an absolute path, use it directly.
    Otherwise resolve it relative to the project root.
    """
    db_url = settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent  # game_review_api/
    return str((base_dir / db_url).resolve())


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` so columns can be accessed by
    name.  Foreign key enforcement is switched on for the lifetime of
    the connection because SQLite disables it by default.
    """
    conn = sqlite3.connect(get_database_path(), timeout=settings.db_busy_timeout)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_cursor() -> Iterator[sqlite3.Cursor]:
    """Context manager that yields a cursor and closes the connection on exit."""
    conn = get_connection()
    try:
        yield conn.cursor()
        conn.commit()
    finally:
        conn.close()


def is_unique_violation(exc: sqlite3.Error) -> bool:
    """True for a UNIQUE/PRIMARY KEY clash, as opposed to a CHECK or FOREIGN KEY failure."""
    return isinstance(exc, sqlite3.IntegrityError) and "unique constraint" in str(exc).lower()


def translate_error(exc: sqlite3.Error) -> Exception:
    """Map a ``sqlite3`` exception onto the service error hierarchy.

    Only uniqueness clashes are the caller's fault (``ConflictError``).
    CHECK and FOREIGN KEY failures mean the service wrote bad data and
    become ``StorageFailureError`` like any other backend error.
    """
    message = str(exc).lower()
    if isinstance(exc, sqlite3.OperationalError) and ("locked" in message or "busy" in message):
        return StorageConflictError("The data is being modified by another request, please retry")
    if is_unique_violation(exc):
        return ConflictError(f"Conflicting data: {exc}")
    return StorageFailureError(f"Storage error: {exc}")


class AtomicUnit:
    """Handle to one open write transaction.

    Every write made through the handle becomes visible together with
    the others when the unit commits, or not at all.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._cursor = conn.cursor()

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self._cursor.execute(sql, tuple(params))

    def fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        return self._cursor.execute(sql, tuple(params)).fetchone()

    def fetchall(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        return self._cursor.execute(sql, tuple(params)).fetchall()

    @property
    def lastrowid(self) -> Optional[int]:
        return self._cursor.lastrowid


def _rollback(conn: sqlite3.Connection) -> None:
    # SQLite rolls back by itself after some errors (e.g. SQLITE_FULL).
    if not conn.in_transaction:
        return
    try:
        conn.execute("ROLLBACK")
    except sqlite3.Error:
        logger.exception("Rollback failed")


@contextmanager
def atomic_unit() -> Iterator[AtomicUnit]:
    """Open an atomic unit, commit it on success and discard it on any error.

    The unit is released on every exit path, including exceptions raised
    by the caller and task cancellation.  ``sqlite3`` errors raised inside
    the block are translated with :func:`translate_error`; service errors
    pass through unchanged after the rollback.
    """
    try:
        conn = get_connection()
    except sqlite3.Error as exc:
        raise translate_error(exc) from exc
    # Manual transaction control: we issue BEGIN/COMMIT/ROLLBACK ourselves.
    conn.isolation_level = None
    try:
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as exc:
            raise translate_error(exc) from exc
        try:
            yield AtomicUnit(conn)
        except sqlite3.Error as exc:
            _rollback(conn)
            raise translate_error(exc) from exc
        except BaseException:
            _rollback(conn)
            raise
        try:
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            _rollback(conn)
            raise translate_error(exc) from exc
    finally:
        conn.close()


class _Abandoned(Exception):
    """Raised inside a worker thread whose caller was cancelled."""


def _run_unit(operation: Callable[[AtomicUnit], T], abandoned: threading.Event) -> T:
    with atomic_unit() as unit:
        result = operation(unit)
        if abandoned.is_set():
            # The request went away; discard instead of committing.
            raise _Abandoned()
        return result


async def run_in_unit(
    operation: Callable[[AtomicUnit], T],
    attempts: Optional[int] = None,
    backoff: Optional[float] = None,
) -> T:
    """Run ``operation`` inside a fresh atomic unit and return its result.

    Each attempt runs in a worker thread, so waiting for the write lock
    (up to ``settings.db_busy_timeout``) never blocks the event loop.  If
    the awaiting task is cancelled while the attempt is still running,
    the worker rolls the unit back instead of committing it.

    When the unit fails with ``StorageConflictError`` the whole operation
    is re‑run in a new unit, at most ``attempts`` times in total, sleeping
    ``backoff * attempt`` seconds in between.  Any other error propagates
    immediately.

    Parameters
    ----------
    operation : Callable[[AtomicUnit], T]
        Synchronous function performing every read and write of the
        operation through the given unit.
    attempts : Optional[int]
        Defaults to ``settings.review_retry_attempts``.
    backoff : Optional[float]
        Defaults to ``settings.review_retry_backoff``.
    """
    attempts = max(1, attempts if attempts is not None else settings.review_retry_attempts)
    backoff = backoff if backoff is not None else settings.review_retry_backoff
    attempt = 1
    while True:
        abandoned = threading.Event()
        try:
            return await asyncio.to_thread(_run_unit, operation, abandoned)
        except asyncio.CancelledError:
            abandoned.set()
            raise
        except StorageConflictError:
            if attempt >= attempts:
                logger.error("Giving up after %s conflicting attempts", attempt)
                raise
            logger.warning("Atomic unit conflict on attempt %s/%s, retrying", attempt, attempts)
            await asyncio.sleep(backoff * attempt)
            attempt += 1


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: Initial schema
    (
        1,
        f"""
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            email TEXT NOT NULL UNIQUE,
            password TEXT NOT NULL,
            country TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('user', 'admin')),
            created_at TIMESTAMP DEFAULT {NOW_SQL},
            updated_at TIMESTAMP DEFAULT {NOW_SQL}
        );

        CREATE TABLE IF NOT EXISTS games (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            platform TEXT NOT NULL CHECK (platform IN ('PS4', 'PS5')),
            genres TEXT NOT NULL,
            release_date TEXT NOT NULL,
            publisher TEXT NOT NULL,
            avg_rating REAL NOT NULL DEFAULT 0 CHECK (avg_rating >= 0 AND avg_rating <= 5),
            total_reviews INTEGER NOT NULL DEFAULT 0 CHECK (total_reviews >= 0),
            created_at TIMESTAMP DEFAULT {NOW_SQL}
        );

        CREATE TABLE IF NOT EXISTS reviews (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            game_id INTEGER NOT NULL,
            rating INTEGER NOT NULL CHECK (rating >= 1 AND rating <= 5),
            title TEXT NOT NULL,
            body TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT {NOW_SQL},
            updated_at TIMESTAMP,
            UNIQUE (user_id, game_id),
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY(game_id) REFERENCES games(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS activity_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            game_id INTEGER NOT NULL,
            action TEXT NOT NULL CHECK (action IN (
                'added_to_wishlist', 'removed_from_wishlist', 'marked_as_played',
                'review_submitted', 'review_updated', 'review_deleted'
            )),
            timestamp TIMESTAMP DEFAULT {NOW_SQL},
            meta TEXT NOT NULL DEFAULT '{{}}',
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY(game_id) REFERENCES games(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS game_lists (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL UNIQUE,
            created_at TIMESTAMP DEFAULT {NOW_SQL},
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS wishlist_entries (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            list_id INTEGER NOT NULL,
            game_id INTEGER NOT NULL,
            added_at TIMESTAMP DEFAULT {NOW_SQL},
            UNIQUE (list_id, game_id),
            FOREIGN KEY(list_id) REFERENCES game_lists(id) ON DELETE CASCADE,
            FOREIGN KEY(game_id) REFERENCES games(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS played_entries (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            list_id INTEGER NOT NULL,
            game_id INTEGER NOT NULL,
            completed_at TIMESTAMP DEFAULT {NOW_SQL},
            completion_hours INTEGER,
            UNIQUE (list_id, game_id),
            FOREIGN KEY(list_id) REFERENCES game_lists(id) ON DELETE CASCADE,
            FOREIGN KEY(game_id) REFERENCES games(id) ON DELETE CASCADE
        );
        """,
    ),
    # Migration 2: lookup indexes
    (
        2,
        """
        CREATE UNIQUE INDEX IF NOT EXISTS idx_games_title_platform ON games(title, platform);
        CREATE INDEX IF NOT EXISTS idx_reviews_game_id ON reviews(game_id);
        CREATE INDEX IF NOT EXISTS idx_reviews_user_id ON reviews(user_id);
        CREATE INDEX IF NOT EXISTS idx_activity_user_ts ON activity_logs(user_id, timestamp DESC);
        CREATE INDEX IF NOT EXISTS idx_activity_game_ts ON activity_logs(game_id, timestamp DESC);
        CREATE INDEX IF NOT EXISTS idx_activity_action_ts ON activity_logs(action, timestamp DESC);
        CREATE INDEX IF NOT EXISTS idx_wishlist_game_id ON wishlist_entries(game_id);
        CREATE INDEX IF NOT EXISTS idx_played_game_id ON played_entries(game_id);
        """,
    ),
]


def init_db() -> None:
    """Initialise the database and apply pending migrations.

    Creates the ``migrations`` table if it does not exist, checks the
    current schema version, and applies any new migrations defined in
    ``MIGRATIONS``.  If you add a new migration, append it with an
    incremented version number.
    """
    with get_cursor() as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) as version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                current_version = version
                logger.info("Applied migration %s", version)
