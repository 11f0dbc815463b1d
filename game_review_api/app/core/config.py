"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
API starts without any configuration; in a production deployment you
should at least override ``SECRET_KEY`` and ``DATABASE_URL``.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Game Review API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))
    algorithm: str = os.getenv("ALGORITHM", "HS256")

    # Path to the SQLite database file.  A relative path is resolved
    # against the project root by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "game_reviews.db")

    # Seconds a writer waits for the database write lock before the
    # attempt is reported as contention (``StorageConflictError``).
    db_busy_timeout: float = float(os.getenv("DB_BUSY_TIMEOUT", "5"))

    # How many times a review mutation is attempted when the atomic unit
    # cannot be opened or committed because of concurrent writers, and the
    # base delay (seconds) between attempts.  The delay grows linearly.
    review_retry_attempts: int = int(os.getenv("REVIEW_RETRY_ATTEMPTS", "3"))
    review_retry_backoff: float = float(os.getenv("REVIEW_RETRY_BACKOFF", "0.05"))

    # Comma‑separated list of e‑mails that receive the ``admin`` role on
    # registration.  Everybody else registers as ``user``.
    admin_emails: str = os.getenv("ADMIN_EMAILS", "")

    def admin_email_set(self) -> set:
        return {e.strip().lower() for e in self.admin_emails.split(",") if e.strip()}


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables
# should be set before importing this module.
settings = Settings()
