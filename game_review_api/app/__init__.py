"""
Application package for the Game Review API.

Each domain (games, reviews, game lists, activities, users) exposes a
router from ``api/v1/endpoints`` backed by a service in ``services``.
Shared concerns such as configuration, storage, security and errors
live in ``core``.
"""

from .main import app  # noqa: F401
