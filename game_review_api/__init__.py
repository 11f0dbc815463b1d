"""
Game Review API.

A FastAPI backend where players review PS4/PS5 games, keep a wishlist
and a played list, and leave an activity trail.  The application
object lives in ``game_review_api.app.main``.
"""

__all__ = []
