"""
Top‑level router for version 1 of the API.

This router aggregates domain‑specific routers under a unified
prefix.  When new endpoints are added or when new domains are
introduced, update this file to include their routers.
"""

from fastapi import APIRouter

from .endpoints import (
    activities,
    auth,
    game_lists,
    games,
    info,
    reviews,
    users,
)

router = APIRouter()

router.include_router(info.router, tags=["info"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
# The game list routes live under /users/me/... and must be registered
# before the admin /users/{user_id} routes.
router.include_router(game_lists.router, prefix="/users", tags=["game lists"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(games.router, prefix="/games", tags=["games"])
router.include_router(reviews.router, prefix="/reviews", tags=["reviews"])
router.include_router(activities.router, prefix="/activities", tags=["activities"])
