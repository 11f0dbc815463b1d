"""
Wishlist and played‑list endpoints for the authenticated user.

All routes live under ``/users/me`` and operate on the caller's own
list only.
"""

from typing import List

from fastapi import APIRouter, Depends

from game_review_api.app.core.permissions import require_permission
from game_review_api.app.schemas.common import ApiResponse
from game_review_api.app.schemas.game_list import (
    GameListRead,
    PlayedAdd,
    PlayedEntry,
    WishlistAdd,
    WishlistEntry,
)
from game_review_api.app.services.game_list_service import GameListService


router = APIRouter()


@router.get("/me/gamelist", response_model=ApiResponse[GameListRead])
async def get_my_game_list(
    current_user: dict = Depends(require_permission("gamelist:view_own")),
) -> ApiResponse[GameListRead]:
    return ApiResponse(data=await GameListService.get_game_list(current_user["user_id"]))


@router.get("/me/wishlist", response_model=ApiResponse[List[WishlistEntry]])
async def get_my_wishlist(
    current_user: dict = Depends(require_permission("gamelist:view_own")),
) -> ApiResponse[List[WishlistEntry]]:
    entries = await GameListService.get_wishlist(current_user["user_id"])
    return ApiResponse(count=len(entries), data=entries)


@router.get("/me/played", response_model=ApiResponse[List[PlayedEntry]])
async def get_my_played_games(
    current_user: dict = Depends(require_permission("gamelist:view_own")),
) -> ApiResponse[List[PlayedEntry]]:
    entries = await GameListService.get_played(current_user["user_id"])
    return ApiResponse(count=len(entries), data=entries)


@router.post("/me/wishlist", response_model=ApiResponse[GameListRead])
async def add_to_wishlist(
    data: WishlistAdd,
    current_user: dict = Depends(require_permission("gamelist:manage_own_wishlist")),
) -> ApiResponse[GameListRead]:
    game_list = await GameListService.add_to_wishlist(current_user["user_id"], data.game_id)
    return ApiResponse(message="Game added to wishlist successfully", data=game_list)


@router.delete("/me/wishlist/{game_id}", response_model=ApiResponse[GameListRead])
async def remove_from_wishlist(
    game_id: int,
    current_user: dict = Depends(require_permission("gamelist:manage_own_wishlist")),
) -> ApiResponse[GameListRead]:
    game_list = await GameListService.remove_from_wishlist(current_user["user_id"], game_id)
    return ApiResponse(message="Game removed from wishlist successfully", data=game_list)


@router.post("/me/played", response_model=ApiResponse[GameListRead])
async def mark_as_played(
    data: PlayedAdd,
    current_user: dict = Depends(require_permission("gamelist:manage_own_played")),
) -> ApiResponse[GameListRead]:
    game_list = await GameListService.mark_as_played(
        current_user["user_id"], data.game_id, data.completion_hours
    )
    return ApiResponse(message="Game marked as played successfully", data=game_list)


@router.delete("/me/played/{game_id}", response_model=ApiResponse[GameListRead])
async def remove_from_played(
    game_id: int,
    current_user: dict = Depends(require_permission("gamelist:manage_own_played")),
) -> ApiResponse[GameListRead]:
    game_list = await GameListService.remove_from_played(current_user["user_id"], game_id)
    return ApiResponse(message="Game removed from played list successfully", data=game_list)
