"""
Game catalogue endpoints for API v1.

Reads are public.  Creating, updating and deleting games requires the
corresponding ``games:*`` permission (administrators).
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from game_review_api.app.core.permissions import require_permission
from game_review_api.app.schemas.common import ApiResponse
from game_review_api.app.schemas.game import GameCreate, GameRead, GameUpdate
from game_review_api.app.services.game_service import GameService


router = APIRouter()


@router.get("/", response_model=ApiResponse[List[GameRead]])
async def list_games(
    platform: Optional[str] = Query(None, description="PS4 or PS5"),
    genre: Optional[str] = Query(None),
    sort: Optional[str] = Query(None, description="'rating', 'newest' or 'oldest'; title by default"),
) -> ApiResponse[List[GameRead]]:
    games = await GameService.list_games(platform=platform, genre=genre, sort=sort)
    return ApiResponse(count=len(games), data=games)


@router.get("/search", response_model=ApiResponse[List[GameRead]])
async def search_games(q: Optional[str] = Query(None)) -> ApiResponse[List[GameRead]]:
    games = await GameService.search_games(q)
    return ApiResponse(count=len(games), data=games)


@router.get("/top-rated", response_model=ApiResponse[List[GameRead]])
async def top_rated_games(limit: int = Query(10, ge=1, le=100)) -> ApiResponse[List[GameRead]]:
    games = await GameService.top_rated(limit)
    return ApiResponse(count=len(games), data=games)


@router.get("/platform/{platform}", response_model=ApiResponse[List[GameRead]])
async def games_by_platform(platform: str) -> ApiResponse[List[GameRead]]:
    games = await GameService.games_by_platform(platform)
    return ApiResponse(count=len(games), data=games)


@router.get("/{game_id}", response_model=ApiResponse[GameRead])
async def get_game(game_id: int) -> ApiResponse[GameRead]:
    return ApiResponse(data=await GameService.get_game(game_id))


@router.post("/", response_model=ApiResponse[GameRead], status_code=status.HTTP_201_CREATED)
async def create_game(
    data: GameCreate,
    current_user: dict = Depends(require_permission("games:create")),
) -> ApiResponse[GameRead]:
    game = await GameService.create_game(data)
    return ApiResponse(message="Game created successfully", data=game)


@router.put("/{game_id}", response_model=ApiResponse[GameRead])
async def update_game(
    game_id: int,
    data: GameUpdate,
    current_user: dict = Depends(require_permission("games:update")),
) -> ApiResponse[GameRead]:
    game = await GameService.update_game(game_id, data)
    return ApiResponse(message="Game updated successfully", data=game)


@router.delete("/{game_id}", response_model=ApiResponse[dict])
async def delete_game(
    game_id: int,
    current_user: dict = Depends(require_permission("games:delete")),
) -> ApiResponse[dict]:
    await GameService.delete_game(game_id)
    return ApiResponse(message="Game deleted successfully", data={})
