"""
User endpoints for API v1.

Administrators can list, inspect, update and delete accounts.  Every
authenticated user can edit their own profile.
"""

from typing import List

from fastapi import APIRouter, Depends

from game_review_api.app.core.permissions import require_permission
from game_review_api.app.core.security import get_current_user
from game_review_api.app.schemas.common import ApiResponse
from game_review_api.app.schemas.user import ProfileUpdate, UserRead, UserUpdate
from game_review_api.app.services.user_service import UserService


router = APIRouter()


@router.put("/me/profile", response_model=ApiResponse[UserRead])
async def update_my_profile(
    data: ProfileUpdate,
    current_user: dict = Depends(get_current_user),
) -> ApiResponse[UserRead]:
    user = await UserService.update_profile(current_user["user_id"], data)
    return ApiResponse(message="Profile updated successfully", data=user)


@router.get("/", response_model=ApiResponse[List[UserRead]])
async def list_users(
    current_user: dict = Depends(require_permission("users:view_all")),
) -> ApiResponse[List[UserRead]]:
    users = await UserService.list_users()
    return ApiResponse(count=len(users), data=users)


@router.get("/{user_id}", response_model=ApiResponse[UserRead])
async def get_user(
    user_id: int,
    current_user: dict = Depends(require_permission("users:view")),
) -> ApiResponse[UserRead]:
    return ApiResponse(data=await UserService.get_user(user_id))


@router.put("/{user_id}", response_model=ApiResponse[UserRead])
async def update_user(
    user_id: int,
    data: UserUpdate,
    current_user: dict = Depends(require_permission("users:update")),
) -> ApiResponse[UserRead]:
    user = await UserService.update_user(user_id, data)
    return ApiResponse(message="User updated successfully", data=user)


@router.delete("/{user_id}", response_model=ApiResponse[dict])
async def delete_user(
    user_id: int,
    current_user: dict = Depends(require_permission("users:delete")),
) -> ApiResponse[dict]:
    """Delete an account; the ratings of games it reviewed are recomputed."""
    await UserService.delete_user(user_id)
    return ApiResponse(message="User deleted successfully", data={})
