"""
Activity trail endpoints for API v1.

Authenticated users can read their own trail and the trail of a user
or game; administrators can read everything and remove entries.
Entries are always returned newest first.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from game_review_api.app.core.permissions import require_permission
from game_review_api.app.core.security import get_current_user
from game_review_api.app.schemas.activity import ActivityAction, ActivityRead, ActivityStats
from game_review_api.app.schemas.common import ApiResponse
from game_review_api.app.services.audit_service import AuditService


router = APIRouter()


@router.get("/me", response_model=ApiResponse[List[ActivityRead]])
async def my_activities(
    limit: int = Query(50, ge=1, le=500),
    action: Optional[ActivityAction] = Query(None),
    current_user: dict = Depends(require_permission("activities:view_own")),
) -> ApiResponse[List[ActivityRead]]:
    entries = await AuditService.list_activities(user_id=current_user["user_id"], action=action, limit=limit)
    return ApiResponse(count=len(entries), data=entries)


@router.get("/me/stats", response_model=ApiResponse[ActivityStats])
async def my_activity_stats(
    current_user: dict = Depends(require_permission("activities:view_own")),
) -> ApiResponse[ActivityStats]:
    return ApiResponse(data=await AuditService.user_stats(current_user["user_id"]))


@router.get("/user/{user_id}", response_model=ApiResponse[List[ActivityRead]])
async def user_activities(
    user_id: int,
    limit: int = Query(50, ge=1, le=500),
    action: Optional[ActivityAction] = Query(None),
    current_user: dict = Depends(get_current_user),
) -> ApiResponse[List[ActivityRead]]:
    entries = await AuditService.list_activities(user_id=user_id, action=action, limit=limit)
    return ApiResponse(count=len(entries), data=entries)


@router.get("/game/{game_id}", response_model=ApiResponse[List[ActivityRead]])
async def game_activities(
    game_id: int,
    limit: int = Query(50, ge=1, le=500),
    action: Optional[ActivityAction] = Query(None),
    current_user: dict = Depends(get_current_user),
) -> ApiResponse[List[ActivityRead]]:
    entries = await AuditService.list_activities(game_id=game_id, action=action, limit=limit)
    return ApiResponse(count=len(entries), data=entries)


@router.get("/", response_model=ApiResponse[List[ActivityRead]])
async def all_activities(
    limit: int = Query(100, ge=1, le=1000),
    action: Optional[ActivityAction] = Query(None),
    current_user: dict = Depends(require_permission("activities:view_all")),
) -> ApiResponse[List[ActivityRead]]:
    entries = await AuditService.list_activities(action=action, limit=limit)
    return ApiResponse(count=len(entries), data=entries)


@router.delete("/{activity_id}", response_model=ApiResponse[dict])
async def delete_activity(
    activity_id: int,
    current_user: dict = Depends(require_permission("activities:delete")),
) -> ApiResponse[dict]:
    """Remove one entry.  Game ratings and lists are not affected."""
    await AuditService.delete_activity(activity_id)
    return ApiResponse(message="Activity log deleted successfully", data={})
