"""
API endpoints for game reviews.

Listing the reviews of a game or of a user is public.  Writing
reviews requires authentication; users may update only their own
reviews and delete their own, administrators may delete any.
Failures of the service layer are turned into responses by the
exception handlers installed in ``main.py``.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from game_review_api.app.core.permissions import require_permission
from game_review_api.app.core.security import get_current_user
from game_review_api.app.schemas.common import ApiResponse
from game_review_api.app.schemas.review import ReviewCreate, ReviewRead, ReviewUpdate
from game_review_api.app.services.review_service import ReviewService


router = APIRouter()


@router.get("/game/{game_id}", response_model=ApiResponse[List[ReviewRead]])
async def list_game_reviews(
    game_id: int,
    sort: Optional[str] = Query(None, description="'rating_high', 'rating_low' or 'oldest'; newest by default"),
) -> ApiResponse[List[ReviewRead]]:
    reviews = await ReviewService.list_game_reviews(game_id, sort)
    return ApiResponse(count=len(reviews), data=reviews)


@router.get("/user/{user_id}", response_model=ApiResponse[List[ReviewRead]])
async def list_user_reviews(user_id: int) -> ApiResponse[List[ReviewRead]]:
    reviews = await ReviewService.list_user_reviews(user_id)
    return ApiResponse(count=len(reviews), data=reviews)


@router.get("/me", response_model=ApiResponse[List[ReviewRead]])
async def list_my_reviews(current_user: dict = Depends(get_current_user)) -> ApiResponse[List[ReviewRead]]:
    reviews = await ReviewService.list_user_reviews(current_user["user_id"])
    return ApiResponse(count=len(reviews), data=reviews)


@router.get("/{review_id}", response_model=ApiResponse[ReviewRead])
async def get_review(
    review_id: int,
    current_user: dict = Depends(require_permission("reviews:view")),
) -> ApiResponse[ReviewRead]:
    return ApiResponse(data=await ReviewService.get_review(review_id))


@router.post("/", response_model=ApiResponse[ReviewRead], status_code=status.HTTP_201_CREATED)
async def create_review(
    data: ReviewCreate,
    current_user: dict = Depends(require_permission("reviews:create")),
) -> ApiResponse[ReviewRead]:
    """Submit a review.  A user can review each game only once."""
    review = await ReviewService.create_review(data, current_user)
    return ApiResponse(message="Review created successfully", data=review)


@router.put("/{review_id}", response_model=ApiResponse[ReviewRead])
async def update_review(
    review_id: int,
    data: ReviewUpdate,
    current_user: dict = Depends(require_permission("reviews:update_own")),
) -> ApiResponse[ReviewRead]:
    review = await ReviewService.update_review(review_id, data, current_user)
    return ApiResponse(message="Review updated successfully", data=review)


@router.delete("/{review_id}", response_model=ApiResponse[dict])
async def delete_review(
    review_id: int,
    current_user: dict = Depends(require_permission("reviews:delete_own")),
) -> ApiResponse[dict]:
    await ReviewService.delete_review(review_id, current_user)
    return ApiResponse(message="Review deleted successfully", data={})
