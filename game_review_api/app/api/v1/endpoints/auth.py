"""
Authentication endpoints for API v1.

Registration and login return a bearer token; ``/me`` returns the
authenticated account.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from game_review_api.app.core.security import create_access_token, get_current_user
from game_review_api.app.schemas.common import ApiResponse
from game_review_api.app.schemas.user import Token, UserCreate, UserLogin, UserRead
from game_review_api.app.services.user_service import UserService


router = APIRouter()


def _token_for(user: UserRead) -> Token:
    return Token(access_token=create_access_token({"sub": str(user.id)}), user=user)


@router.post("/register", response_model=ApiResponse[Token], status_code=status.HTTP_201_CREATED)
async def register(data: UserCreate) -> ApiResponse[Token]:
    """Create an account and return a token for it."""
    user = await UserService.create_user(data)
    return ApiResponse(message="User registered successfully", data=_token_for(user))


@router.post("/login", response_model=ApiResponse[Token])
async def login(data: UserLogin) -> ApiResponse[Token]:
    user = await UserService.authenticate(data.email, data.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return ApiResponse(message="Login successful", data=_token_for(user))


@router.get("/me", response_model=ApiResponse[UserRead])
async def me(current_user: dict = Depends(get_current_user)) -> ApiResponse[UserRead]:
    return ApiResponse(data=await UserService.get_user(current_user["user_id"]))
