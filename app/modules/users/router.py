"""
Auth Router - cookie based login, logout and current-user lookup.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.engine import get_db_util
from .service import UsersService
from .schemas import LoginRequest, LoginResponse, LogoutResponse, UserResponse
from .auth import AuthService, TokenData, get_current_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login_user(
    login_dto: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_util),
):
    """Login with email and password. The token is set as an HTTP-only cookie."""
    user, token = await UsersService.login(db, login_dto)
    AuthService.set_auth_cookie(response, token)
    return LoginResponse(user=UserResponse.model_validate(user))


@router.post("/logout", response_model=LogoutResponse)
async def logout_user(response: Response):
    """Clear the auth cookie"""
    AuthService.clear_auth_cookie(response)
    return LogoutResponse()


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(get_current_user),
):
    """Get the profile of the authenticated user"""
    return await UsersService.find_one(db, current_user.user_id)
