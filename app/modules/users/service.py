"""
UsersService - login and profile lookups.
"""

import logging
from typing import Optional, Tuple
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, UnauthorizedError
from .models import User
from .schemas import LoginRequest
from .auth import AuthService

logger = logging.getLogger(__name__)


class UsersService:
    """
    User service with async SQLAlchemy queries.
    """

    @staticmethod
    async def login(db: AsyncSession, login_dto: LoginRequest) -> Tuple[User, str]:
        """
        Authenticate by email and password.

        Returns:
            (user, signed access token)

        Raises:
            UnauthorizedError: Unknown email or wrong password (same message for both)
        """
        user: Optional[User] = await db.scalar(
            select(User).where(User.email == login_dto.email, User.deleted_at.is_(None))
        )

        if not user or not AuthService.verify_password(login_dto.password, user.password):
            logger.info("Failed login attempt for %s", login_dto.email)
            raise UnauthorizedError("Invalid email or password", "INVALID_CREDENTIALS")

        token = AuthService.create_access_token(user)
        logger.info("User %s logged in as %s", user.id, user.role.value)
        return user, token

    @staticmethod
    async def find_one(db: AsyncSession, user_id: int) -> User:
        """
        Find user by id where deleted_at is null.

        Raises:
            NotFoundError: If user not found or is soft-deleted
        """
        result = await db.execute(
            select(User).where(User.id == user_id, User.deleted_at.is_(None))
        )
        user = result.scalar_one_or_none()

        if not user:
            raise NotFoundError("User", user_id)

        return user

    @staticmethod
    async def email_taken(
        db: AsyncSession, email: str, exclude_user_id: Optional[int] = None
    ) -> bool:
        query = select(User.id).where(User.email == email.lower())
        if exclude_user_id is not None:
            query = query.where(User.id != exclude_user_id)
        return (await db.scalar(query)) is not None
