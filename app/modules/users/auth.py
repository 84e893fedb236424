"""
Authentication and Authorization utilities for JWT-based auth.
Provides password hashing, token generation/verification, cookie handling
and the principal / role-check dependencies.
"""

import logging
from typing import Optional, Any, Dict, List
from dataclasses import dataclass
import bcrypt
import jwt
from jwt.exceptions import PyJWTError, ExpiredSignatureError
from datetime import datetime, timedelta
from fastapi import Depends, Response
from fastapi.security import APIKeyCookie, HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.config import config
from app.core.db.engine import get_db_util
from app.core.exceptions import ForbiddenError, UnauthorizedError
from .models import Role, User

logger = logging.getLogger(__name__)

# The token travels in an HTTP-only cookie; a bearer header is accepted as well
cookie_scheme = APIKeyCookie(name=config.auth_cookie_name, auto_error=False)
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class TokenData:
    """Verified principal"""
    user_id: int
    email: str
    role: Role
    name: str = ""


class AuthService:
    """
    Password hashing and token management.
    """

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against a bcrypt hash.
        Malformed hashes never match.
        """
        try:
            return bcrypt.checkpw(
                plain_password.encode('utf-8'),
                hashed_password.encode('utf-8') if isinstance(hashed_password, str) else hashed_password
            )
        except ValueError:
            return False

    @staticmethod
    def get_password_hash(password: str) -> str:
        """
        Hash a password using bcrypt with auto-generated salt.
        """
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
        return hashed.decode('utf-8')

    @staticmethod
    def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a signed token carrying {userId, email, role, exp, iat}.

        Args:
            user: Authenticated user
            expires_delta: Optional custom lifetime, defaults to config value (7 days)
        """
        now = datetime.utcnow()
        expire = now + (expires_delta or timedelta(days=config.access_token_expire_days))
        to_encode: Dict[str, Any] = {
            "userId": user.id,
            "email": user.email,
            "role": user.role.value,
            "exp": expire,
            "iat": now,
        }
        return jwt.encode(to_encode, config.jwt_secret, algorithm=config.jwt_algorithm)

    @staticmethod
    def verify_token(token: str) -> Optional[Dict[str, Any]]:
        """
        Verify and decode a token.

        Returns:
            Payload if valid, None if malformed or missing claims

        Raises:
            UnauthorizedError: If the token has expired
        """
        try:
            payload: Dict[str, Any] = jwt.decode(
                token, config.jwt_secret, algorithms=[config.jwt_algorithm]
            )
        except ExpiredSignatureError:
            raise UnauthorizedError("Token has expired", "TOKEN_EXPIRED")
        except PyJWTError:
            return None

        if payload.get("userId") is None or payload.get("role") is None:
            return None
        return payload

    @staticmethod
    def set_auth_cookie(response: Response, token: str) -> None:
        response.set_cookie(
            key=config.auth_cookie_name,
            value=token,
            httponly=True,
            secure=config.is_production,
            samesite="strict",
            max_age=config.access_token_expire_days * 24 * 60 * 60,
            path="/",
        )

    @staticmethod
    def clear_auth_cookie(response: Response) -> None:
        response.delete_cookie(
            key=config.auth_cookie_name,
            httponly=True,
            secure=config.is_production,
            samesite="strict",
            path="/",
        )


async def get_current_user(
    cookie_token: Optional[str] = Depends(cookie_scheme),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_util),
) -> TokenData:
    """
    Dependency resolving the verified principal.

    The token is read from the auth cookie, falling back to the
    Authorization header, and the user is re-read from the database so that
    deleted accounts and role changes take effect immediately.

    Raises:
        UnauthorizedError: If no token is present, it is invalid, or the user is gone
    """
    token = cookie_token or (credentials.credentials if credentials else None)
    if not token:
        raise UnauthorizedError()

    payload = AuthService.verify_token(token)
    if payload is None:
        raise UnauthorizedError("Invalid authentication credentials", "INVALID_TOKEN")

    user: Optional[User] = await db.scalar(
        select(User).where(User.id == payload["userId"], User.deleted_at.is_(None))
    )
    if not user:
        raise UnauthorizedError("User not found", "INVALID_TOKEN")

    return TokenData(user_id=user.id, email=user.email, role=user.role, name=user.name)


class RoleChecker:
    """
    Dependency class for role-based access control.
    Checks if the current user has one of the required roles.
    """

    def __init__(self, allowed_roles: List[Role]) -> None:
        self.allowed_roles: List[Role] = allowed_roles

    async def __call__(self, current_user: TokenData = Depends(get_current_user)) -> TokenData:
        """
        Raises:
            ForbiddenError: If user doesn't have required role
        """
        if current_user.role not in self.allowed_roles:
            logger.info(
                "User %s with role %s denied, requires %s",
                current_user.user_id,
                current_user.role.value,
                [role.value for role in self.allowed_roles],
            )
            raise ForbiddenError()
        return current_user


# Common role checkers for convenience
require_admin: RoleChecker = RoleChecker([Role.ADMIN, Role.SUPERADMIN])
require_teacher: RoleChecker = RoleChecker([Role.TEACHER])
require_student: RoleChecker = RoleChecker([Role.STUDENT])
require_guardian: RoleChecker = RoleChecker([Role.GUARDIAN])
require_librarian: RoleChecker = RoleChecker([Role.LIBRARIAN])
require_accountant: RoleChecker = RoleChecker([Role.ACCOUNTANT])
require_finance_staff: RoleChecker = RoleChecker([Role.ADMIN, Role.SUPERADMIN, Role.ACCOUNTANT])


def ensure_owner(current_user: TokenData, requested_user_id: Optional[int]) -> None:
    """
    Reject a ``userId`` filter that names someone other than the principal.

    Raises:
        ForbiddenError: On ownership mismatch
    """
    if requested_user_id is not None and requested_user_id != current_user.user_id:
        raise ForbiddenError("Access denied", "OWNERSHIP_MISMATCH")
