"""
User DTOs (Data Transfer Objects)
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime

from app.core.schemas import CamelModel
from .models import Role


class UserResponse(CamelModel):
    """Response model for User entity (password never included)"""

    id: int
    name: str
    email: str
    role: Role
    created_at: datetime
    updated_at: datetime


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        local, _, domain = value.partition("@")
        if not local or "." not in domain:
            raise ValueError("Invalid email format")
        return value

    class Config:
        from_attributes = True


class LoginResponse(CamelModel):
    user: UserResponse
    message: str = "Login successful"


class LogoutResponse(BaseModel):
    message: str = "Logout successful"
