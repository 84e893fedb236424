import enum
from sqlalchemy import String, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.core.db.base import BaseModel


class Role(str, enum.Enum):
    """Access tier gating which endpoints and data a principal may reach"""

    SUPERADMIN = "SUPERADMIN"
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"
    GUARDIAN = "GUARDIAN"
    LIBRARIAN = "LIBRARIAN"
    ACCOUNTANT = "ACCOUNTANT"


class User(BaseModel):
    """
    Login account shared by every role.
    Extends BaseModel which provides: id, created_at, updated_at, deleted_at
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )

    # bcrypt hash, never serialized
    password: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[Role] = mapped_column(
        SQLEnum(
            Role,
            name="users_role_enum",
            native_enum=False,
        ),
        nullable=False,
        default=Role.STUDENT,
        server_default=Role.STUDENT.value,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role={self.role.value})>"
