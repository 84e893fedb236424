import enum
import datetime as dt
from datetime import date
from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING, Optional

from app.core.db.base import BaseModel

if TYPE_CHECKING:
    from app.modules.users.models import User


class StaffAttendanceStatus(str, enum.Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    ON_LEAVE = "ON_LEAVE"


class LeaveStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Staff(BaseModel):
    """
    Employee record (teacher, accountant, librarian, admin).
    staff_id is the human readable employee number (EMP-2024-001).
    Extends BaseModel which provides: id, created_at, updated_at, deleted_at
    """

    __tablename__ = "staff"

    staff_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    designation: Mapped[str] = mapped_column(String(100), nullable=False)
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    contact_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    joining_date: Mapped[date] = mapped_column(Date, nullable=False)
    qualification: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    present_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    permanent_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE", name="fk_staff_user_id"),
        nullable=False,
        unique=True,
    )

    user: Mapped["User"] = relationship("User", lazy="joined")

    def __repr__(self) -> str:
        return f"<Staff(id={self.id}, staff_id='{self.staff_id}', name='{self.name}')>"


class StaffAttendance(BaseModel):
    __tablename__ = "staff_attendances"

    __table_args__ = (
        UniqueConstraint("staff_id", "date", name="uq_staff_attendance_staff_date"),
    )

    staff_id: Mapped[int] = mapped_column(
        ForeignKey("staff.id", ondelete="CASCADE", name="fk_staff_attendance_staff_id"),
        nullable=False,
        index=True,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    status: Mapped[StaffAttendanceStatus] = mapped_column(
        SQLEnum(StaffAttendanceStatus, name="staff_attendance_status_enum", native_enum=False),
        nullable=False,
    )
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    staff: Mapped["Staff"] = relationship("Staff", lazy="joined")

    @property
    def staff_name(self) -> Optional[str]:
        return self.staff.name if self.staff else None


class LeaveRequest(BaseModel):
    __tablename__ = "leave_requests"

    staff_id: Mapped[int] = mapped_column(
        ForeignKey("staff.id", ondelete="CASCADE", name="fk_leave_request_staff_id"),
        nullable=False,
        index=True,
    )
    leave_type: Mapped[str] = mapped_column(String(50), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[LeaveStatus] = mapped_column(
        SQLEnum(LeaveStatus, name="leave_status_enum", native_enum=False),
        nullable=False,
        default=LeaveStatus.PENDING,
        server_default=LeaveStatus.PENDING.value,
        index=True,
    )
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approved_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL", name="fk_leave_request_approved_by"),
        nullable=True,
    )
    approved_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=False), nullable=True)

    staff: Mapped["Staff"] = relationship("Staff", lazy="joined")

    @property
    def staff_name(self) -> Optional[str]:
        return self.staff.name if self.staff else None
