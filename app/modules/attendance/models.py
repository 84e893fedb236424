import enum
import datetime as dt
from sqlalchemy import Date, ForeignKey, Text, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING, Optional

from app.core.db.base import BaseModel

if TYPE_CHECKING:
    from app.modules.academics.models import Enrollment


class AttendanceStatus(str, enum.Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    ON_LEAVE = "ON_LEAVE"


# Statuses counted as "attended" when computing attendance rates
ATTENDED_STATUSES = (AttendanceStatus.PRESENT, AttendanceStatus.LATE)


class StudentAttendance(BaseModel):
    """
    One row per enrollment per day. Bulk marking upserts on (enrollment_id, date).
    Extends BaseModel which provides: id, created_at, updated_at, deleted_at
    """

    __tablename__ = "student_attendances"

    __table_args__ = (
        UniqueConstraint("enrollment_id", "date", name="uq_student_attendance_enrollment_date"),
    )

    enrollment_id: Mapped[int] = mapped_column(
        ForeignKey("enrollments.id", ondelete="CASCADE", name="fk_student_attendance_enrollment_id"),
        nullable=False,
        index=True,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[AttendanceStatus] = mapped_column(
        SQLEnum(AttendanceStatus, name="attendance_status_enum", native_enum=False),
        nullable=False,
    )
    marked_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("staff.id", ondelete="SET NULL", name="fk_student_attendance_marked_by"),
        nullable=True,
    )
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    enrollment: Mapped["Enrollment"] = relationship("Enrollment", lazy="joined")

    def __repr__(self) -> str:
        return f"<StudentAttendance(enrollment_id={self.enrollment_id}, date={self.date}, status={self.status.value})>"
