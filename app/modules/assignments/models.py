import enum
from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Index,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING, Optional

from app.core.db.base import BaseModel

if TYPE_CHECKING:
    from app.modules.academics.models import Enrollment, Subject


class SubmissionStatus(str, enum.Enum):
    SUBMITTED = "SUBMITTED"
    GRADED = "GRADED"
    LATE = "LATE"


class Assignment(BaseModel):
    """
    Homework set by a teacher for one class section.
    Extends BaseModel which provides: id, created_at, updated_at, deleted_at
    """

    __tablename__ = "assignments"

    __table_args__ = (
        Index("idx_assignment_class_section", "class_level_id", "section_id"),
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    teacher_id: Mapped[int] = mapped_column(
        ForeignKey("staff.id", ondelete="CASCADE", name="fk_assignment_teacher_id"),
        nullable=False,
        index=True,
    )
    subject_id: Mapped[int] = mapped_column(
        ForeignKey("subjects.id", name="fk_assignment_subject_id"), nullable=False
    )
    class_level_id: Mapped[int] = mapped_column(
        ForeignKey("class_levels.id", name="fk_assignment_class_level_id"), nullable=False
    )
    section_id: Mapped[int] = mapped_column(
        ForeignKey("sections.id", name="fk_assignment_section_id"), nullable=False
    )
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    max_marks: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=6, scale=2), nullable=True
    )

    subject: Mapped["Subject"] = relationship("Subject", lazy="joined")
    submissions: Mapped[list["AssignmentSubmission"]] = relationship(
        "AssignmentSubmission", back_populates="assignment"
    )


class AssignmentSubmission(BaseModel):
    __tablename__ = "assignment_submissions"

    __table_args__ = (
        UniqueConstraint("assignment_id", "enrollment_id", name="uq_submission_assignment_enrollment"),
    )

    assignment_id: Mapped[int] = mapped_column(
        ForeignKey("assignments.id", ondelete="CASCADE", name="fk_submission_assignment_id"),
        nullable=False,
        index=True,
    )
    enrollment_id: Mapped[int] = mapped_column(
        ForeignKey("enrollments.id", ondelete="CASCADE", name="fk_submission_enrollment_id"),
        nullable=False,
        index=True,
    )
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    status: Mapped[SubmissionStatus] = mapped_column(
        SQLEnum(SubmissionStatus, name="submission_status_enum", native_enum=False),
        nullable=False,
        default=SubmissionStatus.SUBMITTED,
        server_default=SubmissionStatus.SUBMITTED.value,
    )
    marks_obtained: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=6, scale=2), nullable=True
    )
    feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    assignment: Mapped["Assignment"] = relationship(
        "Assignment", back_populates="submissions", lazy="joined"
    )
    enrollment: Mapped["Enrollment"] = relationship("Enrollment", lazy="joined")
