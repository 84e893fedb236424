from datetime import date
from decimal import Decimal
from sqlalchemy import (
    Boolean,
    Date,
    Float,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING, Optional

from app.core.db.base import BaseModel

if TYPE_CHECKING:
    from app.modules.academics.models import AcademicYear, ClassLevel, Enrollment, Subject


class GradingSystem(BaseModel):
    """Named set of grade bands. One system may be flagged default."""

    __tablename__ = "grading_systems"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    is_default: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="0"
    )

    grades: Mapped[list["Grade"]] = relationship(
        "Grade",
        back_populates="grading_system",
        lazy="selectin",
        order_by="Grade.min_percentage.desc()",
    )


class Grade(BaseModel):
    """Grade band: applies when min_percentage <= percentage <= max_percentage."""

    __tablename__ = "grades"

    grading_system_id: Mapped[int] = mapped_column(
        ForeignKey("grading_systems.id", ondelete="CASCADE", name="fk_grade_grading_system_id"),
        nullable=False,
        index=True,
    )
    grade_name: Mapped[str] = mapped_column(String(10), nullable=False)
    min_percentage: Mapped[float] = mapped_column(Float, nullable=False)
    max_percentage: Mapped[float] = mapped_column(Float, nullable=False)
    points: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    grading_system: Mapped["GradingSystem"] = relationship(
        "GradingSystem", back_populates="grades"
    )

    def __repr__(self) -> str:
        return f"<Grade({self.grade_name}: {self.min_percentage}-{self.max_percentage})>"


class Exam(BaseModel):
    __tablename__ = "exams"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    academic_year_id: Mapped[int] = mapped_column(
        ForeignKey("academic_years.id", name="fk_exam_academic_year_id"),
        nullable=False,
        index=True,
    )

    academic_year: Mapped["AcademicYear"] = relationship("AcademicYear", lazy="joined")

    @property
    def academic_year_name(self) -> Optional[str]:
        return self.academic_year.year if self.academic_year else None


class ExamSchedule(BaseModel):
    """A single paper: one subject of one exam for one class level."""

    __tablename__ = "exam_schedules"

    __table_args__ = (
        Index("idx_exam_schedule_class_date", "class_level_id", "exam_date"),
    )

    exam_id: Mapped[int] = mapped_column(
        ForeignKey("exams.id", ondelete="CASCADE", name="fk_exam_schedule_exam_id"),
        nullable=False,
        index=True,
    )
    class_level_id: Mapped[int] = mapped_column(
        ForeignKey("class_levels.id", name="fk_exam_schedule_class_level_id"), nullable=False
    )
    subject_id: Mapped[int] = mapped_column(
        ForeignKey("subjects.id", name="fk_exam_schedule_subject_id"), nullable=False
    )
    exam_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    end_time: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    full_marks: Mapped[Decimal] = mapped_column(Numeric(precision=6, scale=2), nullable=False)
    pass_marks: Mapped[Decimal] = mapped_column(Numeric(precision=6, scale=2), nullable=False)

    exam: Mapped["Exam"] = relationship("Exam", lazy="joined")
    class_level: Mapped["ClassLevel"] = relationship("ClassLevel", lazy="joined")
    subject: Mapped["Subject"] = relationship("Subject", lazy="joined")

    @property
    def exam_name(self) -> Optional[str]:
        return self.exam.name if self.exam else None

    @property
    def class_name(self) -> Optional[str]:
        return self.class_level.name if self.class_level else None

    @property
    def subject_name(self) -> Optional[str]:
        return self.subject.name if self.subject else None


class Marks(BaseModel):
    """
    Marks of one enrollment in one exam schedule.
    Bulk entry upserts on (enrollment_id, exam_schedule_id).
    """

    __tablename__ = "marks"

    __table_args__ = (
        UniqueConstraint("enrollment_id", "exam_schedule_id", name="uq_marks_enrollment_schedule"),
    )

    enrollment_id: Mapped[int] = mapped_column(
        ForeignKey("enrollments.id", ondelete="CASCADE", name="fk_marks_enrollment_id"),
        nullable=False,
        index=True,
    )
    exam_schedule_id: Mapped[int] = mapped_column(
        ForeignKey("exam_schedules.id", ondelete="CASCADE", name="fk_marks_exam_schedule_id"),
        nullable=False,
        index=True,
    )
    marks_obtained: Mapped[Decimal] = mapped_column(Numeric(precision=6, scale=2), nullable=False)
    percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    grade_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("grades.id", ondelete="SET NULL", name="fk_marks_grade_id"), nullable=True
    )
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    enrollment: Mapped["Enrollment"] = relationship("Enrollment", lazy="joined")
    exam_schedule: Mapped["ExamSchedule"] = relationship("ExamSchedule", lazy="joined")
    grade: Mapped[Optional["Grade"]] = relationship("Grade", lazy="joined")

    def __repr__(self) -> str:
        return f"<Marks(enrollment_id={self.enrollment_id}, schedule_id={self.exam_schedule_id}, pct={self.percentage})>"
