from datetime import date
from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING, Optional

from app.core.db.base import BaseModel

if TYPE_CHECKING:
    from app.modules.staff.models import Staff
    from app.modules.students.models import Student


class AcademicYear(BaseModel):
    """
    School year, e.g. "2024-2025". At most one row is flagged current.
    Extends BaseModel which provides: id, created_at, updated_at, deleted_at
    """

    __tablename__ = "academic_years"

    year: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_current: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="0"
    )

    def __repr__(self) -> str:
        return f"<AcademicYear(id={self.id}, year='{self.year}', current={self.is_current})>"


class ClassLevel(BaseModel):
    """Grade/class such as "Class 8"."""

    __tablename__ = "class_levels"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)

    sections: Mapped[list["Section"]] = relationship(
        "Section", back_populates="class_level", lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<ClassLevel(id={self.id}, name='{self.name}')>"


class Section(BaseModel):
    """Section of a class level ("A", "B", ...)."""

    __tablename__ = "sections"

    __table_args__ = (
        UniqueConstraint("class_level_id", "name", name="uq_section_class_level_name"),
    )

    name: Mapped[str] = mapped_column(String(50), nullable=False)
    class_level_id: Mapped[int] = mapped_column(
        ForeignKey("class_levels.id", name="fk_section_class_level_id"),
        nullable=False,
        index=True,
    )

    class_level: Mapped["ClassLevel"] = relationship(
        "ClassLevel", back_populates="sections", lazy="joined"
    )

    def __repr__(self) -> str:
        return f"<Section(id={self.id}, name='{self.name}', class_level_id={self.class_level_id})>"


class Subject(BaseModel):
    __tablename__ = "subjects"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    subject_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Subject(id={self.id}, code='{self.subject_code}')>"


class Enrollment(BaseModel):
    """
    Binds a student to a class level, section and academic year.
    Join point for attendance, marks and assignment submissions.
    """

    __tablename__ = "enrollments"

    __table_args__ = (
        UniqueConstraint("student_id", "academic_year_id", name="uq_enrollment_student_year"),
        UniqueConstraint(
            "section_id", "academic_year_id", "roll_number", name="uq_enrollment_section_year_roll"
        ),
        Index("idx_enrollment_class_section", "class_level_id", "section_id"),
    )

    student_id: Mapped[int] = mapped_column(
        ForeignKey("students.id", ondelete="CASCADE", name="fk_enrollment_student_id"),
        nullable=False,
        index=True,
    )
    class_level_id: Mapped[int] = mapped_column(
        ForeignKey("class_levels.id", name="fk_enrollment_class_level_id"), nullable=False
    )
    section_id: Mapped[int] = mapped_column(
        ForeignKey("sections.id", name="fk_enrollment_section_id"), nullable=False
    )
    academic_year_id: Mapped[int] = mapped_column(
        ForeignKey("academic_years.id", name="fk_enrollment_academic_year_id"),
        nullable=False,
        index=True,
    )
    roll_number: Mapped[int] = mapped_column(Integer, nullable=False)

    student: Mapped["Student"] = relationship(
        "Student", back_populates="enrollments"
    )
    class_level: Mapped["ClassLevel"] = relationship("ClassLevel", lazy="joined")
    section: Mapped["Section"] = relationship("Section", lazy="joined")
    academic_year: Mapped["AcademicYear"] = relationship("AcademicYear", lazy="joined")

    @property
    def class_name(self) -> Optional[str]:
        return self.class_level.name if self.class_level else None

    @property
    def section_name(self) -> Optional[str]:
        return self.section.name if self.section else None

    @property
    def academic_year_name(self) -> Optional[str]:
        return self.academic_year.year if self.academic_year else None

    def __repr__(self) -> str:
        return f"<Enrollment(id={self.id}, student_id={self.student_id}, roll={self.roll_number})>"


class TeacherClassAssignment(BaseModel):
    """Grants a teacher (staff row) visibility over a class section, optionally per subject."""

    __tablename__ = "teacher_class_assignments"

    __table_args__ = (
        UniqueConstraint(
            "teacher_id",
            "class_level_id",
            "section_id",
            "subject_id",
            name="uq_teacher_class_assignment",
        ),
    )

    teacher_id: Mapped[int] = mapped_column(
        ForeignKey("staff.id", ondelete="CASCADE", name="fk_tca_teacher_id"),
        nullable=False,
        index=True,
    )
    class_level_id: Mapped[int] = mapped_column(
        ForeignKey("class_levels.id", name="fk_tca_class_level_id"), nullable=False
    )
    section_id: Mapped[int] = mapped_column(
        ForeignKey("sections.id", name="fk_tca_section_id"), nullable=False
    )
    subject_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("subjects.id", name="fk_tca_subject_id"), nullable=True, default=None
    )

    class_level: Mapped["ClassLevel"] = relationship("ClassLevel", lazy="joined")
    section: Mapped["Section"] = relationship("Section", lazy="joined")
    teacher: Mapped["Staff"] = relationship("Staff", lazy="joined")
    subject: Mapped[Optional["Subject"]] = relationship("Subject", lazy="joined")

    @property
    def teacher_name(self) -> Optional[str]:
        return self.teacher.name if self.teacher else None

    @property
    def class_name(self) -> Optional[str]:
        return self.class_level.name if self.class_level else None

    @property
    def section_name(self) -> Optional[str]:
        return self.section.name if self.section else None

    @property
    def subject_name(self) -> Optional[str]:
        return self.subject.name if self.subject else None
