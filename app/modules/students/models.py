from datetime import date
from sqlalchemy import Date, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING, Optional

from app.core.db.base import BaseModel

if TYPE_CHECKING:
    from app.modules.academics.models import Enrollment


class Guardian(BaseModel):
    """
    Parent/guardian of one or more students.
    user_id links the login account used for the guardian dashboard.
    """

    __tablename__ = "guardians"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    relation_to_student: Mapped[str] = mapped_column(String(50), nullable=False)
    contact_number: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    occupation: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL", name="fk_guardian_user_id"),
        nullable=True,
        unique=True,
    )

    students: Mapped[list["Student"]] = relationship(
        "Student", back_populates="guardian"
    )

    def __repr__(self) -> str:
        return f"<Guardian(id={self.id}, name='{self.name}')>"


class Student(BaseModel):
    """
    Student record. student_id is the human readable admission number (STU-2024-0001).
    """

    __tablename__ = "students"

    student_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    gender: Mapped[str] = mapped_column(String(20), nullable=False)
    blood_group: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    religion: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    nationality: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    admission_date: Mapped[date] = mapped_column(Date, nullable=False)
    present_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    permanent_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    guardian_id: Mapped[int] = mapped_column(
        ForeignKey("guardians.id", name="fk_student_guardian_id"), nullable=False, index=True
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL", name="fk_student_user_id"),
        nullable=True,
        unique=True,
    )

    guardian: Mapped["Guardian"] = relationship(
        "Guardian", back_populates="students", lazy="joined"
    )
    enrollments: Mapped[list["Enrollment"]] = relationship(
        "Enrollment", back_populates="student", lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, student_id='{self.student_id}')>"
