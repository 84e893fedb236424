import enum
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING, Optional

from app.core.db.base import BaseModel

if TYPE_CHECKING:
    from app.modules.students.models import Student


class BookIssueStatus(str, enum.Enum):
    ISSUED = "ISSUED"
    RETURNED = "RETURNED"
    OVERDUE = "OVERDUE"


class FineStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    WAIVED = "WAIVED"


class BookCategory(BaseModel):
    __tablename__ = "book_categories"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class Book(BaseModel):
    """
    Catalogue entry. available_copies drops on issue and rises on return.
    """

    __tablename__ = "books"

    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(255), nullable=False)
    isbn: Mapped[Optional[str]] = mapped_column(String(20), unique=True, nullable=True)
    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("book_categories.id", ondelete="SET NULL", name="fk_book_category_id"),
        nullable=True,
        index=True,
    )
    total_copies: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    available_copies: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    category: Mapped[Optional["BookCategory"]] = relationship("BookCategory", lazy="joined")


class BookIssue(BaseModel):
    __tablename__ = "book_issues"

    book_id: Mapped[int] = mapped_column(
        ForeignKey("books.id", ondelete="CASCADE", name="fk_book_issue_book_id"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[int] = mapped_column(
        ForeignKey("students.id", ondelete="CASCADE", name="fk_book_issue_student_id"),
        nullable=False,
        index=True,
    )
    issue_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[BookIssueStatus] = mapped_column(
        SQLEnum(BookIssueStatus, name="book_issue_status_enum", native_enum=False),
        nullable=False,
        default=BookIssueStatus.ISSUED,
        server_default=BookIssueStatus.ISSUED.value,
        index=True,
    )

    book: Mapped["Book"] = relationship("Book", lazy="joined")
    student: Mapped["Student"] = relationship("Student", lazy="joined")


class BookReturn(BaseModel):
    __tablename__ = "book_returns"

    book_issue_id: Mapped[int] = mapped_column(
        ForeignKey("book_issues.id", ondelete="CASCADE", name="fk_book_return_issue_id"),
        nullable=False,
        unique=True,
    )
    book_id: Mapped[int] = mapped_column(
        ForeignKey("books.id", ondelete="CASCADE", name="fk_book_return_book_id"),
        nullable=False,
    )
    return_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    condition: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    book: Mapped["Book"] = relationship("Book", lazy="joined")
    book_issue: Mapped["BookIssue"] = relationship("BookIssue", lazy="joined")


class LibraryFine(BaseModel):
    __tablename__ = "library_fines"

    book_issue_id: Mapped[int] = mapped_column(
        ForeignKey("book_issues.id", ondelete="CASCADE", name="fk_library_fine_issue_id"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[int] = mapped_column(
        ForeignKey("students.id", ondelete="CASCADE", name="fk_library_fine_student_id"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False)
    status: Mapped[FineStatus] = mapped_column(
        SQLEnum(FineStatus, name="fine_status_enum", native_enum=False),
        nullable=False,
        default=FineStatus.PENDING,
        server_default=FineStatus.PENDING.value,
    )
