import enum
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    Index,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING, Optional

from app.core.db.base import BaseModel

if TYPE_CHECKING:
    from app.modules.students.models import Student


class InvoiceStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    OVERDUE = "OVERDUE"


# Invoices whose amount still counts as outstanding
OUTSTANDING_STATUSES = (InvoiceStatus.PENDING, InvoiceStatus.OVERDUE)


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    MOBILE_BANKING = "MOBILE_BANKING"
    ONLINE_GATEWAY = "ONLINE_GATEWAY"


class FeeHead(BaseModel):
    """Fee category such as tuition, transport or library."""

    __tablename__ = "fee_heads"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Invoice(BaseModel):
    """
    Fee invoice issued to a student.
    Extends BaseModel which provides: id, created_at, updated_at, deleted_at
    """

    __tablename__ = "invoices"

    __table_args__ = (
        Index("idx_invoice_student_status", "student_id", "status"),
    )

    invoice_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    student_id: Mapped[int] = mapped_column(
        ForeignKey("students.id", ondelete="CASCADE", name="fk_invoice_student_id"),
        nullable=False,
    )
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2), nullable=False
    )
    status: Mapped[InvoiceStatus] = mapped_column(
        SQLEnum(InvoiceStatus, name="invoice_status_enum", native_enum=False),
        nullable=False,
        default=InvoiceStatus.PENDING,
        server_default=InvoiceStatus.PENDING.value,
        index=True,
    )

    student: Mapped["Student"] = relationship("Student", lazy="joined")
    items: Mapped[list["InvoiceItem"]] = relationship(
        "InvoiceItem", back_populates="invoice", cascade="all, delete-orphan", lazy="selectin"
    )
    payments: Mapped[list["Payment"]] = relationship(
        "Payment", back_populates="invoice", cascade="all, delete-orphan", lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number='{self.invoice_number}', status={self.status.value})>"


class InvoiceItem(BaseModel):
    __tablename__ = "invoice_items"

    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE", name="fk_invoice_item_invoice_id"),
        nullable=False,
        index=True,
    )
    fee_head_id: Mapped[int] = mapped_column(
        ForeignKey("fee_heads.id", name="fk_invoice_item_fee_head_id"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")
    fee_head: Mapped["FeeHead"] = relationship("FeeHead", lazy="joined")

    @property
    def fee_head_name(self) -> Optional[str]:
        return self.fee_head.name if self.fee_head else None


class Payment(BaseModel):
    """Payment received against an invoice."""

    __tablename__ = "payments"

    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE", name="fk_payment_invoice_id"),
        nullable=False,
        index=True,
    )
    payment_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), nullable=False, index=True
    )
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SQLEnum(PaymentMethod, name="payment_method_enum", native_enum=False),
        nullable=False,
    )
    transaction_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, unique=True)
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="payments")

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, invoice_id={self.invoice_id}, amount={self.amount_paid})>"


class Expense(BaseModel):
    """School expense. expense_head is the free-text category."""

    __tablename__ = "expenses"

    expense_head: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False)
    expense_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), nullable=False, index=True
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
