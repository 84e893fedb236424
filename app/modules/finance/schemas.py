"""
Finance DTOs - fee heads, invoices, payments and expenses
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.schemas import CamelModel
from .models import InvoiceStatus, PaymentMethod


class CreatePaymentDto(CamelModel):
    invoice_id: int
    amount_paid: Decimal = Field(..., gt=0)
    payment_method: PaymentMethod
    payment_date: Optional[datetime] = Field(None, description="Defaults to now")
    transaction_id: Optional[str] = Field(None, max_length=100)
    remarks: Optional[str] = None


class FilterPaymentsDto(BaseModel):
    invoice_id: Optional[int] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentResponse(CamelModel):
    id: int
    invoice_id: int
    payment_date: datetime
    amount_paid: Decimal
    payment_method: PaymentMethod
    transaction_id: Optional[str] = None
    remarks: Optional[str] = None


class InvoiceSummary(CamelModel):
    id: int
    invoice_number: str
    total_amount: Decimal
    paid_amount: Decimal
    status: InvoiceStatus


class RecordPaymentResponse(CamelModel):
    payment: PaymentResponse
    invoice: InvoiceSummary


class CreateExpenseDto(CamelModel):
    expense_head: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0)
    expense_date: Optional[datetime] = Field(None, description="Defaults to now")
    description: Optional[str] = None


class FilterExpensesDto(BaseModel):
    page: Optional[int] = 1
    limit: Optional[int] = 10
    expense_head: Optional[str] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class ExpenseResponse(CamelModel):
    id: int
    expense_head: str
    amount: Decimal
    expense_date: datetime
    description: Optional[str] = None


class ExpenseListResponse(CamelModel):
    expenses: List[ExpenseResponse]
    pagination: dict


class CreateFeeHeadDto(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class FeeHeadResponse(CamelModel):
    id: int
    name: str
    description: Optional[str] = None


class InvoiceItemDto(CamelModel):
    fee_head_id: int
    amount: Decimal = Field(..., gt=0)


class CreateInvoiceDto(CamelModel):
    student_id: int
    issue_date: Optional[date] = Field(None, description="Defaults to today")
    due_date: date
    items: List[InvoiceItemDto] = Field(..., min_length=1)

    @field_validator("items")
    @classmethod
    def unique_fee_heads(cls, items: List[InvoiceItemDto]) -> List[InvoiceItemDto]:
        fee_head_ids = [item.fee_head_id for item in items]
        if len(set(fee_head_ids)) != len(fee_head_ids):
            raise ValueError("Each fee head can appear only once per invoice")
        return items

    @model_validator(mode="after")
    def check_dates(self):
        if self.issue_date and self.due_date < self.issue_date:
            raise ValueError("dueDate cannot be before issueDate")
        return self


class FilterInvoicesDto(BaseModel):
    page: Optional[int] = 1
    limit: Optional[int] = 10
    search: Optional[str] = None
    status: Optional[InvoiceStatus] = None
    class_level_id: Optional[int] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None

    class Config:
        from_attributes = True


class InvoiceItemResponse(CamelModel):
    id: int
    fee_head_id: int
    fee_head_name: Optional[str] = None
    amount: Decimal


class InvoiceResponse(CamelModel):
    id: int
    invoice_number: str
    student_id: int
    student_name: Optional[str] = None
    student_code: Optional[str] = None
    issue_date: date
    due_date: date
    total_amount: Decimal
    total_paid: Decimal
    balance: Decimal
    status: InvoiceStatus
    is_overdue: bool
    items: List[InvoiceItemResponse] = []


class InvoiceListResponse(CamelModel):
    invoices: List[InvoiceResponse]
    pagination: dict
