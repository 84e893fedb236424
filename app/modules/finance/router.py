"""
Finance Router - fee heads, invoices, payments and expenses (admin and accountant).
"""

from datetime import date, datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.engine import get_db_util
from app.core.pagination import build_pagination_meta
from app.modules.users.auth import TokenData, require_finance_staff
from .service import FinanceService
from .models import InvoiceStatus
from .schemas import (
    CreateExpenseDto,
    CreateFeeHeadDto,
    CreateInvoiceDto,
    CreatePaymentDto,
    ExpenseListResponse,
    ExpenseResponse,
    FeeHeadResponse,
    FilterExpensesDto,
    FilterInvoicesDto,
    FilterPaymentsDto,
    InvoiceListResponse,
    InvoiceResponse,
    PaymentResponse,
    RecordPaymentResponse,
)

router = APIRouter(prefix="/admin/finance", tags=["finance"])


@router.get("/fee-heads", response_model=List[FeeHeadResponse])
async def list_fee_heads(
    search: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_finance_staff),
):
    return await FinanceService.find_fee_heads(db, search)


@router.post("/fee-heads", response_model=FeeHeadResponse, status_code=201)
async def create_fee_head(
    create_dto: CreateFeeHeadDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_finance_staff),
):
    fee_head = await FinanceService.create_fee_head(db, create_dto)
    await db.commit()
    return fee_head


@router.get("/invoices", response_model=InvoiceListResponse)
async def list_invoices(
    page: int = Query(1),
    limit: int = Query(10),
    search: Optional[str] = Query(None),
    status: Optional[InvoiceStatus] = Query(None),
    class_level_id: Optional[int] = Query(None, alias="classLevelId"),
    from_date: Optional[date] = Query(None, alias="fromDate"),
    to_date: Optional[date] = Query(None, alias="toDate"),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_finance_staff),
):
    filters = FilterInvoicesDto(
        page=page,
        limit=limit,
        search=search,
        status=status,
        class_level_id=class_level_id,
        from_date=from_date,
        to_date=to_date,
    )
    invoices, total, page, limit = await FinanceService.find_invoices(db, filters)
    return InvoiceListResponse(
        invoices=invoices, pagination=build_pagination_meta(total, page, limit)
    )


@router.post("/invoices", response_model=InvoiceResponse, status_code=201)
async def create_invoice(
    create_dto: CreateInvoiceDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_finance_staff),
):
    """Issue an invoice to a student; the total is the sum of its items"""
    invoice = await FinanceService.create_invoice(db, create_dto)
    await db.commit()
    return invoice


@router.post("/payments", response_model=RecordPaymentResponse, status_code=201)
async def record_payment(
    create_dto: CreatePaymentDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_finance_staff),
):
    """Record a payment against an invoice and update the invoice status"""
    payment, invoice = await FinanceService.record_payment(db, create_dto)
    await db.commit()
    return RecordPaymentResponse(payment=PaymentResponse.model_validate(payment), invoice=invoice)


@router.get("/payments", response_model=List[PaymentResponse])
async def list_payments(
    invoice_id: Optional[int] = Query(None, alias="invoiceId"),
    from_date: Optional[datetime] = Query(None, alias="fromDate"),
    to_date: Optional[datetime] = Query(None, alias="toDate"),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_finance_staff),
):
    filters = FilterPaymentsDto(invoice_id=invoice_id, from_date=from_date, to_date=to_date)
    return await FinanceService.find_payments(db, filters)


@router.post("/expenses", response_model=ExpenseResponse, status_code=201)
async def create_expense(
    create_dto: CreateExpenseDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_finance_staff),
):
    expense = await FinanceService.create_expense(db, create_dto)
    await db.commit()
    return expense


@router.get("/expenses", response_model=ExpenseListResponse)
async def list_expenses(
    page: int = Query(1),
    limit: int = Query(10),
    expense_head: Optional[str] = Query(None, alias="expenseHead"),
    from_date: Optional[datetime] = Query(None, alias="fromDate"),
    to_date: Optional[datetime] = Query(None, alias="toDate"),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_finance_staff),
):
    filters = FilterExpensesDto(
        page=page, limit=limit, expense_head=expense_head, from_date=from_date, to_date=to_date
    )
    expenses, total, page, limit = await FinanceService.find_expenses(db, filters)
    return ExpenseListResponse(
        expenses=[ExpenseResponse.model_validate(e) for e in expenses],
        pagination=build_pagination_meta(total, page, limit),
    )
