"""
FinanceService - fee heads, invoices, payments against invoices and
expense bookkeeping.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Tuple
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.sequences import next_code
from app.core.exceptions import ConflictError, NotFoundError
from app.core.pagination import paginate_query, normalize_pagination
from app.modules.academics.models import Enrollment
from app.modules.students.models import Student
from .models import Expense, FeeHead, Invoice, InvoiceItem, InvoiceStatus, Payment
from .schemas import (
    CreateExpenseDto,
    CreateFeeHeadDto,
    CreateInvoiceDto,
    CreatePaymentDto,
    FilterExpensesDto,
    FilterInvoicesDto,
    FilterPaymentsDto,
    InvoiceItemResponse,
    InvoiceResponse,
    InvoiceSummary,
)

logger = logging.getLogger(__name__)


class FinanceService:

    @staticmethod
    async def find_fee_heads(db: AsyncSession, search: Optional[str] = None) -> List[FeeHead]:
        query = select(FeeHead).where(FeeHead.deleted_at.is_(None))
        if search:
            term = f"%{search.strip()}%"
            query = query.where(or_(FeeHead.name.ilike(term), FeeHead.description.ilike(term)))
        result = await db.execute(query.order_by(FeeHead.name))
        return list(result.scalars().all())

    @staticmethod
    async def create_fee_head(db: AsyncSession, dto: CreateFeeHeadDto) -> FeeHead:
        """
        Raises:
            ConflictError: Fee head name already taken
        """
        existing = await db.scalar(select(FeeHead.id).where(FeeHead.name == dto.name))
        if existing:
            raise ConflictError(f"Fee head {dto.name} already exists")

        fee_head = FeeHead(**dto.model_dump())
        db.add(fee_head)
        await db.flush()
        return fee_head

    @staticmethod
    def to_invoice_response(invoice: Invoice, today: Optional[date] = None) -> InvoiceResponse:
        """Invoice with its paid total, outstanding balance and overdue flag."""
        today = today or datetime.utcnow().date()
        total_paid = sum(
            (p.amount_paid for p in invoice.payments if p.deleted_at is None), Decimal("0")
        )
        balance = max(invoice.total_amount - total_paid, Decimal("0"))
        return InvoiceResponse(
            id=invoice.id,
            invoice_number=invoice.invoice_number,
            student_id=invoice.student_id,
            student_name=invoice.student.name if invoice.student else None,
            student_code=invoice.student.student_id if invoice.student else None,
            issue_date=invoice.issue_date,
            due_date=invoice.due_date,
            total_amount=invoice.total_amount,
            total_paid=total_paid,
            balance=balance,
            status=invoice.status,
            is_overdue=balance > 0 and invoice.due_date < today,
            items=[
                InvoiceItemResponse.model_validate(item)
                for item in invoice.items
                if item.deleted_at is None
            ],
        )

    @staticmethod
    async def find_invoices(
        db: AsyncSession, filters: FilterInvoicesDto
    ) -> Tuple[List[InvoiceResponse], int, int, int]:
        """
        Paginated invoices, newest issue date first.

        Search matches the invoice number, the student's name or admission
        number. classLevelId keeps invoices of students enrolled in that class.
        """
        page, limit = normalize_pagination(filters.page, filters.limit)
        query = (
            select(Invoice)
            .join(Student, Invoice.student_id == Student.id)
            .where(Invoice.deleted_at.is_(None))
        )

        if filters.search:
            term = f"%{filters.search.strip()}%"
            query = query.where(
                or_(
                    Invoice.invoice_number.ilike(term),
                    Student.name.ilike(term),
                    Student.student_id.ilike(term),
                )
            )
        if filters.status:
            query = query.where(Invoice.status == filters.status)
        if filters.class_level_id:
            enrolled = select(Enrollment.student_id).where(
                Enrollment.class_level_id == filters.class_level_id,
                Enrollment.deleted_at.is_(None),
            )
            query = query.where(Invoice.student_id.in_(enrolled))
        if filters.from_date:
            query = query.where(Invoice.issue_date >= filters.from_date)
        if filters.to_date:
            query = query.where(Invoice.issue_date <= filters.to_date)

        query = query.order_by(Invoice.issue_date.desc(), Invoice.id.desc())
        invoices, total = await paginate_query(db, query, page, limit)

        today = datetime.utcnow().date()
        return (
            [FinanceService.to_invoice_response(i, today) for i in invoices],
            total,
            page,
            limit,
        )

    @staticmethod
    async def create_invoice(db: AsyncSession, dto: CreateInvoiceDto) -> InvoiceResponse:
        """
        Issue a PENDING invoice to one student. The total is the sum of the
        item amounts and the number is the next INV-YYYY-NNNN code.

        Raises:
            NotFoundError: Unknown student or fee head
        """
        student = await db.get(Student, dto.student_id)
        if not student or student.is_deleted:
            raise NotFoundError("Student", dto.student_id)

        fee_head_ids = [item.fee_head_id for item in dto.items]
        found = set(
            (
                await db.scalars(
                    select(FeeHead.id).where(
                        FeeHead.id.in_(fee_head_ids), FeeHead.deleted_at.is_(None)
                    )
                )
            ).all()
        )
        for fee_head_id in fee_head_ids:
            if fee_head_id not in found:
                raise NotFoundError("Fee head", fee_head_id)

        invoice = Invoice(
            invoice_number=await next_code(db, Invoice.invoice_number, "INV", 4),
            student_id=student.id,
            issue_date=dto.issue_date or datetime.utcnow().date(),
            due_date=dto.due_date,
            total_amount=sum((item.amount for item in dto.items), Decimal("0")),
            status=InvoiceStatus.PENDING,
        )
        db.add(invoice)
        await db.flush()
        for item in dto.items:
            db.add(InvoiceItem(invoice_id=invoice.id, fee_head_id=item.fee_head_id, amount=item.amount))
        await db.flush()

        logger.info(
            "Invoice %s of %s issued to student %s",
            invoice.invoice_number, invoice.total_amount, student.student_id,
        )
        invoice = await db.scalar(
            select(Invoice)
            .where(Invoice.id == invoice.id)
            .execution_options(populate_existing=True)
        )
        return FinanceService.to_invoice_response(invoice)


    @staticmethod
    async def record_payment(
        db: AsyncSession, dto: CreatePaymentDto
    ) -> Tuple[Payment, InvoiceSummary]:
        """
        Record a payment and bring the invoice status up to date.

        PAID once payments cover the total, PARTIALLY_PAID while something
        is paid, otherwise the status is left untouched.

        Raises:
            NotFoundError: Unknown invoice
        """
        invoice = await db.scalar(
            select(Invoice).where(Invoice.id == dto.invoice_id, Invoice.deleted_at.is_(None))
        )
        if not invoice:
            raise NotFoundError("Invoice", dto.invoice_id)

        payment = Payment(
            **dto.model_dump(exclude={"payment_date"}),
            payment_date=dto.payment_date or datetime.utcnow(),
        )
        db.add(payment)
        await db.flush()

        paid_amount = await db.scalar(
            select(func.sum(Payment.amount_paid)).where(
                Payment.invoice_id == invoice.id, Payment.deleted_at.is_(None)
            )
        ) or Decimal("0")

        if paid_amount >= invoice.total_amount:
            invoice.status = InvoiceStatus.PAID
        elif paid_amount > 0:
            invoice.status = InvoiceStatus.PARTIALLY_PAID
        await db.flush()

        logger.info(
            "Payment %s of %s recorded on invoice %s (%s)",
            payment.id, payment.amount_paid, invoice.invoice_number, invoice.status.value,
        )
        return payment, InvoiceSummary(
            id=invoice.id,
            invoice_number=invoice.invoice_number,
            total_amount=invoice.total_amount,
            paid_amount=paid_amount,
            status=invoice.status,
        )

    @staticmethod
    async def find_payments(db: AsyncSession, filters: FilterPaymentsDto) -> List[Payment]:
        query = select(Payment).where(Payment.deleted_at.is_(None))

        if filters.invoice_id:
            query = query.where(Payment.invoice_id == filters.invoice_id)
        if filters.from_date:
            query = query.where(Payment.payment_date >= filters.from_date)
        if filters.to_date:
            query = query.where(Payment.payment_date <= filters.to_date)

        query = query.order_by(Payment.payment_date.desc(), Payment.id.desc())
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def create_expense(db: AsyncSession, dto: CreateExpenseDto) -> Expense:
        expense = Expense(
            **dto.model_dump(exclude={"expense_date"}),
            expense_date=dto.expense_date or datetime.utcnow(),
        )
        db.add(expense)
        await db.flush()
        return expense

    @staticmethod
    async def find_expenses(
        db: AsyncSession, filters: FilterExpensesDto
    ) -> Tuple[List[Expense], int, int, int]:
        page, limit = normalize_pagination(filters.page, filters.limit)
        query = select(Expense).where(Expense.deleted_at.is_(None))

        if filters.expense_head:
            query = query.where(Expense.expense_head.ilike(f"%{filters.expense_head}%"))
        if filters.from_date:
            query = query.where(Expense.expense_date >= filters.from_date)
        if filters.to_date:
            query = query.where(Expense.expense_date <= filters.to_date)

        query = query.order_by(Expense.expense_date.desc(), Expense.id.desc())
        expenses, total = await paginate_query(db, query, page, limit)
        return expenses, total, page, limit
