"""
Dashboard services - per-role statistics.

Every service follows the same shape: resolve the principal's own record,
fire the independent reads concurrently through gather_db() (one session
per read), then reduce the results in memory with the helpers from
.aggregation. Nothing is written and nothing is cached.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from operator import attrgetter
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import joinedload

from app.core.db.engine import fallback, gather_db, run_db
from app.core.error_handler import error_boundary
from app.core.exceptions import NotFoundError
from app.core.utils import percentage, ratio_percent, to_decimal
from app.modules.academics.models import (
    AcademicYear,
    ClassLevel,
    Enrollment,
    Subject,
    TeacherClassAssignment,
)
from app.modules.academics.service import AcademicsService
from app.modules.assignments.models import Assignment, AssignmentSubmission, SubmissionStatus
from app.modules.attendance.models import ATTENDED_STATUSES, StudentAttendance
from app.modules.exams.models import ExamSchedule, Marks
from app.modules.finance.models import (
    OUTSTANDING_STATUSES,
    Expense,
    FeeHead,
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    Payment,
)
from app.modules.library.models import (
    Book,
    BookCategory,
    BookIssue,
    BookIssueStatus,
    BookReturn,
    FineStatus,
    LibraryFine,
)
from app.modules.notifications.models import Notification, NotificationStatus
from app.modules.staff.models import LeaveRequest, LeaveStatus, Staff
from app.modules.staff.service import StaffService
from app.modules.students.models import Guardian, Student
from app.modules.users.auth import TokenData, ensure_owner
from .aggregation import average, count_by, merge_recent, month_start, monthly_series, rate_of, time_ago
from .schemas import (
    AcademicYearInfo,
    AccountantDashboardStats,
    ActivityItem,
    AdminDashboardStats,
    AdminMetrics,
    AttendanceAlert,
    CategorySummary,
    ChildFeeStatus,
    ChildProgress,
    ClassOverview,
    ExpenseCategorySummary,
    FeeHeadSummary,
    FeesSummary,
    FeeStatusSummary,
    FinanceMetrics,
    GuardianDashboardStats,
    HealthIndicators,
    InvoiceStats,
    LibrarianDashboardStats,
    LibraryInsights,
    LibraryMetrics,
    MonthlyAmount,
    PopularBook,
    RecentGrade,
    ReportingPeriod,
    StudentAssignmentItem,
    StudentDashboardStats,
    TeacherDashboardStats,
    TransactionItem,
    UpcomingEvent,
)

logger = logging.getLogger(__name__)

SessionFactory = async_sessionmaker[AsyncSession]

ADMIN_ACTIVITY_LIMIT = 10
TRANSACTION_LIMIT = 15
LIBRARY_ACTIVITY_LIMIT = 10
STUDENT_ACTIVITY_LIMIT = 5
GUARDIAN_ACTIVITY_LIMIT = 10
TEACHER_ACTIVITY_LIMIT = 10

# Attendance below this share raises a guardian alert; below the second it is "high"
LOW_ATTENDANCE_THRESHOLD = 80
CRITICAL_ATTENDANCE_THRESHOLD = 60


def _count(model, *criteria):
    """Read returning the number of live rows of ``model`` matching ``criteria``."""

    async def _query(db: AsyncSession) -> int:
        return await db.scalar(
            select(func.count(model.id)).where(model.deleted_at.is_(None), *criteria)
        ) or 0

    return _query


def _revenue_rows(since: datetime):
    """Read returning (payment_date, amount_paid) for payments made on or after ``since``."""

    async def revenue_rows(db: AsyncSession) -> List[Tuple[datetime, Decimal]]:
        result = await db.execute(
            select(Payment.payment_date, Payment.amount_paid).where(
                Payment.deleted_at.is_(None), Payment.payment_date >= since
            )
        )
        return [tuple(row) for row in result.all()]

    return revenue_rows


def _sum(column, *criteria):
    """Read returning SUM(column) over live rows; NULL sums come back as 0."""
    model = column.class_

    async def _query(db: AsyncSession):
        return await db.scalar(
            select(func.sum(column)).where(model.deleted_at.is_(None), *criteria)
        ) or 0

    return _query


def _current_enrollment(student: Student) -> Optional[Enrollment]:
    """Enrollment in the current academic year, else the latest one."""
    live = [e for e in student.enrollments if not e.is_deleted]
    if not live:
        return None
    return max(live, key=lambda e: (e.academic_year.is_current, e.academic_year.start_date))


def _grade_activity(mark: Marks, title: str) -> ActivityItem:
    schedule = mark.exam_schedule
    grade = f" - Grade {mark.grade.grade_name}" if mark.grade else ""
    return ActivityItem(
        id=f"grade-{mark.id}",
        type="grade",
        title=title,
        description=(
            f"{schedule.exam.name} {schedule.subject.name}: "
            f"{mark.marks_obtained}/{schedule.full_marks} ({mark.percentage}%){grade}"
        ),
        timestamp=mark.created_at,
        metadata={
            "subject": schedule.subject.name,
            "exam": schedule.exam.name,
            "marks": mark.marks_obtained,
            "fullMarks": schedule.full_marks,
            "percentage": mark.percentage,
            "grade": mark.grade.grade_name if mark.grade else None,
        },
    )


class AdminDashboardService:
    """School-wide counts, rates and the recent activity feed."""

    @staticmethod
    async def get_stats(session_factory: SessionFactory) -> AdminDashboardStats:
        async with error_boundary("Failed to fetch admin dashboard statistics"):
            now = datetime.utcnow()
            today = now.date()
            week_ahead = today + timedelta(days=7)

            async def recent_students(db: AsyncSession) -> List[Student]:
                result = await db.execute(
                    select(Student)
                    .where(Student.deleted_at.is_(None))
                    .order_by(Student.created_at.desc(), Student.id.desc())
                    .limit(5)
                )
                return list(result.unique().scalars().all())

            async def recent_staff(db: AsyncSession) -> List[Staff]:
                result = await db.execute(
                    select(Staff)
                    .where(Staff.deleted_at.is_(None))
                    .order_by(Staff.updated_at.desc(), Staff.id.desc())
                    .limit(3)
                )
                return list(result.unique().scalars().all())

            async def pending_leave(db: AsyncSession) -> Tuple[int, Optional[datetime]]:
                row = (await db.execute(
                    select(func.count(LeaveRequest.id), func.max(LeaveRequest.created_at)).where(
                        LeaveRequest.deleted_at.is_(None),
                        LeaveRequest.status == LeaveStatus.PENDING,
                    )
                )).one()
                return row[0] or 0, row[1]

            async def upcoming_exams(db: AsyncSession) -> Tuple[int, Optional[datetime]]:
                row = (await db.execute(
                    select(func.count(ExamSchedule.id), func.max(ExamSchedule.created_at)).where(
                        ExamSchedule.deleted_at.is_(None),
                        ExamSchedule.exam_date >= today,
                        ExamSchedule.exam_date <= week_ahead,
                    )
                )).one()
                return row[0] or 0, row[1]

            async def enrollments(db: AsyncSession) -> Tuple[Optional[AcademicYear], int]:
                year = await AcademicsService.get_current_year(db)
                criteria = [Enrollment.academic_year_id == year.id] if year else []
                return year, await _count(Enrollment, *criteria)(db)

            (
                total_students,
                total_staff,
                total_subjects,
                total_classes,
                students,
                staff,
                (pending_leave_count, latest_leave_at),
                (upcoming_exam_count, latest_exam_at),
                (current_year, total_enrollments),
                total_invoices,
                pending_invoices,
            ) = await gather_db(
                _count(Student),
                _count(Staff),
                _count(Subject),
                _count(ClassLevel),
                recent_students,
                recent_staff,
                pending_leave,
                upcoming_exams,
                enrollments,
                _count(Invoice),
                _count(Invoice, Invoice.status == InvoiceStatus.PENDING),
                session_factory=session_factory,
            )

            enrollment_activities = []
            for student in students:
                enrollment = _current_enrollment(student)
                placement = (
                    f"{enrollment.class_name} - {enrollment.section_name}" if enrollment else "no class yet"
                )
                enrollment_activities.append(
                    ActivityItem(
                        id=f"student-{student.id}",
                        type="enrollment",
                        title="New student enrolled",
                        description=f"{student.name} ({student.student_id}) joined {placement}",
                        timestamp=student.created_at,
                        metadata={"studentId": student.id, "studentIdNumber": student.student_id},
                    )
                )

            staff_activities = [
                ActivityItem(
                    id=f"staff-{member.id}",
                    type="staff_update",
                    title="Staff record updated",
                    description=f"{member.name} - {member.designation}",
                    timestamp=member.updated_at,
                    metadata={"staffId": member.id, "department": member.department},
                )
                for member in staff
            ]

            system_activities = []
            if pending_leave_count:
                system_activities.append(
                    ActivityItem(
                        id="system-leave-requests",
                        type="system",
                        title="Pending leave requests",
                        description=f"{pending_leave_count} leave request(s) awaiting review",
                        timestamp=latest_leave_at or now,
                        metadata={"count": pending_leave_count},
                    )
                )
            if upcoming_exam_count:
                system_activities.append(
                    ActivityItem(
                        id="academic-upcoming-exams",
                        type="academic",
                        title="Upcoming exams",
                        description=f"{upcoming_exam_count} exam paper(s) in the next 7 days",
                        timestamp=latest_exam_at or now,
                        metadata={"count": upcoming_exam_count},
                    )
                )

            enrollment_rate = percentage(total_enrollments, total_students)
            invoice_completion_rate = percentage(total_invoices - pending_invoices, total_invoices)

            return AdminDashboardStats(
                total_students=total_students,
                total_staff=total_staff,
                active_courses=total_subjects,
                total_classes=total_classes,
                current_academic_year=AcademicYearInfo(
                    id=current_year.id,
                    name=current_year.year,
                    start_date=current_year.start_date,
                    end_date=current_year.end_date,
                    is_active=current_year.is_current,
                ) if current_year else None,
                total_enrollments=total_enrollments,
                enrollment_rate=enrollment_rate,
                total_invoices=total_invoices,
                pending_invoices=pending_invoices,
                invoice_completion_rate=invoice_completion_rate,
                pending_tasks=pending_leave_count + upcoming_exam_count + pending_invoices,
                pending_leave_requests=pending_leave_count,
                upcoming_exams=upcoming_exam_count,
                metrics=AdminMetrics(
                    enrollment_rate=enrollment_rate,
                    invoice_completion_rate=invoice_completion_rate,
                ),
                recent_activities=merge_recent(
                    enrollment_activities,
                    staff_activities,
                    system_activities,
                    limit=ADMIN_ACTIVITY_LIMIT,
                ),
                last_updated=now,
            )


class AccountantDashboardService:
    """Revenue, expenses, invoice health and the recent transaction feed."""

    @staticmethod
    async def get_stats(session_factory: SessionFactory) -> AccountantDashboardStats:
        async with error_boundary("Failed to fetch financial statistics"):
            now = datetime.utcnow()
            start_of_year = datetime(now.year, 1, 1)
            start_of_month = datetime(now.year, now.month, 1)
            chart_start = datetime.combine(month_start(now, -11), datetime.min.time())

            async def invoice_counts(db: AsyncSession) -> Dict[InvoiceStatus, int]:
                result = await db.execute(
                    select(Invoice.status, func.count(Invoice.id))
                    .where(Invoice.deleted_at.is_(None))
                    .group_by(Invoice.status)
                )
                return {status: count for status, count in result.all()}

            async def recent_payments(db: AsyncSession) -> List[Payment]:
                result = await db.execute(
                    select(Payment)
                    .where(Payment.deleted_at.is_(None))
                    .options(joinedload(Payment.invoice).joinedload(Invoice.student))
                    .order_by(Payment.payment_date.desc(), Payment.id.desc())
                    .limit(10)
                )
                return list(result.unique().scalars().all())

            async def recent_expenses(db: AsyncSession) -> List[Expense]:
                result = await db.execute(
                    select(Expense)
                    .where(Expense.deleted_at.is_(None))
                    .order_by(Expense.expense_date.desc(), Expense.id.desc())
                    .limit(10)
                )
                return list(result.scalars().all())

            async def fee_head_totals(db: AsyncSession) -> List[tuple]:
                result = await db.execute(
                    select(FeeHead.id, FeeHead.name, Invoice.status, func.sum(InvoiceItem.amount))
                    .select_from(FeeHead)
                    .outerjoin(
                        InvoiceItem,
                        and_(InvoiceItem.fee_head_id == FeeHead.id, InvoiceItem.deleted_at.is_(None)),
                    )
                    .outerjoin(
                        Invoice,
                        and_(Invoice.id == InvoiceItem.invoice_id, Invoice.deleted_at.is_(None)),
                    )
                    .where(FeeHead.deleted_at.is_(None))
                    .group_by(FeeHead.id, FeeHead.name, Invoice.status)
                    .order_by(FeeHead.name)
                )
                return list(result.all())

            async def expenses_by_head(db: AsyncSession) -> List[tuple]:
                total = func.sum(Expense.amount)
                result = await db.execute(
                    select(Expense.expense_head, total)
                    .where(Expense.deleted_at.is_(None), Expense.expense_date >= start_of_year)
                    .group_by(Expense.expense_head)
                    .order_by(desc(total))
                )
                return list(result.all())

            (
                total_revenue,
                monthly_revenue,
                total_expenses,
                monthly_expenses,
                status_counts,
                payments,
                expenses,
                chart_rows,
                fee_rows,
                expense_rows,
                pending_payments,
            ) = await gather_db(
                _sum(Payment.amount_paid, Payment.payment_date >= start_of_year),
                _sum(Payment.amount_paid, Payment.payment_date >= start_of_month),
                _sum(Expense.amount, Expense.expense_date >= start_of_year),
                _sum(Expense.amount, Expense.expense_date >= start_of_month),
                invoice_counts,
                recent_payments,
                recent_expenses,
                fallback(_revenue_rows(chart_start), []),
                fee_head_totals,
                expenses_by_head,
                _sum(Invoice.total_amount, Invoice.status.in_(OUTSTANDING_STATUSES)),
                session_factory=session_factory,
            )

            total_revenue = to_decimal(total_revenue)
            total_expenses = to_decimal(total_expenses)
            monthly_revenue = to_decimal(monthly_revenue)
            monthly_expenses = to_decimal(monthly_expenses)
            net_profit = total_revenue - total_expenses
            monthly_net_profit = monthly_revenue - monthly_expenses

            paid = status_counts.get(InvoiceStatus.PAID, 0)
            pending = status_counts.get(InvoiceStatus.PENDING, 0)
            overdue = status_counts.get(InvoiceStatus.OVERDUE, 0)
            total_invoices = sum(status_counts.values())

            profit_margin = ratio_percent(net_profit, total_revenue)
            metrics = FinanceMetrics(
                profit_margin=profit_margin,
                collection_rate=percentage(paid, total_invoices),
                expense_ratio=ratio_percent(total_expenses, total_revenue),
            )

            fee_heads: Dict[int, FeeHeadSummary] = {}
            for fee_head_id, name, status, amount in fee_rows:
                summary = fee_heads.setdefault(
                    fee_head_id,
                    FeeHeadSummary(
                        id=fee_head_id,
                        name=name,
                        total_collected=Decimal("0"),
                        total_pending=Decimal("0"),
                        total_amount=Decimal("0"),
                    ),
                )
                if status == InvoiceStatus.PAID:
                    summary.total_collected += to_decimal(amount)
                elif status in OUTSTANDING_STATUSES:
                    summary.total_pending += to_decimal(amount)
                summary.total_amount = summary.total_collected + summary.total_pending

            payment_items = [
                TransactionItem(
                    id=f"payment-{p.id}",
                    type="payment",
                    amount=p.amount_paid,
                    description=(
                        f"Payment from {p.invoice.student.name} ({p.invoice.student.student_id})"
                        f" - Invoice {p.invoice.invoice_number}"
                    ),
                    date=p.payment_date,
                    status="PAID",
                    metadata={
                        "paymentMethod": p.payment_method.value,
                        "transactionId": p.transaction_id,
                        "studentName": p.invoice.student.name,
                        "invoiceNumber": p.invoice.invoice_number,
                    },
                )
                for p in payments
            ]
            expense_items = [
                TransactionItem(
                    id=f"expense-{e.id}",
                    type="expense",
                    amount=e.amount,
                    description=e.description or f"{e.expense_head} expense",
                    date=e.expense_date,
                    category=e.expense_head,
                    metadata={"expenseHead": e.expense_head},
                )
                for e in expenses
            ]

            if profit_margin > 20:
                expense_control = "Excellent"
            elif profit_margin > 10:
                expense_control = "Good"
            else:
                expense_control = "Needs Attention"

            return AccountantDashboardStats(
                total_revenue=total_revenue,
                total_expenses=total_expenses,
                net_profit=net_profit,
                monthly_revenue=monthly_revenue,
                monthly_expenses=monthly_expenses,
                monthly_net_profit=monthly_net_profit,
                pending_payments=to_decimal(pending_payments),
                invoice_stats=InvoiceStats(
                    total=total_invoices, paid=paid, pending=pending, overdue=overdue
                ),
                metrics=metrics,
                monthly_revenue_chart=[
                    MonthlyAmount(**point) for point in monthly_series(chart_rows, now)
                ],
                fee_heads=list(fee_heads.values()),
                expense_categories=[
                    ExpenseCategorySummary(category=head, amount=to_decimal(amount))
                    for head, amount in expense_rows
                ],
                recent_transactions=merge_recent(
                    payment_items, expense_items, limit=TRANSACTION_LIMIT, key=attrgetter("date")
                ),
                health_indicators=HealthIndicators(
                    cash_flow="Positive" if monthly_net_profit > 0 else "Negative",
                    collection_efficiency="Good" if paid > pending else "Needs Improvement",
                    expense_control=expense_control,
                ),
                reporting_period=ReportingPeriod(year=now.year, month=now.month),
                last_updated=now,
            )


class LibrarianDashboardService:
    """Collection size, circulation, fines and the recent issue/return feed."""

    @staticmethod
    async def get_stats(session_factory: SessionFactory) -> LibrarianDashboardStats:
        async with error_boundary("Failed to fetch library statistics"):
            now = datetime.utcnow()

            async def recent_issues(db: AsyncSession) -> List[BookIssue]:
                result = await db.execute(
                    select(BookIssue)
                    .where(BookIssue.deleted_at.is_(None))
                    .order_by(BookIssue.issue_date.desc(), BookIssue.id.desc())
                    .limit(5)
                )
                return list(result.unique().scalars().all())

            async def recent_returns(db: AsyncSession) -> List[BookReturn]:
                result = await db.execute(
                    select(BookReturn)
                    .where(BookReturn.deleted_at.is_(None))
                    .order_by(BookReturn.return_date.desc(), BookReturn.id.desc())
                    .limit(5)
                )
                return list(result.unique().scalars().all())

            async def popular_books(db: AsyncSession) -> List[tuple]:
                issue_count = func.count(BookIssue.id).label("issue_count")
                result = await db.execute(
                    select(
                        Book.id,
                        Book.title,
                        Book.author,
                        Book.available_copies,
                        BookCategory.name,
                        issue_count,
                    )
                    .outerjoin(BookCategory, Book.category_id == BookCategory.id)
                    .outerjoin(
                        BookIssue,
                        and_(BookIssue.book_id == Book.id, BookIssue.deleted_at.is_(None)),
                    )
                    .where(Book.deleted_at.is_(None))
                    .group_by(
                        Book.id, Book.title, Book.author, Book.available_copies, BookCategory.name
                    )
                    .order_by(desc(issue_count), Book.title)
                    .limit(5)
                )
                return list(result.all())

            async def categories(db: AsyncSession) -> List[tuple]:
                result = await db.execute(
                    select(BookCategory.id, BookCategory.name, func.count(Book.id))
                    .outerjoin(
                        Book, and_(Book.category_id == BookCategory.id, Book.deleted_at.is_(None))
                    )
                    .where(BookCategory.deleted_at.is_(None))
                    .group_by(BookCategory.id, BookCategory.name)
                    .order_by(BookCategory.name)
                )
                return list(result.all())

            (
                total_books,
                total_copies,
                available_copies,
                issued_books,
                overdue_books,
                total_fines,
                pending_fines,
                issues,
                returns,
                popular_rows,
                category_rows,
            ) = await gather_db(
                _count(Book),
                _sum(Book.total_copies),
                _sum(Book.available_copies),
                _count(BookIssue, BookIssue.status == BookIssueStatus.ISSUED),
                _count(BookIssue, BookIssue.status == BookIssueStatus.OVERDUE),
                _sum(LibraryFine.amount),
                _sum(LibraryFine.amount, LibraryFine.status == FineStatus.PENDING),
                recent_issues,
                recent_returns,
                popular_books,
                categories,
                session_factory=session_factory,
            )

            issue_activities = [
                ActivityItem(
                    id=f"issue-{issue.id}",
                    type="issue",
                    title="Book issued",
                    description=f"'{issue.book.title}' issued to {issue.student.name}",
                    timestamp=issue.issue_date,
                    time_ago=time_ago(issue.issue_date, now),
                    metadata={"bookId": issue.book_id, "studentId": issue.student_id},
                )
                for issue in issues
            ]
            return_activities = [
                ActivityItem(
                    id=f"return-{record.id}",
                    type="return",
                    title="Book returned",
                    description=f"'{record.book.title}' returned by {record.book_issue.student.name}",
                    timestamp=record.return_date,
                    time_ago=time_ago(record.return_date, now),
                    metadata={"bookId": record.book_id, "condition": record.condition},
                )
                for record in returns
            ]

            category_summaries = [
                CategorySummary(id=cid, name=name, book_count=count)
                for cid, name, count in category_rows
            ]
            pending_fines = to_decimal(pending_fines)
            most_active = (
                max(category_summaries, key=attrgetter("book_count")).name
                if category_summaries
                else None
            )

            return LibrarianDashboardStats(
                total_books=total_books,
                total_copies=int(total_copies),
                available_books=int(available_copies),
                issued_books=issued_books,
                overdue_books=overdue_books,
                total_fines=to_decimal(total_fines),
                pending_fines=pending_fines,
                metrics=LibraryMetrics(
                    utilization_rate=percentage(total_copies - available_copies, total_copies),
                    overdue_rate=percentage(overdue_books, issued_books),
                    average_books_per_category=(
                        round(total_books / len(category_summaries)) if category_summaries else 0
                    ),
                    collection_health="Good" if available_copies > 0 else "Needs Attention",
                ),
                popular_books=[
                    PopularBook(
                        id=bid,
                        title=title,
                        author=author,
                        available_copies=available,
                        category=category,
                        issue_count=count,
                    )
                    for bid, title, author, available, category, count in popular_rows
                ],
                categories=category_summaries,
                recent_activities=merge_recent(
                    issue_activities, return_activities, limit=LIBRARY_ACTIVITY_LIMIT
                ),
                insights=LibraryInsights(
                    most_active_category=most_active,
                    collection_size=total_books,
                    needs_attention=overdue_books > 10 or pending_fines > 1000,
                ),
                last_updated=now,
            )


def _unread_notifications(user_id: int):
    return _count(
        Notification,
        Notification.user_id == user_id,
        Notification.status != NotificationStatus.READ,
    )


def _assignment_status(assignment: Assignment, submission: Optional[AssignmentSubmission], now: datetime) -> str:
    if submission:
        return "graded" if submission.status == SubmissionStatus.GRADED else "submitted"
    return "overdue" if assignment.due_date < now else "pending"


class StudentDashboardService:
    """The signed-in student's assignments, attendance, grades and fees."""

    @staticmethod
    async def _find_student(db: AsyncSession, principal: TokenData) -> Tuple[Student, Optional[Enrollment]]:
        """
        Raises:
            NotFoundError: No student record for this account
        """
        result = await db.execute(
            select(Student)
            .where(
                Student.deleted_at.is_(None),
                or_(Student.user_id == principal.user_id, Student.email == principal.email),
            )
            .order_by(Student.user_id.is_(None), Student.id)
            .limit(1)
        )
        student = result.unique().scalar_one_or_none()
        if not student:
            raise NotFoundError("Student record")
        return student, await AcademicsService.find_current_enrollment(db, student.id)

    @staticmethod
    async def get_stats(
        session_factory: SessionFactory,
        principal: TokenData,
        requested_user_id: Optional[int] = None,
    ) -> StudentDashboardStats:
        ensure_owner(principal, requested_user_id)

        async with error_boundary("Failed to fetch student dashboard statistics"):
            now = datetime.utcnow()
            today = now.date()

            student, enrollment = await run_db(
                lambda db: StudentDashboardService._find_student(db, principal),
                session_factory,
            )

            async def latest_invoice(db: AsyncSession) -> Optional[Invoice]:
                result = await db.execute(
                    select(Invoice)
                    .where(Invoice.student_id == student.id, Invoice.deleted_at.is_(None))
                    .order_by(Invoice.issue_date.desc(), Invoice.id.desc())
                    .limit(1)
                )
                return result.unique().scalar_one_or_none()

            unread, invoice = await gather_db(
                _unread_notifications(principal.user_id),
                latest_invoice,
                session_factory=session_factory,
            )
            fee_status = FeeStatusSummary(
                invoice_number=invoice.invoice_number,
                status=invoice.status.value,
                total_amount=invoice.total_amount,
                due_date=invoice.due_date,
            ) if invoice else None

            if not enrollment:
                logger.info("Student %s has no enrollment, returning empty stats", student.student_id)
                return StudentDashboardStats(
                    pending_assignments=0,
                    submitted_assignments=0,
                    graded_assignments=0,
                    overdue_assignments=0,
                    average_grade=0.0,
                    attendance_rate=0.0,
                    assignment_completion=0.0,
                    upcoming_exams=0,
                    unread_notifications=unread,
                    fee_status=fee_status,
                    assignments=[],
                    recent_activities=[],
                    last_updated=now,
                )

            async def assignments(db: AsyncSession):
                result = await db.execute(
                    select(Assignment)
                    .where(
                        Assignment.deleted_at.is_(None),
                        Assignment.class_level_id == enrollment.class_level_id,
                        Assignment.section_id == enrollment.section_id,
                    )
                    .order_by(Assignment.due_date.desc())
                    .limit(20)
                )
                rows = list(result.unique().scalars().all())
                submissions = await db.execute(
                    select(AssignmentSubmission).where(
                        AssignmentSubmission.enrollment_id == enrollment.id,
                        AssignmentSubmission.assignment_id.in_([a.id for a in rows]),
                        AssignmentSubmission.deleted_at.is_(None),
                    )
                )
                return rows, {s.assignment_id: s for s in submissions.unique().scalars().all()}

            async def attendance(db: AsyncSession):
                result = await db.execute(
                    select(StudentAttendance.status)
                    .where(
                        StudentAttendance.enrollment_id == enrollment.id,
                        StudentAttendance.deleted_at.is_(None),
                    )
                    .order_by(StudentAttendance.date.desc())
                    .limit(30)
                )
                return list(result.scalars().all())

            async def marks(db: AsyncSession) -> List[Marks]:
                result = await db.execute(
                    select(Marks)
                    .where(Marks.enrollment_id == enrollment.id, Marks.deleted_at.is_(None))
                    .order_by(Marks.created_at.desc(), Marks.id.desc())
                    .limit(20)
                )
                return list(result.unique().scalars().all())

            (assignment_rows, submissions), statuses, recent_marks, upcoming = await gather_db(
                assignments,
                attendance,
                marks,
                _count(
                    ExamSchedule,
                    ExamSchedule.class_level_id == enrollment.class_level_id,
                    ExamSchedule.exam_date >= today,
                ),
                session_factory=session_factory,
            )

            items = [
                StudentAssignmentItem(
                    id=a.id,
                    title=a.title,
                    subject=a.subject.name,
                    due_date=a.due_date,
                    status=_assignment_status(a, submissions.get(a.id), now),
                    marks_obtained=submissions[a.id].marks_obtained if a.id in submissions else None,
                    max_marks=a.max_marks,
                )
                for a in assignment_rows
            ]
            by_status = count_by(items, attrgetter("status"))

            return StudentDashboardStats(
                pending_assignments=by_status.get("pending", 0),
                submitted_assignments=by_status.get("submitted", 0),
                graded_assignments=by_status.get("graded", 0),
                overdue_assignments=by_status.get("overdue", 0),
                average_grade=average(m.percentage for m in recent_marks),
                attendance_rate=rate_of(statuses, lambda s: s in ATTENDED_STATUSES),
                assignment_completion=percentage(
                    by_status.get("submitted", 0) + by_status.get("graded", 0), len(items)
                ),
                upcoming_exams=upcoming,
                unread_notifications=unread,
                fee_status=fee_status,
                assignments=items[:10],
                recent_activities=merge_recent(
                    [_grade_activity(m, f"Grade received in {m.exam_schedule.subject.name}") for m in recent_marks],
                    limit=STUDENT_ACTIVITY_LIMIT,
                ),
                last_updated=now,
            )


class GuardianDashboardService:
    """Progress, attendance alerts and fees of every child of the guardian."""

    @staticmethod
    async def _find_children(
        db: AsyncSession, principal: TokenData
    ) -> List[Tuple[Student, Optional[Enrollment]]]:
        """
        Raises:
            NotFoundError: No guardian record for this account
        """
        guardian = await db.scalar(
            select(Guardian)
            .where(
                Guardian.deleted_at.is_(None),
                or_(Guardian.user_id == principal.user_id, Guardian.email == principal.email),
            )
            .order_by(Guardian.user_id.is_(None), Guardian.id)
            .limit(1)
        )
        if not guardian:
            raise NotFoundError("Guardian record")

        result = await db.execute(
            select(Student)
            .where(Student.guardian_id == guardian.id, Student.deleted_at.is_(None))
            .order_by(Student.name)
        )
        return [(s, _current_enrollment(s)) for s in result.unique().scalars().all()]

    @staticmethod
    def _empty(now: datetime, unread: int = 0) -> GuardianDashboardStats:
        return GuardianDashboardStats(
            total_children=0,
            attendance_rate=0.0,
            pending_fees=Decimal("0"),
            upcoming_exams=0,
            children_progress=[],
            attendance_alerts=[],
            fee_status=[],
            fees_summary=FeesSummary(
                total_due=Decimal("0"), total_paid=Decimal("0"), overdue=Decimal("0")
            ),
            upcoming_events=[],
            unread_messages=unread,
            recent_activities=[],
            last_updated=now,
        )

    @staticmethod
    async def get_stats(
        session_factory: SessionFactory,
        principal: TokenData,
        requested_user_id: Optional[int] = None,
    ) -> GuardianDashboardStats:
        ensure_owner(principal, requested_user_id)

        async with error_boundary("Failed to fetch guardian dashboard statistics"):
            now = datetime.utcnow()
            today = now.date()

            children = await run_db(
                lambda db: GuardianDashboardService._find_children(db, principal),
                session_factory,
            )
            if not children:
                unread = await run_db(_unread_notifications(principal.user_id), session_factory)
                return GuardianDashboardService._empty(now, unread)

            student_ids = [s.id for s, _ in children]
            enrollments = [e for _, e in children if e]
            enrollment_ids = [e.id for e in enrollments] or [-1]
            section_ids = {e.section_id for e in enrollments} or {-1}
            class_level_ids = {e.class_level_id for e in enrollments} or {-1}

            async def attendance(db: AsyncSession) -> List[tuple]:
                result = await db.execute(
                    select(StudentAttendance.enrollment_id, StudentAttendance.status)
                    .where(
                        StudentAttendance.enrollment_id.in_(enrollment_ids),
                        StudentAttendance.deleted_at.is_(None),
                    )
                    .order_by(StudentAttendance.date.desc())
                    .limit(100)
                )
                return list(result.all())

            async def marks(db: AsyncSession) -> List[Marks]:
                result = await db.execute(
                    select(Marks)
                    .where(Marks.enrollment_id.in_(enrollment_ids), Marks.deleted_at.is_(None))
                    .order_by(Marks.created_at.desc(), Marks.id.desc())
                    .limit(50)
                )
                return list(result.unique().scalars().all())

            async def upcoming_exams(db: AsyncSession) -> List[ExamSchedule]:
                result = await db.execute(
                    select(ExamSchedule)
                    .where(
                        ExamSchedule.deleted_at.is_(None),
                        ExamSchedule.class_level_id.in_(class_level_ids),
                        ExamSchedule.exam_date >= today,
                    )
                    .order_by(ExamSchedule.exam_date, ExamSchedule.id)
                    .limit(10)
                )
                return list(result.unique().scalars().all())

            async def assignments(db: AsyncSession):
                result = await db.execute(
                    select(Assignment)
                    .where(Assignment.deleted_at.is_(None), Assignment.section_id.in_(section_ids))
                    .order_by(Assignment.due_date.desc())
                    .limit(30)
                )
                rows = list(result.unique().scalars().all())
                submitted = await db.execute(
                    select(AssignmentSubmission.assignment_id, AssignmentSubmission.enrollment_id).where(
                        AssignmentSubmission.assignment_id.in_([a.id for a in rows]),
                        AssignmentSubmission.enrollment_id.in_(enrollment_ids),
                        AssignmentSubmission.deleted_at.is_(None),
                    )
                )
                return rows, {tuple(row) for row in submitted.all()}

            async def invoices(db: AsyncSession) -> List[Invoice]:
                result = await db.execute(
                    select(Invoice)
                    .where(Invoice.student_id.in_(student_ids), Invoice.deleted_at.is_(None))
                    .order_by(Invoice.due_date)
                )
                return list(result.unique().scalars().all())

            (
                attendance_rows,
                recent_marks,
                exams,
                (assignment_rows, submitted_pairs),
                unread,
                invoice_rows,
                upcoming_exam_count,
            ) = await gather_db(
                attendance,
                marks,
                upcoming_exams,
                assignments,
                _unread_notifications(principal.user_id),
                invoices,
                _count(
                    ExamSchedule,
                    ExamSchedule.class_level_id.in_(class_level_ids),
                    ExamSchedule.exam_date >= today,
                ),
                session_factory=session_factory,
            )

            children_progress: List[ChildProgress] = []
            for student, enrollment in children:
                enrollment_id = enrollment.id if enrollment else None
                statuses = [status for eid, status in attendance_rows if eid == enrollment_id]
                child_marks = [m for m in recent_marks if m.enrollment_id == enrollment_id]
                pending = sum(
                    1
                    for a in assignment_rows
                    if enrollment
                    and a.section_id == enrollment.section_id
                    and (a.id, enrollment_id) not in submitted_pairs
                    and a.due_date > now
                )
                children_progress.append(
                    ChildProgress(
                        student_id=student.id,
                        name=student.name,
                        student_id_number=student.student_id,
                        class_name=enrollment.class_name if enrollment else None,
                        section=enrollment.section_name if enrollment else None,
                        roll_number=enrollment.roll_number if enrollment else None,
                        attendance_rate=rate_of(statuses, lambda s: s in ATTENDED_STATUSES),
                        average_grade=average(m.percentage for m in child_marks),
                        pending_assignments=pending,
                        recent_grades=[
                            RecentGrade(
                                subject=m.exam_schedule.subject.name,
                                exam=m.exam_schedule.exam.name,
                                marks=m.marks_obtained,
                                full_marks=m.exam_schedule.full_marks,
                                percentage=m.percentage,
                                date=m.created_at,
                            )
                            for m in child_marks[:3]
                        ],
                    )
                )

            # Children without any attendance yet are not flagged
            has_attendance = {eid for eid, _ in attendance_rows}
            attendance_alerts = [
                AttendanceAlert(
                    id=f"alert-{child.student_id}",
                    student_id=child.student_id,
                    student_name=child.name,
                    attendance_rate=child.attendance_rate,
                    message=f"{child.name} has low attendance: {child.attendance_rate}%",
                    severity="high" if child.attendance_rate < CRITICAL_ATTENDANCE_THRESHOLD else "medium",
                )
                for child, (_, enrollment) in zip(children_progress, children)
                if enrollment
                and enrollment.id in has_attendance
                and child.attendance_rate < LOW_ATTENDANCE_THRESHOLD
            ]

            total_due = total_paid = overdue = Decimal("0")
            due_by_student: Dict[int, Decimal] = defaultdict(Decimal)
            oldest_overdue: Dict[int, date] = {}
            for invoice in invoice_rows:
                paid = sum((to_decimal(p.amount_paid) for p in invoice.payments if not p.is_deleted), Decimal("0"))
                due = max(to_decimal(invoice.total_amount) - paid, Decimal("0"))
                total_paid += paid
                total_due += due
                due_by_student[invoice.student_id] += due
                if due > 0 and invoice.due_date < today:
                    overdue += due
                    oldest = oldest_overdue.get(invoice.student_id)
                    if oldest is None or invoice.due_date < oldest:
                        oldest_overdue[invoice.student_id] = invoice.due_date

            fee_status = [
                ChildFeeStatus(
                    student_id=student.id,
                    student_name=student.name,
                    total_due=due_by_student.get(student.id, Decimal("0")),
                    overdue_days=(
                        (today - oldest_overdue[student.id]).days if student.id in oldest_overdue else 0
                    ),
                )
                for student, _ in children
            ]

            upcoming_events = [
                UpcomingEvent(
                    id=exam.id,
                    title=f"{exam.exam.name} - {exam.subject.name}",
                    description=f"{exam.class_level.name} exam",
                    date=exam.exam_date,
                    time=f"{exam.start_time} - {exam.end_time}" if exam.start_time else None,
                    class_name=exam.class_level.name,
                    subject=exam.subject.name,
                )
                for exam in exams
            ]

            child_names = {e.id: s.name for s, e in children if e}
            grade_activities = [
                _grade_activity(m, f"{child_names.get(m.enrollment_id, 'Student')} received a grade")
                for m in recent_marks
            ]

            return GuardianDashboardStats(
                total_children=len(children),
                attendance_rate=rate_of(
                    [status for _, status in attendance_rows], lambda s: s in ATTENDED_STATUSES
                ),
                pending_fees=total_due,
                upcoming_exams=upcoming_exam_count,
                children_progress=children_progress,
                attendance_alerts=attendance_alerts,
                fee_status=fee_status,
                fees_summary=FeesSummary(total_due=total_due, total_paid=total_paid, overdue=overdue),
                upcoming_events=upcoming_events,
                unread_messages=unread,
                recent_activities=merge_recent(grade_activities, limit=GUARDIAN_ACTIVITY_LIMIT),
                last_updated=now,
            )


class TeacherDashboardService:
    """Classes the teacher is assigned to, with attendance, grades and grading backlog."""

    @staticmethod
    async def _find_teacher(db: AsyncSession, principal: TokenData):
        teacher = await StaffService.find_by_user(db, principal.user_id)
        result = await db.execute(
            select(TeacherClassAssignment).where(
                TeacherClassAssignment.teacher_id == teacher.id,
                TeacherClassAssignment.deleted_at.is_(None),
            )
        )
        year = await AcademicsService.get_current_year(db)
        return teacher, list(result.unique().scalars().all()), year

    @staticmethod
    async def get_stats(session_factory: SessionFactory, principal: TokenData) -> TeacherDashboardStats:
        async with error_boundary("Failed to fetch teacher dashboard statistics"):
            now = datetime.utcnow()
            today = now.date()

            teacher, class_assignments, current_year = await run_db(
                lambda db: TeacherDashboardService._find_teacher(db, principal),
                session_factory,
            )

            # One entry per class section, subjects folded together
            sections: Dict[int, TeacherClassAssignment] = {}
            subjects: Dict[int, List[str]] = defaultdict(list)
            for assignment in class_assignments:
                sections.setdefault(assignment.section_id, assignment)
                if assignment.subject:
                    subjects[assignment.section_id].append(assignment.subject.name)
            section_ids = list(sections) or [-1]
            class_level_ids = list({a.class_level_id for a in sections.values()}) or [-1]
            since = today - timedelta(days=30)

            async def enrollments(db: AsyncSession) -> List[tuple]:
                query = select(Enrollment.id, Enrollment.section_id).where(
                    Enrollment.deleted_at.is_(None), Enrollment.section_id.in_(section_ids)
                )
                if current_year:
                    query = query.where(Enrollment.academic_year_id == current_year.id)
                return list((await db.execute(query)).all())

            async def own_assignments(db: AsyncSession) -> List[tuple]:
                submissions = (
                    select(
                        AssignmentSubmission.assignment_id,
                        func.count(AssignmentSubmission.id).label("submitted"),
                        func.count(AssignmentSubmission.id)
                        .filter(AssignmentSubmission.status != SubmissionStatus.GRADED)
                        .label("ungraded"),
                    )
                    .where(AssignmentSubmission.deleted_at.is_(None))
                    .group_by(AssignmentSubmission.assignment_id)
                    .subquery()
                )
                result = await db.execute(
                    select(
                        Assignment.id,
                        Assignment.section_id,
                        func.coalesce(submissions.c.submitted, 0),
                        func.coalesce(submissions.c.ungraded, 0),
                    )
                    .outerjoin(submissions, submissions.c.assignment_id == Assignment.id)
                    .where(Assignment.teacher_id == teacher.id, Assignment.deleted_at.is_(None))
                )
                return list(result.all())

            async def attendance(db: AsyncSession) -> List[tuple]:
                result = await db.execute(
                    select(Enrollment.section_id, StudentAttendance.status)
                    .join(Enrollment, StudentAttendance.enrollment_id == Enrollment.id)
                    .where(
                        Enrollment.section_id.in_(section_ids),
                        StudentAttendance.date >= since,
                        StudentAttendance.deleted_at.is_(None),
                    )
                )
                return list(result.all())

            async def marks(db: AsyncSession) -> List[tuple]:
                result = await db.execute(
                    select(Enrollment.section_id, Marks.percentage)
                    .join(Enrollment, Marks.enrollment_id == Enrollment.id)
                    .where(Enrollment.section_id.in_(section_ids), Marks.deleted_at.is_(None))
                )
                return list(result.all())

            async def recent_submissions(db: AsyncSession) -> List[AssignmentSubmission]:
                result = await db.execute(
                    select(AssignmentSubmission)
                    .join(Assignment, AssignmentSubmission.assignment_id == Assignment.id)
                    .where(Assignment.teacher_id == teacher.id, AssignmentSubmission.deleted_at.is_(None))
                    .options(joinedload(AssignmentSubmission.enrollment).joinedload(Enrollment.student))
                    .order_by(AssignmentSubmission.submitted_at.desc(), AssignmentSubmission.id.desc())
                    .limit(TEACHER_ACTIVITY_LIMIT)
                )
                return list(result.unique().scalars().all())

            (
                enrollment_rows,
                assignment_rows,
                attendance_rows,
                mark_rows,
                submissions,
                upcoming,
            ) = await gather_db(
                enrollments,
                own_assignments,
                attendance,
                marks,
                recent_submissions,
                _count(
                    ExamSchedule,
                    ExamSchedule.class_level_id.in_(class_level_ids),
                    ExamSchedule.exam_date >= today,
                ),
                session_factory=session_factory,
            )

            students_per_section: Dict[int, int] = defaultdict(int)
            for _, section_id in enrollment_rows:
                students_per_section[section_id] += 1

            expected = sum(students_per_section.get(section_id, 0) for _, section_id, _, _ in assignment_rows)
            submitted = sum(count for _, _, count, _ in assignment_rows)
            ungraded = sum(count for _, _, _, count in assignment_rows)

            classes = []
            for section_id, assignment in sections.items():
                statuses = [status for sid, status in attendance_rows if sid == section_id]
                classes.append(
                    ClassOverview(
                        id=f"{assignment.class_level_id}-{section_id}",
                        name=f"{assignment.class_level.name} - {assignment.section.name}",
                        subject=", ".join(sorted(set(subjects[section_id]))) or None,
                        student_count=students_per_section.get(section_id, 0),
                        average_grade=average(pct for sid, pct in mark_rows if sid == section_id),
                        attendance_rate=rate_of(statuses, lambda s: s in ATTENDED_STATUSES),
                    )
                )

            activities = [
                ActivityItem(
                    id=f"submission-{s.id}",
                    type="submission",
                    title=f"{s.enrollment.student.name} submitted an assignment",
                    description=f"{s.assignment.title} ({s.status.value.lower()})",
                    timestamp=s.submitted_at,
                    time_ago=time_ago(s.submitted_at, now),
                    metadata={"assignmentId": s.assignment_id, "status": s.status.value},
                )
                for s in submissions
            ]

            return TeacherDashboardStats(
                total_students=len(enrollment_rows),
                total_classes=len(sections),
                pending_tasks=ungraded,
                average_attendance=rate_of(
                    [status for _, status in attendance_rows], lambda s: s in ATTENDED_STATUSES
                ),
                assignment_completion=percentage(submitted, expected),
                average_grade=average(pct for _, pct in mark_rows),
                upcoming_exams=upcoming,
                classes=classes,
                recent_activities=merge_recent(activities, limit=TEACHER_ACTIVITY_LIMIT),
                last_updated=now,
            )
