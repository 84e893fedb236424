"""
Dashboard DTOs (Data Transfer Objects), one stats shape per role.
Serialized with camelCase keys.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional
from pydantic import Field

from app.core.schemas import CamelModel


class ActivityItem(CamelModel):
    """Normalized recent-activity entry; ``type`` tells the source apart"""

    id: str
    type: str
    title: str
    description: str
    timestamp: datetime
    time_ago: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------- admin


class AcademicYearInfo(CamelModel):
    id: int
    name: str
    start_date: date
    end_date: date
    is_active: bool


class AdminMetrics(CamelModel):
    enrollment_rate: float
    invoice_completion_rate: float


class AdminDashboardStats(CamelModel):
    total_students: int = Field(..., description="Students on record")
    total_staff: int = Field(..., description="Staff on record")
    active_courses: int = Field(..., description="Number of subjects")
    total_classes: int = Field(..., description="Number of class levels")
    current_academic_year: Optional[AcademicYearInfo] = None
    total_enrollments: int
    enrollment_rate: float
    total_invoices: int
    pending_invoices: int
    invoice_completion_rate: float
    pending_tasks: int = Field(..., description="Pending leave + upcoming exams + pending invoices")
    pending_leave_requests: int
    upcoming_exams: int = Field(..., description="Exam papers within the next 7 days")
    metrics: AdminMetrics
    recent_activities: List[ActivityItem]
    last_updated: datetime


# ----------------------------------------------------------- accountant


class InvoiceStats(CamelModel):
    total: int
    paid: int
    pending: int
    overdue: int


class FinanceMetrics(CamelModel):
    profit_margin: float
    collection_rate: float
    expense_ratio: float


class MonthlyAmount(CamelModel):
    month: str = Field(..., description="YYYY-MM")
    label: str
    amount: Decimal


class FeeHeadSummary(CamelModel):
    id: int
    name: str
    total_collected: Decimal
    total_pending: Decimal
    total_amount: Decimal


class ExpenseCategorySummary(CamelModel):
    category: str
    amount: Decimal


class TransactionItem(CamelModel):
    id: str
    type: Literal["payment", "expense"]
    amount: Decimal
    description: str
    date: datetime
    status: Optional[str] = None
    category: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class HealthIndicators(CamelModel):
    cash_flow: str
    collection_efficiency: str
    expense_control: str


class ReportingPeriod(CamelModel):
    year: int
    month: int


class AccountantDashboardStats(CamelModel):
    total_revenue: Decimal = Field(..., description="Payments since the start of the year")
    total_expenses: Decimal = Field(..., description="Expenses since the start of the year")
    net_profit: Decimal
    monthly_revenue: Decimal
    monthly_expenses: Decimal
    monthly_net_profit: Decimal
    pending_payments: Decimal = Field(..., description="Total of pending and overdue invoices")
    invoice_stats: InvoiceStats
    metrics: FinanceMetrics
    monthly_revenue_chart: List[MonthlyAmount]
    fee_heads: List[FeeHeadSummary]
    expense_categories: List[ExpenseCategorySummary]
    recent_transactions: List[TransactionItem]
    health_indicators: HealthIndicators
    reporting_period: ReportingPeriod
    last_updated: datetime


# ------------------------------------------------------------ librarian


class LibraryMetrics(CamelModel):
    utilization_rate: float
    overdue_rate: float
    average_books_per_category: int
    collection_health: str


class PopularBook(CamelModel):
    id: int
    title: str
    author: str
    category: Optional[str] = None
    issue_count: int
    available_copies: int


class CategorySummary(CamelModel):
    id: int
    name: str
    book_count: int


class LibraryInsights(CamelModel):
    most_active_category: Optional[str] = None
    collection_size: int
    needs_attention: bool


class LibrarianDashboardStats(CamelModel):
    total_books: int
    total_copies: int
    available_books: int
    issued_books: int
    overdue_books: int
    total_fines: Decimal
    pending_fines: Decimal
    metrics: LibraryMetrics
    popular_books: List[PopularBook]
    categories: List[CategorySummary]
    recent_activities: List[ActivityItem]
    insights: LibraryInsights
    last_updated: datetime


# -------------------------------------------------------------- student


class FeeStatusSummary(CamelModel):
    invoice_number: str
    status: str
    total_amount: Decimal
    due_date: date


class StudentAssignmentItem(CamelModel):
    id: int
    title: str
    subject: str
    due_date: datetime
    status: Literal["pending", "submitted", "graded", "overdue"]
    marks_obtained: Optional[Decimal] = None
    max_marks: Optional[Decimal] = None


class StudentDashboardStats(CamelModel):
    pending_assignments: int
    submitted_assignments: int
    graded_assignments: int
    overdue_assignments: int
    average_grade: float = Field(..., description="Mean mark percentage")
    attendance_rate: float
    assignment_completion: float
    upcoming_exams: int
    unread_notifications: int
    fee_status: Optional[FeeStatusSummary] = None
    assignments: List[StudentAssignmentItem]
    recent_activities: List[ActivityItem]
    last_updated: datetime


# ------------------------------------------------------------- guardian


class RecentGrade(CamelModel):
    subject: str
    exam: str
    marks: Decimal
    full_marks: Decimal
    percentage: float
    date: datetime


class ChildProgress(CamelModel):
    student_id: int
    name: str
    student_id_number: str
    class_name: Optional[str] = Field(None, serialization_alias="class")
    section: Optional[str] = None
    roll_number: Optional[int] = None
    attendance_rate: float
    average_grade: float
    pending_assignments: int
    recent_grades: List[RecentGrade]


class AttendanceAlert(CamelModel):
    id: str
    student_id: int
    student_name: str
    attendance_rate: float
    message: str
    severity: Literal["high", "medium"]


class ChildFeeStatus(CamelModel):
    student_id: int
    student_name: str
    total_due: Decimal
    overdue_days: int


class FeesSummary(CamelModel):
    total_due: Decimal
    total_paid: Decimal
    overdue: Decimal


class UpcomingEvent(CamelModel):
    id: int
    type: Literal["exam"] = "exam"
    title: str
    description: str
    date: date
    time: Optional[str] = None
    class_name: str = Field(..., serialization_alias="class")
    subject: str


class GuardianDashboardStats(CamelModel):
    total_children: int
    attendance_rate: float
    pending_fees: Decimal
    upcoming_exams: int
    children_progress: List[ChildProgress]
    attendance_alerts: List[AttendanceAlert]
    fee_status: List[ChildFeeStatus]
    fees_summary: FeesSummary
    upcoming_events: List[UpcomingEvent]
    unread_messages: int
    recent_activities: List[ActivityItem]
    last_updated: datetime


# -------------------------------------------------------------- teacher


class ClassOverview(CamelModel):
    id: str = Field(..., description="classLevelId-sectionId")
    name: str
    subject: Optional[str] = None
    student_count: int
    average_grade: float
    attendance_rate: float


class TeacherDashboardStats(CamelModel):
    total_students: int
    total_classes: int
    pending_tasks: int = Field(..., description="Submissions awaiting grading")
    average_attendance: float
    assignment_completion: float
    average_grade: float
    upcoming_exams: int
    classes: List[ClassOverview]
    recent_activities: List[ActivityItem]
    last_updated: datetime
