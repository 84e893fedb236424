# Registry of every model so Base.metadata is complete.
# Imported by alembic, the app entrypoint and the test suite.

from app.core.db.base import Base, BaseModel
from app.modules.users.models import User
from app.modules.academics.models import (
    AcademicYear,
    ClassLevel,
    Section,
    Subject,
    Enrollment,
    TeacherClassAssignment,
)
from app.modules.students.models import Guardian, Student
from app.modules.staff.models import Staff, StaffAttendance, LeaveRequest
from app.modules.attendance.models import StudentAttendance
from app.modules.exams.models import GradingSystem, Grade, Exam, ExamSchedule, Marks
from app.modules.finance.models import FeeHead, Invoice, InvoiceItem, Payment, Expense
from app.modules.library.models import BookCategory, Book, BookIssue, BookReturn, LibraryFine
from app.modules.assignments.models import Assignment, AssignmentSubmission
from app.modules.notifications.models import Notification

__all__ = [
    "Base",
    "BaseModel",
    "User",
    "AcademicYear",
    "ClassLevel",
    "Section",
    "Subject",
    "Enrollment",
    "TeacherClassAssignment",
    "Guardian",
    "Student",
    "Staff",
    "StaffAttendance",
    "LeaveRequest",
    "StudentAttendance",
    "GradingSystem",
    "Grade",
    "Exam",
    "ExamSchedule",
    "Marks",
    "FeeHead",
    "Invoice",
    "InvoiceItem",
    "Payment",
    "Expense",
    "BookCategory",
    "Book",
    "BookIssue",
    "BookReturn",
    "LibraryFine",
    "Assignment",
    "AssignmentSubmission",
    "Notification",
]
