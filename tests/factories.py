"""
Seed helpers. Each one adds a row, flushes and returns it; callers commit.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.academics.models import (
    AcademicYear,
    ClassLevel,
    Enrollment,
    Section,
    Subject,
    TeacherClassAssignment,
)
from app.modules.exams.models import Exam, ExamSchedule, Grade, GradingSystem
from app.modules.staff.models import Staff
from app.modules.students.models import Guardian, Student
from app.modules.users.auth import AuthService
from app.modules.users.models import Role, User


async def _save(db: AsyncSession, row):
    db.add(row)
    await db.flush()
    return row


async def create_user(
    db: AsyncSession,
    role: Role,
    email: str,
    name: str = "Test User",
    password: Optional[str] = None,
) -> User:
    # Hashing is slow; only the login tests need a real hash
    hashed = AuthService.get_password_hash(password) if password else "not-a-bcrypt-hash"
    return await _save(db, User(name=name, email=email, role=role, password=hashed))


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {AuthService.create_access_token(user)}"}


async def create_year(db: AsyncSession, year: str = "2024-2025", is_current: bool = True) -> AcademicYear:
    start = int(year[:4])
    return await _save(
        db,
        AcademicYear(
            year=year,
            start_date=date(start, 4, 1),
            end_date=date(start + 1, 3, 31),
            is_current=is_current,
        ),
    )


async def create_class(db: AsyncSession, name: str = "Grade 5", section: str = "A") -> Tuple[ClassLevel, Section]:
    class_level = await _save(db, ClassLevel(name=name))
    return class_level, await _save(db, Section(name=section, class_level_id=class_level.id))


async def create_subject(db: AsyncSession, name: str = "Mathematics", code: str = "MATH") -> Subject:
    return await _save(db, Subject(name=name, subject_code=code))


async def create_guardian(
    db: AsyncSession, name: str = "Parent", email: Optional[str] = None, user: Optional[User] = None
) -> Guardian:
    return await _save(
        db,
        Guardian(
            name=name,
            relation_to_student="Father",
            contact_number="01700000000",
            email=email,
            user_id=user.id if user else None,
        ),
    )


async def create_student(
    db: AsyncSession,
    guardian: Guardian,
    name: str,
    student_id: str,
    email: Optional[str] = None,
    user: Optional[User] = None,
) -> Student:
    return await _save(
        db,
        Student(
            student_id=student_id,
            name=name,
            email=email,
            date_of_birth=date(2014, 1, 1),
            gender="Male",
            admission_date=date(2024, 4, 1),
            guardian_id=guardian.id,
            user_id=user.id if user else None,
        ),
    )


async def enroll(
    db: AsyncSession,
    student: Student,
    class_level: ClassLevel,
    section: Section,
    year: AcademicYear,
    roll_number: int,
) -> Enrollment:
    return await _save(
        db,
        Enrollment(
            student_id=student.id,
            class_level_id=class_level.id,
            section_id=section.id,
            academic_year_id=year.id,
            roll_number=roll_number,
        ),
    )


async def create_staff(
    db: AsyncSession,
    user: User,
    staff_id: str,
    designation: str = "Teacher",
    department: Optional[str] = None,
    gender: Optional[str] = None,
) -> Staff:
    return await _save(
        db,
        Staff(
            staff_id=staff_id,
            name=user.name,
            email=user.email,
            designation=designation,
            department=department,
            gender=gender,
            joining_date=date(2023, 1, 15),
            user_id=user.id,
        ),
    )


async def assign_teacher(
    db: AsyncSession,
    teacher: Staff,
    class_level: ClassLevel,
    section: Section,
    subject: Optional[Subject] = None,
) -> TeacherClassAssignment:
    return await _save(
        db,
        TeacherClassAssignment(
            teacher_id=teacher.id,
            class_level_id=class_level.id,
            section_id=section.id,
            subject_id=subject.id if subject else None,
        ),
    )


async def create_grading_system(db: AsyncSession) -> GradingSystem:
    system = await _save(db, GradingSystem(name="Standard", is_default=True))
    bands = [
        ("A+", 90, 100),
        ("A", 80, 89.99),
        ("B", 70, 79.99),
        ("C", 60, 69.99),
        ("D", 50, 59.99),
        ("F", 0, 49.99),
    ]
    for name, low, high in bands:
        db.add(
            Grade(
                grading_system_id=system.id,
                grade_name=name,
                min_percentage=low,
                max_percentage=high,
            )
        )
    await db.flush()
    return system


async def create_exam_schedule(
    db: AsyncSession,
    year: AcademicYear,
    class_level: ClassLevel,
    subject: Subject,
    exam_date: Optional[date] = None,
    full_marks: Decimal = Decimal("100"),
) -> ExamSchedule:
    exam = await _save(db, Exam(name="Midterm", academic_year_id=year.id))
    return await _save(
        db,
        ExamSchedule(
            exam_id=exam.id,
            class_level_id=class_level.id,
            subject_id=subject.id,
            exam_date=exam_date or datetime.utcnow().date(),
            start_time="10:00",
            end_time="12:00",
            full_marks=full_marks,
            pass_marks=Decimal("33"),
        ),
    )
