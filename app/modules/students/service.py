"""
StudentsService - admin student listing and admission.
"""

import logging
import secrets
from typing import List, Optional, Tuple
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.db.sequences import next_code
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.pagination import paginate_query, normalize_pagination
from app.modules.academics.models import AcademicYear, Enrollment, Section
from app.modules.notifications.models import Notification, NotificationPriority
from app.modules.users.auth import AuthService
from app.modules.users.models import Role, User
from app.modules.users.service import UsersService
from .models import Guardian, Student
from .schemas import CreateStudentDto, FilterStudentsDto

logger = logging.getLogger(__name__)


class StudentsService:

    @staticmethod
    async def find_all(
        db: AsyncSession, filters: FilterStudentsDto
    ) -> Tuple[List[Student], int, int, int]:
        """
        Paginated student list, newest first.

        Returns:
            (students, total, page, limit)
        """
        page, limit = normalize_pagination(filters.page, filters.limit)

        query = select(Student).where(Student.deleted_at.is_(None))

        if filters.search:
            term = f"%{filters.search.strip()}%"
            query = query.where(
                or_(Student.name.ilike(term), Student.student_id.ilike(term))
            )

        if filters.gender:
            query = query.where(Student.gender == filters.gender)

        # Enrollment filters narrow to students with a matching enrollment
        if filters.academic_year_id or filters.class_level_id or filters.section_id:
            enrollment_query = select(Enrollment.student_id).where(Enrollment.deleted_at.is_(None))
            if filters.academic_year_id:
                enrollment_query = enrollment_query.where(
                    Enrollment.academic_year_id == filters.academic_year_id
                )
            if filters.class_level_id:
                enrollment_query = enrollment_query.where(
                    Enrollment.class_level_id == filters.class_level_id
                )
            if filters.section_id:
                enrollment_query = enrollment_query.where(Enrollment.section_id == filters.section_id)
            query = query.where(Student.id.in_(enrollment_query))

        query = query.order_by(Student.created_at.desc(), Student.id.desc())

        students, total = await paginate_query(db, query, page, limit)
        return students, total, page, limit

    @staticmethod
    async def find_one(db: AsyncSession, student_id: int) -> Student:
        """
        Raises:
            NotFoundError: If student not found or is soft-deleted
        """
        result = await db.execute(
            select(Student)
            .where(Student.id == student_id, Student.deleted_at.is_(None))
            .options(selectinload(Student.enrollments))
            .execution_options(populate_existing=True)
        )
        student = result.unique().scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", student_id)
        return student

    @staticmethod
    async def _next_roll_number(db: AsyncSession, section_id: int, academic_year_id: int) -> int:
        highest = await db.scalar(
            select(func.max(Enrollment.roll_number)).where(
                Enrollment.section_id == section_id,
                Enrollment.academic_year_id == academic_year_id,
            )
        )
        return (highest or 0) + 1

    @staticmethod
    async def admit(db: AsyncSession, dto: CreateStudentDto) -> Tuple[Student, Optional[str]]:
        """
        Admit a student: guardian (reused by email), optional login account,
        student row and enrollment are written in the request transaction.

        Returns:
            (student, temporary password or None)

        Raises:
            NotFoundError: Unknown academic year or section
            ValidationError: Section does not belong to the class level
            ConflictError: Email or roll number already in use
        """
        year = await db.get(AcademicYear, dto.academic_year_id)
        if not year:
            raise NotFoundError("Academic year", dto.academic_year_id)

        section = await db.get(Section, dto.section_id)
        if not section:
            raise NotFoundError("Section", dto.section_id)
        if section.class_level_id != dto.class_level_id:
            raise ValidationError("Section does not belong to the selected class level")

        if dto.roll_number:
            taken = await db.scalar(
                select(Enrollment.id).where(
                    Enrollment.section_id == dto.section_id,
                    Enrollment.academic_year_id == dto.academic_year_id,
                    Enrollment.roll_number == dto.roll_number,
                )
            )
            if taken:
                raise ConflictError(
                    "Roll number already exists in this section for the academic year",
                    "DUPLICATE_ROLL_NUMBER",
                )

        guardian = None
        if dto.guardian_email:
            guardian = await db.scalar(
                select(Guardian).where(Guardian.email == dto.guardian_email.strip().lower())
            )
        if not guardian:
            guardian = Guardian(
                name=dto.guardian_name,
                relation_to_student=dto.relation_to_student,
                contact_number=dto.guardian_contact_number,
                email=dto.guardian_email.strip().lower() if dto.guardian_email else None,
                occupation=dto.guardian_occupation,
            )
            db.add(guardian)
            await db.flush()

        user = None
        temporary_password = None
        email = dto.email.strip().lower() if dto.email else None
        if email:
            if await UsersService.email_taken(db, email):
                raise ConflictError("User with this email already exists", "EMAIL_EXISTS")
            temporary_password = secrets.token_hex(8)
            user = User(
                name=dto.name,
                email=email,
                password=AuthService.get_password_hash(temporary_password),
                role=Role.STUDENT,
            )
            db.add(user)
            await db.flush()

        student = Student(
            student_id=await next_code(db, Student.student_id, "STU", 4),
            name=dto.name,
            email=email,
            date_of_birth=dto.date_of_birth,
            gender=dto.gender,
            blood_group=dto.blood_group,
            religion=dto.religion,
            nationality=dto.nationality,
            admission_date=dto.admission_date,
            present_address=dto.present_address,
            permanent_address=dto.permanent_address,
            guardian_id=guardian.id,
            user_id=user.id if user else None,
        )
        db.add(student)
        await db.flush()

        db.add(
            Enrollment(
                student_id=student.id,
                class_level_id=dto.class_level_id,
                section_id=dto.section_id,
                academic_year_id=dto.academic_year_id,
                roll_number=dto.roll_number
                or await StudentsService._next_roll_number(db, dto.section_id, dto.academic_year_id),
            )
        )

        if user:
            db.add(
                Notification(
                    user_id=user.id,
                    type="ACADEMIC",
                    priority=NotificationPriority.NORMAL,
                    title="Welcome to EduPro",
                    content=f"Your student account has been created. Student ID: {student.student_id}",
                )
            )
        await db.flush()

        logger.info("Admitted student %s (%s)", student.student_id, student.id)
        return await StudentsService.find_one(db, student.id), temporary_password
