"""
AcademicsService - academic years, class levels, sections, subjects and
enrollment lookups shared by other modules.
"""

from typing import List, Optional
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.modules.staff.models import Staff
from app.modules.users.models import Role
from .models import (
    AcademicYear,
    ClassLevel,
    Enrollment,
    Section,
    Subject,
    TeacherClassAssignment,
)
from .schemas import (
    CreateAcademicYearDto,
    CreateClassLevelDto,
    CreateSectionDto,
    CreateSubjectDto,
    CreateTeacherAssignmentDto,
)


class AcademicsService:

    @staticmethod
    async def get_current_year(db: AsyncSession) -> Optional[AcademicYear]:
        return await db.scalar(
            select(AcademicYear)
            .where(AcademicYear.is_current.is_(True), AcademicYear.deleted_at.is_(None))
            .order_by(AcademicYear.start_date.desc())
            .limit(1)
        )

    @staticmethod
    async def find_current_enrollment(
        db: AsyncSession, student_id: int
    ) -> Optional[Enrollment]:
        """
        Enrollment in the current academic year, else the most recent one.
        """
        result = await db.execute(
            select(Enrollment)
            .join(AcademicYear, Enrollment.academic_year_id == AcademicYear.id)
            .where(Enrollment.student_id == student_id, Enrollment.deleted_at.is_(None))
            .order_by(AcademicYear.is_current.desc(), AcademicYear.start_date.desc())
            .limit(1)
        )
        return result.unique().scalar_one_or_none()

    @staticmethod
    async def list_years(db: AsyncSession) -> List[AcademicYear]:
        result = await db.execute(
            select(AcademicYear)
            .where(AcademicYear.deleted_at.is_(None))
            .order_by(AcademicYear.start_date.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_year(db: AsyncSession, dto: CreateAcademicYearDto) -> AcademicYear:
        """
        Create an academic year. Flagging it current clears the flag elsewhere.
        """
        existing = await db.scalar(select(AcademicYear.id).where(AcademicYear.year == dto.year))
        if existing:
            raise ConflictError(f"Academic year {dto.year} already exists")

        if dto.is_current:
            await db.execute(update(AcademicYear).values(is_current=False))

        year = AcademicYear(**dto.model_dump())
        db.add(year)
        await db.flush()
        return year

    @staticmethod
    async def list_class_levels(db: AsyncSession) -> List[ClassLevel]:
        result = await db.execute(
            select(ClassLevel).where(ClassLevel.deleted_at.is_(None)).order_by(ClassLevel.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_class_level(db: AsyncSession, dto: CreateClassLevelDto) -> ClassLevel:
        existing = await db.scalar(select(ClassLevel.id).where(ClassLevel.name == dto.name))
        if existing:
            raise ConflictError(f"Class level {dto.name} already exists")

        class_level = ClassLevel(name=dto.name)
        db.add(class_level)
        await db.flush()
        for name in dict.fromkeys(dto.sections):
            db.add(Section(name=name, class_level_id=class_level.id))
        await db.flush()

        return await db.scalar(
            select(ClassLevel)
            .where(ClassLevel.id == class_level.id)
            .execution_options(populate_existing=True)
        )

    @staticmethod
    async def list_sections(
        db: AsyncSession, class_level_id: Optional[int] = None
    ) -> List[Section]:
        query = select(Section).where(Section.deleted_at.is_(None))
        if class_level_id:
            query = query.where(Section.class_level_id == class_level_id)
        result = await db.execute(query.order_by(Section.class_level_id, Section.name))
        return list(result.unique().scalars().all())

    @staticmethod
    async def create_section(db: AsyncSession, dto: CreateSectionDto) -> Section:
        class_level = await db.get(ClassLevel, dto.class_level_id)
        if not class_level or class_level.is_deleted:
            raise NotFoundError("Class level", dto.class_level_id)

        duplicate = await db.scalar(
            select(Section.id).where(
                Section.class_level_id == dto.class_level_id, Section.name == dto.name
            )
        )
        if duplicate:
            raise ConflictError(f"Section {dto.name} already exists in {class_level.name}")

        section = Section(name=dto.name, class_level_id=dto.class_level_id)
        db.add(section)
        await db.flush()
        return section

    @staticmethod
    async def list_subjects(db: AsyncSession) -> List[Subject]:
        result = await db.execute(
            select(Subject).where(Subject.deleted_at.is_(None)).order_by(Subject.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_subject(db: AsyncSession, dto: CreateSubjectDto) -> Subject:
        existing = await db.scalar(
            select(Subject.id).where(Subject.subject_code == dto.subject_code)
        )
        if existing:
            raise ConflictError(f"Subject code {dto.subject_code} already exists")

        subject = Subject(**dto.model_dump())
        db.add(subject)
        await db.flush()
        return subject

    @staticmethod
    async def list_teacher_assignments(
        db: AsyncSession,
        teacher_id: Optional[int] = None,
        class_level_id: Optional[int] = None,
        section_id: Optional[int] = None,
    ) -> List[TeacherClassAssignment]:
        query = select(TeacherClassAssignment).where(TeacherClassAssignment.deleted_at.is_(None))
        if teacher_id:
            query = query.where(TeacherClassAssignment.teacher_id == teacher_id)
        if class_level_id:
            query = query.where(TeacherClassAssignment.class_level_id == class_level_id)
        if section_id:
            query = query.where(TeacherClassAssignment.section_id == section_id)
        result = await db.execute(
            query.order_by(
                TeacherClassAssignment.class_level_id,
                TeacherClassAssignment.section_id,
                TeacherClassAssignment.id,
            )
        )
        return list(result.unique().scalars().all())

    @staticmethod
    async def assign_teacher(
        db: AsyncSession, dto: CreateTeacherAssignmentDto
    ) -> TeacherClassAssignment:
        """
        Give a teacher access to a class section, optionally for one subject.

        Raises:
            NotFoundError: Unknown staff member, class level or subject
            ValidationError: Staff member is not a teacher, or the section
                belongs to another class
            ConflictError: Same assignment already exists
        """
        teacher = await db.get(Staff, dto.teacher_id)
        if not teacher or teacher.is_deleted:
            raise NotFoundError("Staff", dto.teacher_id)
        if teacher.user.role != Role.TEACHER:
            raise ValidationError(f"{teacher.name} is not a teacher", "NOT_A_TEACHER")

        class_level = await db.get(ClassLevel, dto.class_level_id)
        if not class_level or class_level.is_deleted:
            raise NotFoundError("Class level", dto.class_level_id)

        section = await db.get(Section, dto.section_id)
        if not section or section.is_deleted or section.class_level_id != class_level.id:
            raise ValidationError(
                f"Section {dto.section_id} does not belong to {class_level.name}",
                "SECTION_CLASS_MISMATCH",
            )

        if dto.subject_id is not None:
            subject = await db.get(Subject, dto.subject_id)
            if not subject or subject.is_deleted:
                raise NotFoundError("Subject", dto.subject_id)

        subject_match = (
            TeacherClassAssignment.subject_id.is_(None)
            if dto.subject_id is None
            else TeacherClassAssignment.subject_id == dto.subject_id
        )
        duplicate = await db.scalar(
            select(TeacherClassAssignment.id).where(
                TeacherClassAssignment.teacher_id == dto.teacher_id,
                TeacherClassAssignment.class_level_id == dto.class_level_id,
                TeacherClassAssignment.section_id == dto.section_id,
                subject_match,
                TeacherClassAssignment.deleted_at.is_(None),
            )
        )
        if duplicate:
            raise ConflictError(f"{teacher.name} is already assigned to this class")

        assignment = TeacherClassAssignment(**dto.model_dump())
        db.add(assignment)
        await db.flush()
        return await db.scalar(
            select(TeacherClassAssignment)
            .where(TeacherClassAssignment.id == assignment.id)
            .execution_options(populate_existing=True)
        )
