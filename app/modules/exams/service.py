"""
Exam services: exams and their schedules, grading systems, and marks
entry with percentage and grade derivation.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.pagination import normalize_pagination, paginate_query
from app.core.utils import round2
from app.modules.academics.models import AcademicYear, ClassLevel, Enrollment, Subject
from .models import Exam, ExamSchedule, Grade, GradingSystem, Marks
from .schemas import (
    BulkMarksDto,
    BulkMarksResponse,
    CreateExamDto,
    CreateExamScheduleDto,
    CreateGradingSystemDto,
    ExamResponse,
    FilterExamSchedulesDto,
    FilterExamsDto,
    FilterMarksDto,
    MarkResponse,
    UpdateMarkDto,
)

logger = logging.getLogger(__name__)


def compute_percentage(marks_obtained: Decimal, full_marks: Decimal) -> float:
    """marks / full marks * 100, two decimals. Zero full marks yields 0."""
    if not full_marks:
        return 0.0
    return round2(Decimal(marks_obtained) / Decimal(full_marks) * 100)


def find_grade(grades: Sequence[Grade], percentage: float) -> Optional[Grade]:
    """First grade whose [min_percentage, max_percentage] band contains the percentage."""
    for grade in grades:
        if grade.min_percentage <= percentage <= grade.max_percentage:
            return grade
    return None


class ExamsService:

    @staticmethod
    async def _schedule_counts(db: AsyncSession, exam_ids: List[int]) -> Dict[int, int]:
        if not exam_ids:
            return {}
        result = await db.execute(
            select(ExamSchedule.exam_id, func.count(ExamSchedule.id))
            .where(ExamSchedule.exam_id.in_(exam_ids), ExamSchedule.deleted_at.is_(None))
            .group_by(ExamSchedule.exam_id)
        )
        return {exam_id: count for exam_id, count in result.all()}

    @staticmethod
    def _exam_response(exam: Exam, schedule_count: int) -> ExamResponse:
        return ExamResponse(
            id=exam.id,
            name=exam.name,
            academic_year_id=exam.academic_year_id,
            academic_year_name=exam.academic_year_name,
            schedule_count=schedule_count,
            created_at=exam.created_at,
        )

    @staticmethod
    async def find_exams(
        db: AsyncSession, filters: FilterExamsDto
    ) -> Tuple[List[ExamResponse], int, int, int]:
        """
        Paginated exams, newest first.

        Returns:
            (exams, total, page, limit)
        """
        page, limit = normalize_pagination(filters.page, filters.limit)
        query = select(Exam).where(Exam.deleted_at.is_(None))

        if filters.academic_year_id:
            query = query.where(Exam.academic_year_id == filters.academic_year_id)
        if filters.search:
            query = query.where(Exam.name.ilike(f"%{filters.search.strip()}%"))

        query = query.order_by(Exam.created_at.desc(), Exam.id.desc())
        exams, total = await paginate_query(db, query, page, limit)

        counts = await ExamsService._schedule_counts(db, [e.id for e in exams])
        return (
            [ExamsService._exam_response(e, counts.get(e.id, 0)) for e in exams],
            total,
            page,
            limit,
        )

    @staticmethod
    async def create_exam(db: AsyncSession, dto: CreateExamDto) -> ExamResponse:
        """
        Raises:
            NotFoundError: Unknown academic year
            ConflictError: Same exam name already used in the academic year
        """
        year = await db.get(AcademicYear, dto.academic_year_id)
        if not year or year.is_deleted:
            raise NotFoundError("Academic year", dto.academic_year_id)

        duplicate = await db.scalar(
            select(Exam.id).where(
                Exam.name == dto.name,
                Exam.academic_year_id == dto.academic_year_id,
                Exam.deleted_at.is_(None),
            )
        )
        if duplicate:
            raise ConflictError(f"Exam {dto.name} already exists in {year.year}")

        exam = Exam(name=dto.name, academic_year_id=dto.academic_year_id)
        db.add(exam)
        await db.flush()
        await db.refresh(exam, ["academic_year", "created_at"])
        return ExamsService._exam_response(exam, 0)

    @staticmethod
    async def find_schedules(
        db: AsyncSession, filters: FilterExamSchedulesDto
    ) -> Tuple[List[ExamSchedule], int, int, int]:
        """Paginated exam papers in date order."""
        page, limit = normalize_pagination(filters.page, filters.limit)
        query = select(ExamSchedule).where(ExamSchedule.deleted_at.is_(None))

        if filters.exam_id:
            query = query.where(ExamSchedule.exam_id == filters.exam_id)
        if filters.class_level_id:
            query = query.where(ExamSchedule.class_level_id == filters.class_level_id)
        if filters.subject_id:
            query = query.where(ExamSchedule.subject_id == filters.subject_id)

        query = query.order_by(ExamSchedule.exam_date, ExamSchedule.start_time, ExamSchedule.id)
        schedules, total = await paginate_query(db, query, page, limit)
        return schedules, total, page, limit

    @staticmethod
    async def create_schedule(db: AsyncSession, dto: CreateExamScheduleDto) -> ExamSchedule:
        """
        Schedule one paper of an exam for a class level.

        Raises:
            NotFoundError: Unknown exam, class level or subject
            ConflictError: The exam already has a paper for this class and subject
        """
        for model, key, label in (
            (Exam, dto.exam_id, "Exam"),
            (ClassLevel, dto.class_level_id, "Class level"),
            (Subject, dto.subject_id, "Subject"),
        ):
            row = await db.get(model, key)
            if not row or row.is_deleted:
                raise NotFoundError(label, key)

        duplicate = await db.scalar(
            select(ExamSchedule.id).where(
                ExamSchedule.exam_id == dto.exam_id,
                ExamSchedule.class_level_id == dto.class_level_id,
                ExamSchedule.subject_id == dto.subject_id,
                ExamSchedule.deleted_at.is_(None),
            )
        )
        if duplicate:
            raise ConflictError("Exam schedule already exists for this exam, class and subject")

        schedule = ExamSchedule(**dto.model_dump())
        db.add(schedule)
        await db.flush()

        logger.info(
            "Scheduled exam %s for class level %s on %s", dto.exam_id, dto.class_level_id, dto.exam_date
        )
        return await db.scalar(
            select(ExamSchedule)
            .where(ExamSchedule.id == schedule.id)
            .execution_options(populate_existing=True)
        )


class GradingSystemsService:

    @staticmethod
    async def find_all(db: AsyncSession) -> List[GradingSystem]:
        """Grading systems with their bands, the default one first."""
        result = await db.execute(
            select(GradingSystem)
            .where(GradingSystem.deleted_at.is_(None))
            .order_by(GradingSystem.is_default.desc(), GradingSystem.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def create(db: AsyncSession, dto: CreateGradingSystemDto) -> GradingSystem:
        """
        Create a grading system with its grade bands.
        Flagging it default clears the flag on every other system.

        Raises:
            ConflictError: Name already taken
        """
        existing = await db.scalar(select(GradingSystem.id).where(GradingSystem.name == dto.name))
        if existing:
            raise ConflictError(f"Grading system {dto.name} already exists")

        if dto.is_default:
            await db.execute(update(GradingSystem).values(is_default=False))

        grading_system = GradingSystem(name=dto.name, is_default=dto.is_default)
        db.add(grading_system)
        await db.flush()
        for grade in dto.grades:
            db.add(Grade(grading_system_id=grading_system.id, **grade.model_dump()))
        await db.flush()

        return await db.scalar(
            select(GradingSystem)
            .where(GradingSystem.id == grading_system.id)
            .execution_options(populate_existing=True)
        )


class MarksService:

    @staticmethod
    async def _get_schedule(db: AsyncSession, exam_schedule_id: int) -> ExamSchedule:
        schedule = await db.scalar(
            select(ExamSchedule).where(
                ExamSchedule.id == exam_schedule_id, ExamSchedule.deleted_at.is_(None)
            )
        )
        if not schedule:
            raise NotFoundError("Exam schedule", exam_schedule_id)
        return schedule

    @staticmethod
    async def _get_grading_system(
        db: AsyncSession, grading_system_id: Optional[int]
    ) -> GradingSystem:
        """
        Requested grading system, else the default one.

        Raises:
            ValidationError: Neither is available
        """
        query = select(GradingSystem).where(GradingSystem.deleted_at.is_(None))
        if grading_system_id:
            query = query.where(GradingSystem.id == grading_system_id)
        else:
            query = query.where(GradingSystem.is_default.is_(True))
        grading_system = await db.scalar(query.limit(1))
        if not grading_system:
            raise ValidationError(
                "No grading system specified and no default grading system found",
                "GRADING_SYSTEM_REQUIRED",
            )
        return grading_system

    @staticmethod
    def _check_range(marks_obtained: Decimal, schedule: ExamSchedule, enrollment_id: int) -> None:
        if marks_obtained < 0 or marks_obtained > schedule.full_marks:
            raise ValidationError(
                f"Marks for enrollment {enrollment_id} must be between 0 and {schedule.full_marks}",
                "MARKS_OUT_OF_RANGE",
                {"enrollmentId": enrollment_id, "marksObtained": marks_obtained},
            )

    @staticmethod
    def to_response(mark: Marks) -> MarkResponse:
        enrollment = mark.enrollment
        schedule = mark.exam_schedule
        return MarkResponse(
            id=mark.id,
            enrollment_id=mark.enrollment_id,
            exam_schedule_id=mark.exam_schedule_id,
            marks_obtained=mark.marks_obtained,
            percentage=mark.percentage,
            remarks=mark.remarks,
            grade=mark.grade,
            student_name=enrollment.student.name if enrollment and enrollment.student else None,
            roll_number=enrollment.roll_number if enrollment else None,
            subject_name=schedule.subject.name if schedule and schedule.subject else None,
            exam_name=schedule.exam.name if schedule and schedule.exam else None,
            full_marks=schedule.full_marks if schedule else None,
            updated_at=mark.updated_at,
        )

    @staticmethod
    def _base_query():
        return (
            select(Marks)
            .where(Marks.deleted_at.is_(None))
            .options(joinedload(Marks.enrollment).joinedload(Enrollment.student))
            .execution_options(populate_existing=True)
        )

    @staticmethod
    async def find_all(db: AsyncSession, filters: FilterMarksDto) -> List[MarkResponse]:
        query = MarksService._base_query()

        if filters.exam_schedule_id:
            query = query.where(Marks.exam_schedule_id == filters.exam_schedule_id)
        if filters.enrollment_id:
            query = query.where(Marks.enrollment_id == filters.enrollment_id)
        if filters.exam_id:
            query = query.where(
                Marks.exam_schedule_id.in_(
                    select(ExamSchedule.id).where(ExamSchedule.exam_id == filters.exam_id)
                )
            )
        if filters.class_level_id or filters.section_id:
            enrollment_query = select(Enrollment.id)
            if filters.class_level_id:
                enrollment_query = enrollment_query.where(
                    Enrollment.class_level_id == filters.class_level_id
                )
            if filters.section_id:
                enrollment_query = enrollment_query.where(Enrollment.section_id == filters.section_id)
            query = query.where(Marks.enrollment_id.in_(enrollment_query))

        result = await db.execute(query.order_by(Marks.updated_at.desc(), Marks.id.desc()))
        return [MarksService.to_response(m) for m in result.unique().scalars().all()]

    @staticmethod
    async def bulk_upsert(db: AsyncSession, dto: BulkMarksDto) -> BulkMarksResponse:
        """
        Upsert marks for one exam schedule.

        The whole batch is validated before the first write: schedule,
        grading system, every mark range, every enrollment and its class
        level. Rows are then inserted or updated on
        (enrollment_id, exam_schedule_id) in the request transaction, so
        a failure leaves nothing persisted and repeating the call is a no-op.

        Raises:
            NotFoundError: Unknown schedule or enrollment
            ValidationError: Missing grading system, marks out of range,
                duplicate entries or enrollment in another class level
        """
        schedule = await MarksService._get_schedule(db, dto.exam_schedule_id)
        grading_system = await MarksService._get_grading_system(db, dto.grading_system_id)

        seen = set()
        for entry in dto.marks:
            if entry.enrollment_id in seen:
                raise ValidationError(
                    f"Duplicate entry for enrollment {entry.enrollment_id}", "DUPLICATE_ENTRY"
                )
            seen.add(entry.enrollment_id)
            MarksService._check_range(entry.marks_obtained, schedule, entry.enrollment_id)

        result = await db.execute(
            select(Enrollment).where(
                Enrollment.id.in_(seen), Enrollment.deleted_at.is_(None)
            )
        )
        enrollments: Dict[int, Enrollment] = {e.id: e for e in result.unique().scalars().all()}

        for entry in dto.marks:
            enrollment = enrollments.get(entry.enrollment_id)
            if not enrollment:
                raise NotFoundError("Enrollment", entry.enrollment_id)
            if enrollment.class_level_id != schedule.class_level_id:
                raise ValidationError(
                    f"Enrollment {entry.enrollment_id} does not belong to the exam's class level",
                    "CLASS_LEVEL_MISMATCH",
                )

        existing_rows = await db.scalars(
            select(Marks).where(
                Marks.exam_schedule_id == schedule.id, Marks.enrollment_id.in_(seen)
            )
        )
        existing = {row.enrollment_id: row for row in existing_rows.unique().all()}

        created = updated = 0
        for entry in dto.marks:
            percentage = compute_percentage(entry.marks_obtained, schedule.full_marks)
            grade = find_grade(grading_system.grades, percentage)
            row = existing.get(entry.enrollment_id)
            if row:
                row.marks_obtained = entry.marks_obtained
                row.percentage = percentage
                row.grade_id = grade.id if grade else None
                row.remarks = entry.remarks
                row.deleted_at = None
                updated += 1
            else:
                db.add(
                    Marks(
                        enrollment_id=entry.enrollment_id,
                        exam_schedule_id=schedule.id,
                        marks_obtained=entry.marks_obtained,
                        percentage=percentage,
                        grade_id=grade.id if grade else None,
                        remarks=entry.remarks,
                    )
                )
                created += 1
        await db.flush()

        logger.info(
            "Saved marks for schedule %s: %d created, %d updated", schedule.id, created, updated
        )

        saved = await db.execute(
            MarksService._base_query().where(
                Marks.exam_schedule_id == schedule.id, Marks.enrollment_id.in_(seen)
            )
        )
        return BulkMarksResponse(
            exam_schedule_id=schedule.id,
            created=created,
            updated=updated,
            marks=[MarksService.to_response(m) for m in saved.unique().scalars().all()],
        )

    @staticmethod
    async def find_one(db: AsyncSession, mark_id: int) -> Marks:
        result = await db.execute(MarksService._base_query().where(Marks.id == mark_id))
        mark = result.unique().scalar_one_or_none()
        if not mark:
            raise NotFoundError("Marks", mark_id)
        return mark

    @staticmethod
    async def update(db: AsyncSession, mark_id: int, dto: UpdateMarkDto) -> MarkResponse:
        """Update marks or remarks; percentage and grade are derived again."""
        mark = await MarksService.find_one(db, mark_id)
        schedule = mark.exam_schedule

        if dto.marks_obtained is not None:
            MarksService._check_range(dto.marks_obtained, schedule, mark.enrollment_id)
            mark.marks_obtained = dto.marks_obtained
        if "remarks" in dto.model_fields_set:
            mark.remarks = dto.remarks

        grading_system = await MarksService._get_grading_system(db, dto.grading_system_id)
        mark.percentage = compute_percentage(mark.marks_obtained, schedule.full_marks)
        grade = find_grade(grading_system.grades, mark.percentage)
        mark.grade_id = grade.id if grade else None
        await db.flush()

        return MarksService.to_response(await MarksService.find_one(db, mark_id))

    @staticmethod
    async def remove(db: AsyncSession, mark_id: int) -> None:
        mark = await MarksService.find_one(db, mark_id)
        await db.delete(mark)
        await db.flush()
