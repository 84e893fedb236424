"""
AttendanceService - bulk marking and class attendance lookups for teachers.
"""

import logging
from datetime import date
from operator import attrgetter
from typing import Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.core.exceptions import ForbiddenError, ValidationError
from app.modules.academics.models import Enrollment, TeacherClassAssignment
from app.modules.academics.service import AcademicsService
from app.modules.notifications.models import Notification, NotificationPriority
from app.modules.staff.models import Staff
from app.modules.students.models import Guardian, Student
from .models import AttendanceStatus, StudentAttendance
from .schemas import AttendanceRecordResponse, BulkAttendanceDto, BulkAttendanceResponse

logger = logging.getLogger(__name__)


class AttendanceService:

    @staticmethod
    async def ensure_teaches(
        db: AsyncSession, teacher: Staff, class_level_id: int, section_id: int
    ) -> None:
        """
        Raises:
            ForbiddenError: If the teacher holds no assignment for the class section
        """
        assignment = await db.scalar(
            select(TeacherClassAssignment.id).where(
                TeacherClassAssignment.teacher_id == teacher.id,
                TeacherClassAssignment.class_level_id == class_level_id,
                TeacherClassAssignment.section_id == section_id,
                TeacherClassAssignment.deleted_at.is_(None),
            )
        )
        if not assignment:
            raise ForbiddenError("You are not assigned to this class", "CLASS_ACCESS_DENIED")

    @staticmethod
    async def _class_enrollments(
        db: AsyncSession,
        class_level_id: int,
        section_id: int,
        student_ids: Optional[List[int]] = None,
    ) -> List[Enrollment]:
        query = (
            select(Enrollment)
            .where(
                Enrollment.class_level_id == class_level_id,
                Enrollment.section_id == section_id,
                Enrollment.deleted_at.is_(None),
            )
            .options(joinedload(Enrollment.student))
        )
        current_year = await AcademicsService.get_current_year(db)
        if current_year:
            query = query.where(Enrollment.academic_year_id == current_year.id)
        if student_ids is not None:
            query = query.where(Enrollment.student_id.in_(student_ids))
        result = await db.execute(query.order_by(Enrollment.roll_number))
        enrollments = list(result.unique().scalars().all())
        if current_year:
            return enrollments
        return AttendanceService._latest_per_student(enrollments)

    @staticmethod
    def _latest_per_student(enrollments: List[Enrollment]) -> List[Enrollment]:
        """One enrollment per student: the one in the most recent academic year."""
        latest: Dict[int, Enrollment] = {}
        for enrollment in enrollments:
            kept = latest.get(enrollment.student_id)
            if kept is None or enrollment.academic_year.start_date > kept.academic_year.start_date:
                latest[enrollment.student_id] = enrollment
        return sorted(latest.values(), key=attrgetter("roll_number"))

    @staticmethod
    def _to_record(row: StudentAttendance, enrollment: Enrollment) -> AttendanceRecordResponse:
        return AttendanceRecordResponse(
            id=row.id,
            enrollment_id=enrollment.id,
            student_id=enrollment.student_id,
            student_name=enrollment.student.name,
            roll_number=enrollment.roll_number,
            date=row.date,
            status=row.status,
            remarks=row.remarks,
            updated_at=row.updated_at,
        )

    @staticmethod
    async def mark_bulk(
        db: AsyncSession, teacher: Staff, dto: BulkAttendanceDto
    ) -> BulkAttendanceResponse:
        """
        Upsert one attendance row per student for the given day.

        Every student is validated before anything is written; rows are then
        inserted or updated on (enrollment_id, date) inside the request
        transaction. Marking the same status twice leaves the same rows.

        Raises:
            ForbiddenError: Teacher not assigned to the class section
            ValidationError: Some students are not enrolled in the class section
        """
        await AttendanceService.ensure_teaches(db, teacher, dto.class_level_id, dto.section_id)

        student_ids = list(dict.fromkeys(dto.student_ids))
        enrollments = await AttendanceService._class_enrollments(
            db, dto.class_level_id, dto.section_id, student_ids
        )
        if len(enrollments) != len(student_ids):
            enrolled = {e.student_id for e in enrollments}
            missing = [sid for sid in student_ids if sid not in enrolled]
            raise ValidationError(
                "Some students are not enrolled in this class",
                "STUDENTS_NOT_ENROLLED",
                {"studentIds": missing},
            )

        by_enrollment = {e.id: e for e in enrollments}
        existing_rows = await db.scalars(
            select(StudentAttendance).where(
                StudentAttendance.enrollment_id.in_(by_enrollment.keys()),
                StudentAttendance.date == dto.date,
            )
        )
        existing = {row.enrollment_id: row for row in existing_rows.all()}

        created = updated = 0
        rows: List[StudentAttendance] = []
        newly_absent: List[Enrollment] = []
        for enrollment in enrollments:
            row = existing.get(enrollment.id)
            was_absent = bool(row) and row.deleted_at is None and row.status == AttendanceStatus.ABSENT
            if dto.status == AttendanceStatus.ABSENT and not was_absent:
                newly_absent.append(enrollment)
            if row:
                row.status = dto.status
                row.remarks = dto.notes
                row.marked_by = teacher.id
                row.deleted_at = None
                updated += 1
            else:
                row = StudentAttendance(
                    enrollment_id=enrollment.id,
                    date=dto.date,
                    status=dto.status,
                    remarks=dto.notes,
                    marked_by=teacher.id,
                )
                db.add(row)
                created += 1
            rows.append(row)
        await db.flush()

        # Guardians hear about an absence once, not on every re-submit
        if newly_absent:
            await AttendanceService._notify_guardians(db, newly_absent, dto.date)

        for row in rows:
            await db.refresh(row, ["updated_at"])

        logger.info(
            "Teacher %s marked %s %s for %d students (%d new, %d updated)",
            teacher.id, dto.date, dto.status.value, len(rows), created, updated,
        )
        return BulkAttendanceResponse(
            date=dto.date,
            status=dto.status,
            created=created,
            updated=updated,
            records=[
                AttendanceService._to_record(row, by_enrollment[row.enrollment_id])
                for row in rows
            ],
        )

    @staticmethod
    async def _notify_guardians(
        db: AsyncSession, enrollments: List[Enrollment], day: date
    ) -> None:
        """Queue an in-app notification for every guardian with a login account."""
        result = await db.execute(
            select(Student.name, Guardian.user_id)
            .join(Guardian, Student.guardian_id == Guardian.id)
            .where(
                Student.id.in_([e.student_id for e in enrollments]),
                Guardian.user_id.is_not(None),
            )
        )
        for student_name, guardian_user_id in result.all():
            db.add(
                Notification(
                    user_id=guardian_user_id,
                    type="ATTENDANCE",
                    priority=NotificationPriority.HIGH,
                    title="Absence recorded",
                    content=f"{student_name} was marked absent on {day.isoformat()}.",
                )
            )
        await db.flush()

    @staticmethod
    async def find_for_class(
        db: AsyncSession,
        teacher: Staff,
        class_level_id: int,
        section_id: int,
        day: Optional[date] = None,
    ) -> List[AttendanceRecordResponse]:
        """
        Attendance of a class section, newest day first then by roll number.

        Raises:
            ForbiddenError: Teacher not assigned to the class section
        """
        await AttendanceService.ensure_teaches(db, teacher, class_level_id, section_id)

        enrollments = await AttendanceService._class_enrollments(db, class_level_id, section_id)
        by_enrollment = {e.id: e for e in enrollments}
        if not by_enrollment:
            return []

        query = select(StudentAttendance).where(
            StudentAttendance.enrollment_id.in_(by_enrollment.keys()),
            StudentAttendance.deleted_at.is_(None),
        )
        if day:
            query = query.where(StudentAttendance.date == day)
        rows = (await db.execute(query.order_by(StudentAttendance.date.desc()))).unique().scalars().all()

        records = [
            AttendanceService._to_record(row, by_enrollment[row.enrollment_id]) for row in rows
        ]
        records.sort(key=lambda r: r.roll_number)
        records.sort(key=lambda r: r.date, reverse=True)
        return records
