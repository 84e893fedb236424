"""
Staff HR services: daily staff attendance and leave requests.
"""

import logging
from datetime import datetime
from typing import List, Tuple
from sqlalchemy import distinct, extract, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.core.pagination import normalize_pagination, paginate_query
from .models import LeaveRequest, LeaveStatus, Staff, StaffAttendance
from .schemas import (
    BulkStaffAttendanceDto,
    BulkStaffAttendanceResponse,
    CreateLeaveRequestDto,
    FilterLeaveRequestsDto,
    FilterStaffAttendanceDto,
    ReviewLeaveRequestDto,
    StaffAttendanceResponse,
)

logger = logging.getLogger(__name__)

# Leave that still blocks the calendar for overlapping requests
ACTIVE_LEAVE_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED)


async def _ensure_staff(db: AsyncSession, staff_ids: List[int]) -> None:
    """
    Raises:
        NotFoundError: For the first id without a live staff row
    """
    found = set(
        (
            await db.scalars(
                select(Staff.id).where(Staff.id.in_(staff_ids), Staff.deleted_at.is_(None))
            )
        ).all()
    )
    for staff_id in staff_ids:
        if staff_id not in found:
            raise NotFoundError("Staff", staff_id)


class StaffAttendanceService:

    @staticmethod
    async def find_all(
        db: AsyncSession, filters: FilterStaffAttendanceDto
    ) -> Tuple[List[StaffAttendance], int, int, int]:
        """
        Paginated staff attendance, newest day first.
        A month filter applies only together with a year.
        """
        page, limit = normalize_pagination(filters.page, filters.limit)
        query = select(StaffAttendance).where(StaffAttendance.deleted_at.is_(None))

        if filters.staff_id:
            query = query.where(StaffAttendance.staff_id == filters.staff_id)
        if filters.day:
            query = query.where(StaffAttendance.date == filters.day)
        if filters.year:
            query = query.where(extract("year", StaffAttendance.date) == filters.year)
            if filters.month:
                query = query.where(extract("month", StaffAttendance.date) == filters.month)
        if filters.status:
            query = query.where(StaffAttendance.status == filters.status)

        query = query.order_by(StaffAttendance.date.desc(), StaffAttendance.staff_id)
        rows, total = await paginate_query(db, query, page, limit)
        return rows, total, page, limit

    @staticmethod
    async def mark_bulk(
        db: AsyncSession, dto: BulkStaffAttendanceDto
    ) -> BulkStaffAttendanceResponse:
        """
        Upsert one attendance row per staff member for the given day.

        Raises:
            NotFoundError: Unknown staff member; nothing is written
        """
        staff_ids = [r.staff_id for r in dto.records]
        await _ensure_staff(db, staff_ids)

        existing_rows = await db.scalars(
            select(StaffAttendance).where(
                StaffAttendance.staff_id.in_(staff_ids), StaffAttendance.date == dto.date
            )
        )
        existing = {row.staff_id: row for row in existing_rows.all()}

        created = updated = 0
        rows: List[StaffAttendance] = []
        for record in dto.records:
            row = existing.get(record.staff_id)
            if row:
                row.status = record.status
                row.remarks = record.remarks
                row.deleted_at = None
                updated += 1
            else:
                row = StaffAttendance(
                    staff_id=record.staff_id,
                    date=dto.date,
                    status=record.status,
                    remarks=record.remarks,
                )
                db.add(row)
                created += 1
            rows.append(row)
        await db.flush()

        result = await db.scalars(
            select(StaffAttendance)
            .where(StaffAttendance.id.in_([row.id for row in rows]))
            .order_by(StaffAttendance.staff_id)
            .execution_options(populate_existing=True)
        )

        logger.info(
            "Staff attendance for %s saved (%d new, %d updated)", dto.date, created, updated
        )
        return BulkStaffAttendanceResponse(
            date=dto.date,
            created=created,
            updated=updated,
            records=[StaffAttendanceResponse.model_validate(row) for row in result.all()],
        )


class LeaveRequestService:

    @staticmethod
    async def find_all(
        db: AsyncSession, filters: FilterLeaveRequestsDto
    ) -> Tuple[List[LeaveRequest], int, int, int]:
        """Paginated leave requests, latest submission first."""
        page, limit = normalize_pagination(filters.page, filters.limit)
        query = select(LeaveRequest).where(LeaveRequest.deleted_at.is_(None))

        if filters.staff_id:
            query = query.where(LeaveRequest.staff_id == filters.staff_id)
        if filters.status:
            query = query.where(LeaveRequest.status == filters.status)
        if filters.leave_type:
            query = query.where(LeaveRequest.leave_type.ilike(f"%{filters.leave_type.strip()}%"))
        if filters.year:
            query = query.where(extract("year", LeaveRequest.start_date) == filters.year)

        query = query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
        requests, total = await paginate_query(db, query, page, limit)
        return requests, total, page, limit

    @staticmethod
    async def get_leave_types(db: AsyncSession) -> List[str]:
        result = await db.scalars(
            select(distinct(LeaveRequest.leave_type))
            .where(LeaveRequest.deleted_at.is_(None))
            .order_by(LeaveRequest.leave_type)
        )
        return list(result.all())

    @staticmethod
    async def find_one(db: AsyncSession, leave_request_id: int) -> LeaveRequest:
        leave_request = await db.scalar(
            select(LeaveRequest).where(
                LeaveRequest.id == leave_request_id, LeaveRequest.deleted_at.is_(None)
            )
        )
        if not leave_request:
            raise NotFoundError("Leave request", leave_request_id)
        return leave_request

    @staticmethod
    async def create(db: AsyncSession, dto: CreateLeaveRequestDto) -> LeaveRequest:
        """
        Submit a PENDING leave request.

        Raises:
            ValidationError: Starts in the past, or overlaps pending or approved leave
            NotFoundError: Unknown staff member
        """
        if dto.start_date < datetime.utcnow().date():
            raise ValidationError("Leave cannot start in the past", "LEAVE_IN_PAST")
        await _ensure_staff(db, [dto.staff_id])

        overlapping = await db.scalar(
            select(LeaveRequest.id).where(
                LeaveRequest.staff_id == dto.staff_id,
                LeaveRequest.status.in_(ACTIVE_LEAVE_STATUSES),
                LeaveRequest.deleted_at.is_(None),
                LeaveRequest.start_date <= dto.end_date,
                LeaveRequest.end_date >= dto.start_date,
            )
        )
        if overlapping:
            raise ValidationError(
                "Leave overlaps an existing pending or approved request",
                "LEAVE_OVERLAP",
                {"leaveRequestId": overlapping},
            )

        leave_request = LeaveRequest(**dto.model_dump(), status=LeaveStatus.PENDING)
        db.add(leave_request)
        await db.flush()
        logger.info(
            "Leave request %s submitted for staff %s (%s to %s)",
            leave_request.id, dto.staff_id, dto.start_date, dto.end_date,
        )
        return await LeaveRequestService._reload(db, leave_request.id)

    @staticmethod
    async def review(
        db: AsyncSession, leave_request_id: int, dto: ReviewLeaveRequestDto, reviewer_id: int
    ) -> LeaveRequest:
        """
        Approve or reject a pending request.

        Raises:
            NotFoundError: Unknown leave request
            ValidationError: Request was already approved or rejected
        """
        leave_request = await LeaveRequestService.find_one(db, leave_request_id)
        if leave_request.status != LeaveStatus.PENDING:
            raise ValidationError(
                f"Leave request is already {leave_request.status.value.lower()}",
                "LEAVE_ALREADY_PROCESSED",
            )

        leave_request.status = dto.status
        leave_request.remarks = dto.remarks
        leave_request.approved_by = reviewer_id
        leave_request.approved_at = datetime.utcnow()
        await db.flush()

        logger.info(
            "Leave request %s %s by user %s", leave_request.id, dto.status.value, reviewer_id
        )
        return await LeaveRequestService._reload(db, leave_request.id)

    @staticmethod
    async def _reload(db: AsyncSession, leave_request_id: int) -> LeaveRequest:
        return await db.scalar(
            select(LeaveRequest)
            .where(LeaveRequest.id == leave_request_id)
            .execution_options(populate_existing=True)
        )
