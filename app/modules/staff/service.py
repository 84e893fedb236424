"""
StaffService - admin staff management.
Hiring creates the login account and the staff row in one transaction.
"""

import logging
import secrets
from datetime import datetime
from typing import List, Tuple
from sqlalchemy import select, distinct, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.sequences import next_code
from app.core.exceptions import ConflictError, NotFoundError
from app.core.pagination import paginate_query, normalize_pagination
from app.modules.users.auth import AuthService
from app.modules.users.models import User
from app.modules.users.service import UsersService
from .models import LeaveRequest, Staff, StaffAttendance
from .schemas import CreateStaffDto, FilterStaffDto, UpdateStaffDto

logger = logging.getLogger(__name__)


class StaffService:

    @staticmethod
    async def find_all(
        db: AsyncSession, filters: FilterStaffDto
    ) -> Tuple[List[Staff], int, int, int]:
        """
        Paginated staff list, newest first.

        Returns:
            (staff, total, page, limit)
        """
        page, limit = normalize_pagination(filters.page, filters.limit)

        query = select(Staff).where(Staff.deleted_at.is_(None))

        if filters.search:
            term = f"%{filters.search.strip()}%"
            query = query.where(
                or_(
                    Staff.name.ilike(term),
                    Staff.staff_id.ilike(term),
                    Staff.email.ilike(term),
                )
            )

        if filters.department:
            query = query.where(Staff.department.ilike(f"%{filters.department}%"))

        if filters.designation:
            query = query.where(Staff.designation.ilike(f"%{filters.designation}%"))

        if filters.gender:
            query = query.where(Staff.gender == filters.gender)

        query = query.order_by(Staff.created_at.desc(), Staff.id.desc())

        staff, total = await paginate_query(db, query, page, limit)
        return staff, total, page, limit

    @staticmethod
    async def get_filter_options(db: AsyncSession) -> Tuple[List[str], List[str]]:
        """Distinct departments and designations for the list filters."""
        departments = await db.scalars(
            select(distinct(Staff.department))
            .where(Staff.deleted_at.is_(None), Staff.department.is_not(None))
            .order_by(Staff.department)
        )
        designations = await db.scalars(
            select(distinct(Staff.designation))
            .where(Staff.deleted_at.is_(None))
            .order_by(Staff.designation)
        )
        return list(departments.all()), list(designations.all())

    @staticmethod
    async def find_one(db: AsyncSession, staff_id: int) -> Staff:
        """
        Raises:
            NotFoundError: If staff not found or is soft-deleted
        """
        result = await db.execute(
            select(Staff)
            .where(Staff.id == staff_id, Staff.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        )
        staff = result.unique().scalar_one_or_none()
        if not staff:
            raise NotFoundError("Staff", staff_id)
        return staff

    @staticmethod
    async def find_by_user(db: AsyncSession, user_id: int) -> Staff:
        """
        Staff row linked to a login account.

        Raises:
            NotFoundError: If the account has no staff record
        """
        result = await db.execute(
            select(Staff).where(Staff.user_id == user_id, Staff.deleted_at.is_(None))
        )
        staff = result.unique().scalar_one_or_none()
        if not staff:
            raise NotFoundError("Staff record")
        return staff

    @staticmethod
    async def find_detail(db: AsyncSession, staff_id: int) -> dict:
        """Staff row with its last 30 attendance days and last 10 leave requests."""
        staff = await StaffService.find_one(db, staff_id)

        attendances = await db.scalars(
            select(StaffAttendance)
            .where(StaffAttendance.staff_id == staff.id)
            .order_by(StaffAttendance.date.desc())
            .limit(30)
        )
        leave_requests = await db.scalars(
            select(LeaveRequest)
            .where(LeaveRequest.staff_id == staff.id, LeaveRequest.deleted_at.is_(None))
            .order_by(LeaveRequest.created_at.desc())
            .limit(10)
        )
        return {
            "staff": staff,
            "attendances": list(attendances.all()),
            "leave_requests": list(leave_requests.all()),
        }

    @staticmethod
    async def create(db: AsyncSession, dto: CreateStaffDto) -> Tuple[Staff, str]:
        """
        Hire a staff member.

        Returns:
            (staff, temporary password)

        Raises:
            ConflictError: Email already in use
        """
        if await UsersService.email_taken(db, dto.email):
            raise ConflictError("A user with this email already exists", "EMAIL_EXISTS")

        temporary_password = secrets.token_hex(8)
        user = User(
            name=dto.name,
            email=dto.email,
            password=AuthService.get_password_hash(temporary_password),
            role=dto.role,
        )
        db.add(user)
        await db.flush()

        staff = Staff(
            staff_id=await next_code(db, Staff.staff_id, "EMP", 3),
            user_id=user.id,
            **dto.model_dump(exclude={"role"}),
        )
        db.add(staff)
        await db.flush()

        logger.info("Hired staff %s as %s", staff.staff_id, dto.role.value)
        return await StaffService.find_one(db, staff.id), temporary_password

    @staticmethod
    async def update(db: AsyncSession, staff_id: int, dto: UpdateStaffDto) -> Staff:
        """
        Partial update. Name and email are mirrored onto the login account.

        Raises:
            NotFoundError: Unknown staff
            ConflictError: Email already used by another account
        """
        staff = await StaffService.find_one(db, staff_id)
        update_data = dto.model_dump(exclude_unset=True)

        if "email" in update_data and update_data["email"] != staff.email:
            if await UsersService.email_taken(db, update_data["email"], exclude_user_id=staff.user_id):
                raise ConflictError("A user with this email already exists", "EMAIL_EXISTS")

        for key, value in update_data.items():
            setattr(staff, key, value)

        user = await db.get(User, staff.user_id)
        if "name" in update_data:
            user.name = update_data["name"]
        if "email" in update_data:
            user.email = update_data["email"]

        await db.flush()
        return await StaffService.find_one(db, staff_id)

    @staticmethod
    async def remove(db: AsyncSession, staff_id: int) -> None:
        """Soft delete the staff row and its login account."""
        staff = await StaffService.find_one(db, staff_id)
        now = datetime.utcnow()
        staff.soft_delete(now)
        user = await db.get(User, staff.user_id)
        if user:
            user.soft_delete(now)
        await db.flush()
        logger.info("Removed staff %s", staff.staff_id)
