"""
Staff Router - admin staff management, staff attendance and leave requests.
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.engine import get_db_util
from app.core.pagination import build_pagination_meta
from app.core.response_interceptor import CustomAPIRoute, skip_interceptor
from app.modules.users.auth import TokenData, require_admin
from .hr_service import LeaveRequestService, StaffAttendanceService
from .models import LeaveStatus, StaffAttendanceStatus
from .service import StaffService
from .schemas import (
    BulkStaffAttendanceDto,
    BulkStaffAttendanceResponse,
    CreateLeaveRequestDto,
    CreateStaffDto,
    CreateStaffResponse,
    FilterLeaveRequestsDto,
    FilterStaffAttendanceDto,
    FilterStaffDto,
    LeaveRequestFilterOptions,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    ReviewLeaveRequestDto,
    StaffAttendanceListResponse,
    StaffAttendanceResponse,
    StaffDetailResponse,
    StaffFilterOptions,
    StaffListResponse,
    StaffResponse,
    UpdateStaffDto,
)

router = APIRouter(prefix="/admin/staff", tags=["staff"], route_class=CustomAPIRoute)


@router.get("", response_model=StaffListResponse)
async def list_staff(
    page: int = Query(1),
    limit: int = Query(10),
    search: Optional[str] = Query(None),
    department: Optional[str] = Query(None),
    designation: Optional[str] = Query(None),
    gender: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    """
    List staff with search, filters and pagination.

    - search: name, staff id or email (case-insensitive substring)
    - department / designation: case-insensitive substring
    - gender: exact match
    """
    filters = FilterStaffDto(
        page=page,
        limit=limit,
        search=search,
        department=department,
        designation=designation,
        gender=gender,
    )
    staff, total, page, limit = await StaffService.find_all(db, filters)
    departments, designations = await StaffService.get_filter_options(db)
    return StaffListResponse(
        staff=[StaffResponse.model_validate(s) for s in staff],
        pagination=build_pagination_meta(total, page, limit),
        filters=StaffFilterOptions(departments=departments, designations=designations),
    )


@router.post("", response_model=CreateStaffResponse, status_code=201)
async def create_staff(
    create_dto: CreateStaffDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    """Hire a staff member. A login account with a temporary password is created."""
    staff, temporary_password = await StaffService.create(db, create_dto)
    await db.commit()
    return CreateStaffResponse(
        staff=StaffResponse.model_validate(staff),
        temporary_password=temporary_password,
    )


# Static paths are declared before the /{staff_id} routes


@router.get("/attendance", response_model=StaffAttendanceListResponse)
async def list_staff_attendance(
    page: int = Query(1),
    limit: int = Query(50),
    staff_id: Optional[int] = Query(None, alias="staffId"),
    day: Optional[date] = Query(None, alias="date"),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None),
    status: Optional[StaffAttendanceStatus] = Query(None),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    """Staff attendance by staff member, day, month of a year, year or status"""
    filters = FilterStaffAttendanceDto(
        page=page,
        limit=limit,
        staff_id=staff_id,
        day=day,
        month=month,
        year=year,
        status=status,
    )
    rows, total, page, limit = await StaffAttendanceService.find_all(db, filters)
    return StaffAttendanceListResponse(
        attendances=[StaffAttendanceResponse.model_validate(r) for r in rows],
        pagination=build_pagination_meta(total, page, limit),
    )


@router.post("/attendance", response_model=BulkStaffAttendanceResponse, status_code=201)
async def mark_staff_attendance(
    bulk_dto: BulkStaffAttendanceDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    """Create or update one day of attendance for several staff members"""
    result = await StaffAttendanceService.mark_bulk(db, bulk_dto)
    await db.commit()
    return result


@router.get("/leave-requests", response_model=LeaveRequestListResponse)
async def list_leave_requests(
    page: int = Query(1),
    limit: int = Query(10),
    staff_id: Optional[int] = Query(None, alias="staffId"),
    status: Optional[LeaveStatus] = Query(None),
    leave_type: Optional[str] = Query(None, alias="leaveType"),
    year: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    filters = FilterLeaveRequestsDto(
        page=page, limit=limit, staff_id=staff_id, status=status, leave_type=leave_type, year=year
    )
    requests, total, page, limit = await LeaveRequestService.find_all(db, filters)
    leave_types = await LeaveRequestService.get_leave_types(db)
    return LeaveRequestListResponse(
        leave_requests=[LeaveRequestResponse.model_validate(r) for r in requests],
        pagination=build_pagination_meta(total, page, limit),
        filters=LeaveRequestFilterOptions(leave_types=leave_types),
    )


@router.post("/leave-requests", response_model=LeaveRequestResponse, status_code=201)
async def create_leave_request(
    create_dto: CreateLeaveRequestDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    leave_request = await LeaveRequestService.create(db, create_dto)
    await db.commit()
    return leave_request


@router.put("/leave-requests/{leave_request_id}", response_model=LeaveRequestResponse)
async def review_leave_request(
    leave_request_id: int,
    review_dto: ReviewLeaveRequestDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    """Approve or reject a pending leave request"""
    leave_request = await LeaveRequestService.review(
        db, leave_request_id, review_dto, current_user.user_id
    )
    await db.commit()
    return leave_request


@router.get("/{staff_id}", response_model=StaffDetailResponse)
async def get_staff(
    staff_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    detail = await StaffService.find_detail(db, staff_id)
    return StaffDetailResponse(
        **StaffResponse.model_validate(detail["staff"]).model_dump(),
        attendances=detail["attendances"],
        leave_requests=detail["leave_requests"],
    )


@router.put("/{staff_id}", response_model=StaffResponse)
async def update_staff(
    staff_id: int,
    update_dto: UpdateStaffDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    staff = await StaffService.update(db, staff_id, update_dto)
    await db.commit()
    return staff


@router.delete("/{staff_id}")
@skip_interceptor
async def delete_staff(
    staff_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    """Soft delete a staff member and their login account"""
    await StaffService.remove(db, staff_id)
    await db.commit()
    return {"success": True, "message": "Staff member deleted successfully"}
