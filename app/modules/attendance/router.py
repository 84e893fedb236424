"""
Attendance Router - teacher bulk marking and class attendance.
"""

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.engine import get_db_util
from app.modules.staff.service import StaffService
from app.modules.users.auth import TokenData, require_teacher
from .service import AttendanceService
from .schemas import AttendanceRecordResponse, BulkAttendanceDto, BulkAttendanceResponse

router = APIRouter(prefix="/teacher/attendance", tags=["attendance"])


@router.post("/bulk", response_model=BulkAttendanceResponse, status_code=201)
async def mark_bulk_attendance(
    bulk_dto: BulkAttendanceDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_teacher),
):
    """
    Mark attendance for several students at once.
    All rows are written together or not at all.
    """
    teacher = await StaffService.find_by_user(db, current_user.user_id)
    result = await AttendanceService.mark_bulk(db, teacher, bulk_dto)
    await db.commit()
    return result


@router.get("", response_model=List[AttendanceRecordResponse])
async def get_class_attendance(
    class_level_id: int = Query(..., alias="classLevelId"),
    section_id: int = Query(..., alias="sectionId"),
    day: Optional[date] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_teacher),
):
    teacher = await StaffService.find_by_user(db, current_user.user_id)
    return await AttendanceService.find_for_class(db, teacher, class_level_id, section_id, day)
