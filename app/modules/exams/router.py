"""
Exams Router - exams, schedules, grading systems and marks entry (admin).
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.engine import get_db_util
from app.core.pagination import build_pagination_meta
from app.core.response_interceptor import CustomAPIRoute, skip_interceptor
from app.modules.users.auth import TokenData, require_admin
from .service import ExamsService, GradingSystemsService, MarksService
from .schemas import (
    BulkMarksDto,
    BulkMarksResponse,
    CreateExamDto,
    CreateExamScheduleDto,
    CreateGradingSystemDto,
    ExamListResponse,
    ExamResponse,
    ExamScheduleListResponse,
    ExamScheduleResponse,
    FilterExamSchedulesDto,
    FilterExamsDto,
    FilterMarksDto,
    GradingSystemResponse,
    MarkResponse,
    UpdateMarkDto,
)

router = APIRouter(prefix="/admin/exams", tags=["exams"], route_class=CustomAPIRoute)


@router.get("/exams", response_model=ExamListResponse)
async def list_exams(
    page: int = Query(1),
    limit: int = Query(10),
    academic_year_id: Optional[int] = Query(None, alias="academicYearId"),
    search: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    filters = FilterExamsDto(
        page=page, limit=limit, academic_year_id=academic_year_id, search=search
    )
    exams, total, page, limit = await ExamsService.find_exams(db, filters)
    return ExamListResponse(exams=exams, pagination=build_pagination_meta(total, page, limit))


@router.post("/exams", response_model=ExamResponse, status_code=201)
async def create_exam(
    create_dto: CreateExamDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    exam = await ExamsService.create_exam(db, create_dto)
    await db.commit()
    return exam


@router.get("/schedules", response_model=ExamScheduleListResponse)
async def list_exam_schedules(
    page: int = Query(1),
    limit: int = Query(50),
    exam_id: Optional[int] = Query(None, alias="examId"),
    class_level_id: Optional[int] = Query(None, alias="classLevelId"),
    subject_id: Optional[int] = Query(None, alias="subjectId"),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    filters = FilterExamSchedulesDto(
        page=page,
        limit=limit,
        exam_id=exam_id,
        class_level_id=class_level_id,
        subject_id=subject_id,
    )
    schedules, total, page, limit = await ExamsService.find_schedules(db, filters)
    return ExamScheduleListResponse(
        exam_schedules=[ExamScheduleResponse.model_validate(s) for s in schedules],
        pagination=build_pagination_meta(total, page, limit),
    )


@router.post("/schedules", response_model=ExamScheduleResponse, status_code=201)
async def create_exam_schedule(
    create_dto: CreateExamScheduleDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    schedule = await ExamsService.create_schedule(db, create_dto)
    await db.commit()
    return schedule


@router.get("/grading-systems", response_model=List[GradingSystemResponse])
async def list_grading_systems(
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    return await GradingSystemsService.find_all(db)


@router.post("/grading-systems", response_model=GradingSystemResponse, status_code=201)
async def create_grading_system(
    create_dto: CreateGradingSystemDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    """Create a grading system; flagging it default unflags the others"""
    grading_system = await GradingSystemsService.create(db, create_dto)
    await db.commit()
    return grading_system


@router.get("/marks", response_model=List[MarkResponse])
async def list_marks(
    exam_schedule_id: Optional[int] = Query(None, alias="examScheduleId"),
    enrollment_id: Optional[int] = Query(None, alias="enrollmentId"),
    exam_id: Optional[int] = Query(None, alias="examId"),
    class_level_id: Optional[int] = Query(None, alias="classLevelId"),
    section_id: Optional[int] = Query(None, alias="sectionId"),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    filters = FilterMarksDto(
        exam_schedule_id=exam_schedule_id,
        enrollment_id=enrollment_id,
        exam_id=exam_id,
        class_level_id=class_level_id,
        section_id=section_id,
    )
    return await MarksService.find_all(db, filters)


@router.post("/marks", response_model=BulkMarksResponse, status_code=201)
async def save_marks(
    bulk_dto: BulkMarksDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    """
    Create or update marks for one exam schedule.
    The batch is validated first and written all-or-nothing.
    """
    result = await MarksService.bulk_upsert(db, bulk_dto)
    await db.commit()
    return result


@router.put("/marks/{mark_id}", response_model=MarkResponse)
async def update_mark(
    mark_id: int,
    update_dto: UpdateMarkDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    result = await MarksService.update(db, mark_id, update_dto)
    await db.commit()
    return result


@router.delete("/marks/{mark_id}")
@skip_interceptor
async def delete_mark(
    mark_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    await MarksService.remove(db, mark_id)
    await db.commit()
    return {"success": True, "message": "Marks deleted successfully"}
