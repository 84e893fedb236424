"""
Students Router - admin student management.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.engine import get_db_util
from app.core.pagination import build_pagination_meta
from app.modules.users.auth import TokenData, require_admin
from .service import StudentsService
from .schemas import (
    AdmissionResponse,
    CreateStudentDto,
    FilterStudentsDto,
    StudentListResponse,
    StudentResponse,
)

router = APIRouter(prefix="/admin/students", tags=["students"])


@router.get("", response_model=StudentListResponse)
async def list_students(
    page: int = Query(1),
    limit: int = Query(10),
    search: Optional[str] = Query(None),
    gender: Optional[str] = Query(None),
    academic_year_id: Optional[int] = Query(None, alias="academicYearId"),
    class_level_id: Optional[int] = Query(None, alias="classLevelId"),
    section_id: Optional[int] = Query(None, alias="sectionId"),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    """
    List students with search and enrollment filters.

    Query params: page, limit, search, gender, academicYearId, classLevelId, sectionId
    """
    filters = FilterStudentsDto(
        page=page,
        limit=limit,
        search=search,
        gender=gender,
        academic_year_id=academic_year_id,
        class_level_id=class_level_id,
        section_id=section_id,
    )
    students, total, page, limit = await StudentsService.find_all(db, filters)
    return StudentListResponse(
        students=[StudentResponse.model_validate(s) for s in students],
        pagination=build_pagination_meta(total, page, limit),
    )


@router.post("", response_model=AdmissionResponse, status_code=201)
async def admit_student(
    create_dto: CreateStudentDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    """Admit a new student with guardian and enrollment"""
    student, temporary_password = await StudentsService.admit(db, create_dto)
    await db.commit()
    return AdmissionResponse(
        student=StudentResponse.model_validate(student),
        temporary_password=temporary_password,
    )


@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    return await StudentsService.find_one(db, student_id)
