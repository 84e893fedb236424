"""
Academic setup router (admin only).
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.engine import get_db_util
from app.modules.users.auth import TokenData, require_admin
from .service import AcademicsService
from .schemas import (
    AcademicYearResponse,
    ClassLevelResponse,
    CreateAcademicYearDto,
    CreateClassLevelDto,
    CreateSectionDto,
    CreateSubjectDto,
    CreateTeacherAssignmentDto,
    SectionResponse,
    SubjectResponse,
    TeacherAssignmentResponse,
)

router = APIRouter(prefix="/admin", tags=["academics"])


@router.get("/academic-years", response_model=List[AcademicYearResponse])
async def list_academic_years(
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    return await AcademicsService.list_years(db)


@router.post("/academic-years", response_model=AcademicYearResponse, status_code=201)
async def create_academic_year(
    create_dto: CreateAcademicYearDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    year = await AcademicsService.create_year(db, create_dto)
    await db.commit()
    return year


@router.get("/class-levels", response_model=List[ClassLevelResponse])
async def list_class_levels(
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    return await AcademicsService.list_class_levels(db)


@router.post("/class-levels", response_model=ClassLevelResponse, status_code=201)
async def create_class_level(
    create_dto: CreateClassLevelDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    class_level = await AcademicsService.create_class_level(db, create_dto)
    await db.commit()
    return class_level


@router.get("/sections", response_model=List[SectionResponse])
async def list_sections(
    class_level_id: Optional[int] = Query(None, alias="classLevelId"),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    return await AcademicsService.list_sections(db, class_level_id)


@router.post("/sections", response_model=SectionResponse, status_code=201)
async def create_section(
    create_dto: CreateSectionDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    section = await AcademicsService.create_section(db, create_dto)
    await db.commit()
    return section


@router.get("/subjects", response_model=List[SubjectResponse])
async def list_subjects(
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    return await AcademicsService.list_subjects(db)


@router.post("/subjects", response_model=SubjectResponse, status_code=201)
async def create_subject(
    create_dto: CreateSubjectDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    subject = await AcademicsService.create_subject(db, create_dto)
    await db.commit()
    return subject


@router.get("/teacher-assignments", response_model=List[TeacherAssignmentResponse])
async def list_teacher_assignments(
    teacher_id: Optional[int] = Query(None, alias="teacherId"),
    class_level_id: Optional[int] = Query(None, alias="classLevelId"),
    section_id: Optional[int] = Query(None, alias="sectionId"),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    return await AcademicsService.list_teacher_assignments(
        db, teacher_id, class_level_id, section_id
    )


@router.post("/teacher-assignments", response_model=TeacherAssignmentResponse, status_code=201)
async def create_teacher_assignment(
    create_dto: CreateTeacherAssignmentDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin),
):
    """Assign a teacher to a class section, optionally for a single subject"""
    assignment = await AcademicsService.assign_teacher(db, create_dto)
    await db.commit()
    return assignment
