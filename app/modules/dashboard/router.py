"""
Dashboard Router - one stats endpoint per role.

All endpoints are read-only; each role may only read its own dashboard.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.db.engine import get_session_factory
from app.modules.users.auth import (
    TokenData,
    require_accountant,
    require_admin,
    require_guardian,
    require_librarian,
    require_student,
    require_teacher,
)
from .service import (
    AccountantDashboardService,
    AdminDashboardService,
    GuardianDashboardService,
    LibrarianDashboardService,
    StudentDashboardService,
    TeacherDashboardService,
)
from .schemas import (
    AccountantDashboardStats,
    AdminDashboardStats,
    GuardianDashboardStats,
    LibrarianDashboardStats,
    StudentDashboardStats,
    TeacherDashboardStats,
)

router = APIRouter(tags=["dashboard"])


@router.get("/admin/dashboard/stats", response_model=AdminDashboardStats)
async def admin_stats(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    current_user: TokenData = Depends(require_admin),
):
    """
    School-wide overview.

    Returns:
        - counts: students, staff, subjects, class levels, enrollments, invoices
        - metrics: enrollment and invoice completion rates
        - recent_activities: newest 10 across enrollments, staff and system events
    """
    return await AdminDashboardService.get_stats(session_factory)


@router.get("/accountant/dashboard/stats", response_model=AccountantDashboardStats)
async def accountant_stats(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    current_user: TokenData = Depends(require_accountant),
):
    """Revenue, expenses, 12-month revenue chart and the recent transaction feed"""
    return await AccountantDashboardService.get_stats(session_factory)


@router.get("/librarian/dashboard/stats", response_model=LibrarianDashboardStats)
async def librarian_stats(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    current_user: TokenData = Depends(require_librarian),
):
    return await LibrarianDashboardService.get_stats(session_factory)


@router.get("/student/dashboard/stats", response_model=StudentDashboardStats)
async def student_stats(
    user_id: Optional[int] = Query(None, alias="userId"),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    current_user: TokenData = Depends(require_student),
):
    """
    Stats of the signed-in student.

    Query params: userId (optional, must be the caller's own id)
    """
    return await StudentDashboardService.get_stats(session_factory, current_user, user_id)


@router.get("/guardian/dashboard/stats", response_model=GuardianDashboardStats)
async def guardian_stats(
    user_id: Optional[int] = Query(None, alias="userId"),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    current_user: TokenData = Depends(require_guardian),
):
    """
    Stats across every child of the signed-in guardian.

    Query params: userId (optional, must be the caller's own id)
    """
    return await GuardianDashboardService.get_stats(session_factory, current_user, user_id)


@router.get("/teacher/dashboard/stats", response_model=TeacherDashboardStats)
async def teacher_stats(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    current_user: TokenData = Depends(require_teacher),
):
    return await TeacherDashboardService.get_stats(session_factory, current_user)
