import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import make_url

from app.core.config import config
from app.core.db.engine import check_database_connection, get_session_factory
from app.core.error_handler import register_exception_handlers
from app.core.response_interceptor import (
    SuccessResponseInterceptor,
    CustomAPIRoute,
)
from app.modules.users import router as users_router
from app.modules.dashboard.router import router as dashboard_router
from app.modules.staff.router import router as staff_router
from app.modules.students.router import router as students_router
from app.modules.academics.router import router as academics_router
from app.modules.exams.router import router as exams_router
from app.modules.attendance.router import router as attendance_router
from app.modules.finance.router import router as finance_router

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    url = make_url(config.database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    logger.info("🚀 Starting EduPro API (%s)...", config.environment)
    yield
    logger.info("EduPro API stopped")


app = FastAPI(
    title="EduPro API",
    description="School management API: dashboards, staff, students, exams, attendance and fees",
    version="1.0.0",
    lifespan=lifespan,
)

# Override the default route class to support skip_interceptor decorator
app.router.route_class = CustomAPIRoute

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add Success Response Interceptor (must be added after CORS)
app.add_middleware(SuccessResponseInterceptor)

# Include routers with /api prefix
app.include_router(users_router, prefix="/api")
app.include_router(dashboard_router, prefix="/api")
app.include_router(staff_router, prefix="/api")
app.include_router(students_router, prefix="/api")
app.include_router(academics_router, prefix="/api")
app.include_router(exams_router, prefix="/api")
app.include_router(attendance_router, prefix="/api")
app.include_router(finance_router, prefix="/api")


@app.get("/health")
async def health(session_factory=Depends(get_session_factory)):
    if await check_database_connection(session_factory):
        return {"status": "ok", "database": "connected"}
    return JSONResponse(
        status_code=503,
        content={"success": False, "error": "Database unavailable", "code": "DATABASE_ERROR"},
    )
