"""
Student attendance DTOs
"""

from datetime import date as date_type, datetime
from typing import List, Optional
from pydantic import Field

from app.core.schemas import CamelModel
from .models import AttendanceStatus


class BulkAttendanceDto(CamelModel):
    """Mark the same status for several students of one class section on one day"""

    class_level_id: int
    section_id: int
    student_ids: List[int] = Field(..., min_length=1)
    status: AttendanceStatus
    date: date_type
    notes: Optional[str] = Field(None, max_length=500)


class AttendanceRecordResponse(CamelModel):
    id: int
    enrollment_id: int
    student_id: int
    student_name: str
    roll_number: int
    date: date_type
    status: AttendanceStatus
    remarks: Optional[str] = None
    updated_at: datetime


class BulkAttendanceResponse(CamelModel):
    date: date_type
    status: AttendanceStatus
    created: int
    updated: int
    records: List[AttendanceRecordResponse]
