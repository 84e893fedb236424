"""
Exam DTOs - exams, schedules, grading systems and marks
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator

from app.core.schemas import CamelModel


class MarkEntryDto(CamelModel):
    enrollment_id: int
    marks_obtained: Decimal
    remarks: Optional[str] = Field(None, max_length=500)


class BulkMarksDto(CamelModel):
    """Marks of several students for one exam schedule"""

    exam_schedule_id: int
    grading_system_id: Optional[int] = Field(
        None, description="Defaults to the grading system flagged as default"
    )
    marks: List[MarkEntryDto] = Field(..., min_length=1)


class UpdateMarkDto(CamelModel):
    marks_obtained: Optional[Decimal] = None
    remarks: Optional[str] = Field(None, max_length=500)
    grading_system_id: Optional[int] = None


class FilterMarksDto(BaseModel):
    exam_schedule_id: Optional[int] = None
    enrollment_id: Optional[int] = None
    exam_id: Optional[int] = None
    class_level_id: Optional[int] = None
    section_id: Optional[int] = None

    class Config:
        from_attributes = True


class GradeResponse(CamelModel):
    id: int
    grade_name: str
    min_percentage: float
    max_percentage: float
    points: Optional[float] = None


class MarkResponse(CamelModel):
    id: int
    enrollment_id: int
    exam_schedule_id: int
    marks_obtained: Decimal
    percentage: float
    remarks: Optional[str] = None
    grade: Optional[GradeResponse] = None
    student_name: Optional[str] = None
    roll_number: Optional[int] = None
    subject_name: Optional[str] = None
    exam_name: Optional[str] = None
    full_marks: Optional[Decimal] = None
    updated_at: datetime


class BulkMarksResponse(CamelModel):
    exam_schedule_id: int
    created: int
    updated: int
    marks: List[MarkResponse]


# HH:MM, 24 hour clock
TIME_PATTERN = r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$"


def _minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


class CreateExamDto(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    academic_year_id: int


class FilterExamsDto(BaseModel):
    page: Optional[int] = 1
    limit: Optional[int] = 10
    academic_year_id: Optional[int] = None
    search: Optional[str] = None

    class Config:
        from_attributes = True


class ExamResponse(CamelModel):
    id: int
    name: str
    academic_year_id: int
    academic_year_name: Optional[str] = None
    schedule_count: int = 0
    created_at: datetime


class ExamListResponse(CamelModel):
    exams: List[ExamResponse]
    pagination: dict


class CreateExamScheduleDto(CamelModel):
    exam_id: int
    class_level_id: int
    subject_id: int
    exam_date: date
    start_time: str = Field(..., pattern=TIME_PATTERN, description="HH:MM")
    end_time: str = Field(..., pattern=TIME_PATTERN, description="HH:MM")
    full_marks: Decimal = Field(..., gt=0)
    pass_marks: Decimal = Field(..., ge=0)

    @model_validator(mode="after")
    def check_marks_and_times(self):
        if self.pass_marks > self.full_marks:
            raise ValueError("passMarks must be between 0 and fullMarks")
        if _minutes(self.start_time) >= _minutes(self.end_time):
            raise ValueError("Start time must be before end time")
        return self


class FilterExamSchedulesDto(BaseModel):
    page: Optional[int] = 1
    limit: Optional[int] = 50
    exam_id: Optional[int] = None
    class_level_id: Optional[int] = None
    subject_id: Optional[int] = None

    class Config:
        from_attributes = True


class ExamScheduleResponse(CamelModel):
    id: int
    exam_id: int
    exam_name: Optional[str] = None
    class_level_id: int
    class_name: Optional[str] = None
    subject_id: int
    subject_name: Optional[str] = None
    exam_date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    full_marks: Decimal
    pass_marks: Decimal


class ExamScheduleListResponse(CamelModel):
    exam_schedules: List[ExamScheduleResponse]
    pagination: dict


class GradeDto(CamelModel):
    grade_name: str = Field(..., min_length=1, max_length=10)
    min_percentage: float = Field(..., ge=0, le=100)
    max_percentage: float = Field(..., ge=0, le=100)
    points: Optional[float] = None

    @model_validator(mode="after")
    def check_band(self):
        if self.min_percentage >= self.max_percentage:
            raise ValueError("minPercentage must be less than maxPercentage")
        return self


class CreateGradingSystemDto(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    is_default: bool = False
    grades: List[GradeDto] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_overlaps(self):
        bands = sorted(self.grades, key=lambda g: g.min_percentage)
        for lower, upper in zip(bands, bands[1:]):
            if lower.max_percentage > upper.min_percentage:
                raise ValueError("Grade percentage ranges cannot overlap")
        return self


class GradingSystemResponse(CamelModel):
    id: int
    name: str
    is_default: bool
    grades: List[GradeResponse] = []
