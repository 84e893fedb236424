"""
Academic setup DTOs
"""

from datetime import date
from typing import List, Optional
from pydantic import Field, model_validator

from app.core.schemas import CamelModel


class CreateAcademicYearDto(CamelModel):
    year: str = Field(..., min_length=4, max_length=20, description="e.g. 2024-2025")
    start_date: date
    end_date: date
    is_current: bool = False

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date <= self.start_date:
            raise ValueError("endDate must be after startDate")
        return self


class AcademicYearResponse(CamelModel):
    id: int
    year: str
    start_date: date
    end_date: date
    is_current: bool


class CreateClassLevelDto(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    sections: List[str] = Field(default_factory=list, description="Section names created with the class")


class SectionResponse(CamelModel):
    id: int
    name: str
    class_level_id: int


class ClassLevelResponse(CamelModel):
    id: int
    name: str
    sections: List[SectionResponse] = []


class CreateSectionDto(CamelModel):
    name: str = Field(..., min_length=1, max_length=50)
    class_level_id: int


class CreateSubjectDto(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    subject_code: str = Field(..., min_length=1, max_length=50)


class SubjectResponse(CamelModel):
    id: int
    name: str
    subject_code: str


class EnrollmentSummary(CamelModel):
    id: int
    academic_year_id: int
    class_level_id: int
    section_id: int
    roll_number: int
    class_name: Optional[str] = None
    section_name: Optional[str] = None
    academic_year_name: Optional[str] = None


class CreateTeacherAssignmentDto(CamelModel):
    teacher_id: int = Field(..., description="Staff id of a teacher")
    class_level_id: int
    section_id: int
    subject_id: Optional[int] = Field(None, description="Empty for a class teacher assignment")


class TeacherAssignmentResponse(CamelModel):
    id: int
    teacher_id: int
    teacher_name: Optional[str] = None
    class_level_id: int
    class_name: Optional[str] = None
    section_id: int
    section_name: Optional[str] = None
    subject_id: Optional[int] = None
    subject_name: Optional[str] = None
