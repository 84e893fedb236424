"""
Student and guardian DTOs
"""

from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from app.core.schemas import CamelModel
from app.modules.academics.schemas import EnrollmentSummary


class FilterStudentsDto(BaseModel):
    """Query parameters for the admin student list"""

    page: Optional[int] = Field(1, description="Page number (1-indexed)")
    limit: Optional[int] = Field(10, description="Items per page (max 100)")
    search: Optional[str] = Field(None, description="Matches name or student id, case-insensitive")
    gender: Optional[str] = None
    academic_year_id: Optional[int] = None
    class_level_id: Optional[int] = None
    section_id: Optional[int] = None

    class Config:
        from_attributes = True


class GuardianResponse(CamelModel):
    id: int
    name: str
    relation_to_student: str
    contact_number: str
    email: Optional[str] = None
    occupation: Optional[str] = None


class StudentResponse(CamelModel):
    id: int
    student_id: str
    name: str
    email: Optional[str] = None
    date_of_birth: date
    gender: str
    blood_group: Optional[str] = None
    religion: Optional[str] = None
    nationality: Optional[str] = None
    admission_date: date
    present_address: Optional[str] = None
    permanent_address: Optional[str] = None
    user_id: Optional[int] = None
    guardian: GuardianResponse
    enrollments: List[EnrollmentSummary] = []
    created_at: datetime


class StudentListResponse(CamelModel):
    students: List[StudentResponse]
    pagination: dict


class CreateStudentDto(CamelModel):
    """Admission form: student, guardian and enrollment in one payload"""

    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    date_of_birth: date
    gender: str = Field(..., min_length=1, max_length=20)
    blood_group: Optional[str] = None
    religion: Optional[str] = None
    nationality: Optional[str] = None
    admission_date: date
    present_address: str = Field(..., min_length=1)
    permanent_address: str = Field(..., min_length=1)

    guardian_name: str = Field(..., min_length=1, max_length=255)
    relation_to_student: str = Field(..., min_length=1, max_length=50)
    guardian_contact_number: str = Field(..., min_length=1, max_length=50)
    guardian_email: Optional[str] = None
    guardian_occupation: Optional[str] = None

    academic_year_id: int
    class_level_id: int
    section_id: int
    roll_number: Optional[int] = Field(None, gt=0)


class AdmissionResponse(CamelModel):
    student: StudentResponse
    temporary_password: Optional[str] = Field(
        None, description="Only returned once, when a login account was created"
    )
