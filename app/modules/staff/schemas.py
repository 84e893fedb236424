"""
Staff DTOs
"""

from datetime import date, datetime
from datetime import date as date_type
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.schemas import CamelModel
from app.modules.users.models import Role
from .models import LeaveStatus, StaffAttendanceStatus

# Roles that can be assigned when hiring staff
STAFF_ROLES = (Role.TEACHER, Role.ACCOUNTANT, Role.LIBRARIAN, Role.ADMIN)


class FilterStaffDto(BaseModel):
    """Query parameters for the admin staff list"""

    page: Optional[int] = Field(1, description="Page number (1-indexed)")
    limit: Optional[int] = Field(10, description="Items per page (max 100)")
    search: Optional[str] = Field(None, description="Matches name, staff id or email, case-insensitive")
    department: Optional[str] = Field(None, description="Case-insensitive substring")
    designation: Optional[str] = Field(None, description="Case-insensitive substring")
    gender: Optional[str] = Field(None, description="Exact match")

    class Config:
        from_attributes = True


class StaffUserSummary(CamelModel):
    id: int
    email: str
    role: Role
    created_at: datetime


class StaffResponse(CamelModel):
    id: int
    staff_id: str
    name: str
    email: str
    designation: str
    department: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    contact_number: Optional[str] = None
    joining_date: date
    qualification: Optional[str] = None
    present_address: Optional[str] = None
    permanent_address: Optional[str] = None
    user: StaffUserSummary
    created_at: datetime
    updated_at: datetime


class StaffAttendanceResponse(CamelModel):
    id: int
    staff_id: int
    staff_name: Optional[str] = None
    date: date
    status: StaffAttendanceStatus
    remarks: Optional[str] = None


class LeaveRequestResponse(CamelModel):
    id: int
    staff_id: int
    staff_name: Optional[str] = None
    leave_type: str
    start_date: date
    end_date: date
    reason: Optional[str] = None
    status: LeaveStatus
    remarks: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: datetime


class StaffDetailResponse(StaffResponse):
    attendances: List[StaffAttendanceResponse] = []
    leave_requests: List[LeaveRequestResponse] = []


class StaffFilterOptions(CamelModel):
    departments: List[str]
    designations: List[str]


class StaffListResponse(CamelModel):
    staff: List[StaffResponse]
    pagination: dict
    filters: StaffFilterOptions


class CreateStaffDto(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    designation: str = Field(..., min_length=1, max_length=100)
    department: Optional[str] = Field(None, max_length=100)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    contact_number: Optional[str] = None
    joining_date: date
    qualification: Optional[str] = None
    present_address: Optional[str] = None
    permanent_address: Optional[str] = None
    role: Role = Role.TEACHER

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("Invalid email format")
        return value

    @field_validator("role")
    @classmethod
    def check_role(cls, value: Role) -> Role:
        if value not in STAFF_ROLES:
            raise ValueError(f"Role must be one of {', '.join(r.value for r in STAFF_ROLES)}")
        return value


class UpdateStaffDto(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = Field(None, min_length=3, max_length=255)
    designation: Optional[str] = Field(None, min_length=1, max_length=100)
    department: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    contact_number: Optional[str] = None
    joining_date: Optional[date] = None
    qualification: Optional[str] = None
    present_address: Optional[str] = None
    permanent_address: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("Invalid email format")
        return value


class CreateStaffResponse(CamelModel):
    staff: StaffResponse
    temporary_password: str = Field(..., description="Only returned once")


class StaffAttendanceEntryDto(CamelModel):
    staff_id: int
    status: StaffAttendanceStatus
    remarks: Optional[str] = Field(None, max_length=500)


class BulkStaffAttendanceDto(CamelModel):
    """Attendance of several staff members for one day"""

    date: date_type
    records: List[StaffAttendanceEntryDto] = Field(..., min_length=1)

    @field_validator("records")
    @classmethod
    def unique_staff(cls, records: List[StaffAttendanceEntryDto]) -> List[StaffAttendanceEntryDto]:
        staff_ids = [r.staff_id for r in records]
        if len(set(staff_ids)) != len(staff_ids):
            raise ValueError("Each staff member can appear only once per day")
        return records


class BulkStaffAttendanceResponse(CamelModel):
    date: date_type
    created: int
    updated: int
    records: List[StaffAttendanceResponse]


class FilterStaffAttendanceDto(BaseModel):
    page: Optional[int] = 1
    limit: Optional[int] = 50
    staff_id: Optional[int] = None
    day: Optional[date_type] = None
    month: Optional[int] = Field(None, ge=1, le=12)
    year: Optional[int] = None
    status: Optional[StaffAttendanceStatus] = None

    class Config:
        from_attributes = True


class StaffAttendanceListResponse(CamelModel):
    attendances: List[StaffAttendanceResponse]
    pagination: dict


class CreateLeaveRequestDto(CamelModel):
    staff_id: int
    leave_type: str = Field(..., min_length=1, max_length=50, description="e.g. Sick, Casual, Annual")
    start_date: date_type
    end_date: date_type
    reason: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("endDate cannot be before startDate")
        return self


class ReviewLeaveRequestDto(CamelModel):
    status: LeaveStatus
    remarks: Optional[str] = None

    @field_validator("status")
    @classmethod
    def decided(cls, v: LeaveStatus) -> LeaveStatus:
        if v == LeaveStatus.PENDING:
            raise ValueError("status must be APPROVED or REJECTED")
        return v


class FilterLeaveRequestsDto(BaseModel):
    page: Optional[int] = 1
    limit: Optional[int] = 10
    staff_id: Optional[int] = None
    status: Optional[LeaveStatus] = None
    leave_type: Optional[str] = None
    year: Optional[int] = None

    class Config:
        from_attributes = True


class LeaveRequestFilterOptions(CamelModel):
    leave_types: List[str]


class LeaveRequestListResponse(CamelModel):
    leave_requests: List[LeaveRequestResponse]
    pagination: dict
    filters: LeaveRequestFilterOptions
