from pydantic import Field, field_validator
from datetime import datetime
from typing import List, Optional
from attendance_api.core.enums import Role
from attendance_api.schemas.base import CamelModel
from attendance_api.schemas.user import SignupRequest, UserResponse, _blank_to_none, _check_mobile_number, _check_name

class EmployeeCreate(SignupRequest):
    # Inherits name, mobile_number, employee_id, password
    role: Role = Role.EMPLOYEE

class EmployeeUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    mobile_number: Optional[str] = Field(None, max_length=20)
    employee_id: Optional[str] = Field(None, min_length=1, max_length=50)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _check_name(v)

    @field_validator("mobile_number")
    @classmethod
    def mobile_number_format(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _check_mobile_number(v)

    @field_validator("employee_id")
    @classmethod
    def blank_employee_id_is_none(cls, v: Optional[str]) -> Optional[str]:
        # Blank leaves the current employee ID unchanged
        return _blank_to_none(v)

class EmployeeListResponse(CamelModel):
    success: bool = True
    employees: List[UserResponse]

class EmployeeResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    employee: UserResponse

class AdminAttendanceRecord(CamelModel):
    id: int
    user_id: int
    user_name: str
    employee_id: Optional[str]
    mobile_number: str
    check_in_time: datetime
    check_in_latitude: Optional[float]
    check_in_longitude: Optional[float]
    check_out_time: Optional[datetime]
    check_out_latitude: Optional[float]
    check_out_longitude: Optional[float]
    created_at: Optional[datetime]

class AdminAttendanceResponse(CamelModel):
    success: bool = True
    records: List[AdminAttendanceRecord]
    count: int
