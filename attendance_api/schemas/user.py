import re
from pydantic import Field, field_validator
from typing import Optional
from datetime import datetime
from attendance_api.core.enums import Role
from attendance_api.schemas.base import CamelModel


def _check_mobile_number(value: str) -> str:
    value = value.strip()
    digits = re.sub(r"\D", "", value)
    if not 10 <= len(digits) <= 15:
        raise ValueError("Invalid mobile number format")
    return value


def _check_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Name is required")
    return value


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class SignupRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    mobile_number: str = Field(..., max_length=20)
    employee_id: Optional[str] = Field(None, max_length=50)
    password: str = Field(..., max_length=72)  # bcrypt only reads 72 bytes

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return _check_name(v)

    @field_validator("mobile_number")
    @classmethod
    def mobile_number_format(cls, v: str) -> str:
        return _check_mobile_number(v)

    @field_validator("employee_id")
    @classmethod
    def blank_employee_id_is_none(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v


class LoginRequest(CamelModel):
    identifier: str = Field(..., min_length=1)  # mobile number or employee ID
    password: str = Field(..., min_length=1)


class EmployeeLoginRequest(CamelModel):
    employee_id: str = Field(..., min_length=1)


class UserResponse(CamelModel):
    id: int
    name: str
    employee_id: Optional[str]
    mobile_number: str
    role: Role
    is_active: bool
    created_at: Optional[datetime]


class AuthResponse(CamelModel):
    success: bool = True
    message: str
    token: str
    user: UserResponse


class ProfileResponse(CamelModel):
    success: bool = True
    user: UserResponse
