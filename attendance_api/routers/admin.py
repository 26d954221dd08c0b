from dataclasses import dataclass
from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession
from attendance_api.database import get_db
from attendance_api.core.auth import get_current_admin
from attendance_api.core.exceptions import ValidationError
from attendance_api.models.user import User
from attendance_api.schemas.admin import (
    EmployeeCreate,
    EmployeeUpdate,
    EmployeeListResponse,
    EmployeeResponse,
    AdminAttendanceRecord,
    AdminAttendanceResponse,
)
from attendance_api.services import users
from attendance_api.services.attendance import AttendanceLedger, DateRange, get_ledger
from attendance_api.services.export import ReportFilters, build_excel_report, build_pdf_report, report_filename


router = APIRouter(prefix="/admin", tags=["admin"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"


@dataclass
class AttendanceFilters:
    user_id: Optional[int]
    date_range: DateRange
    date_from: Optional[str] = None
    date_to: Optional[str] = None


def attendance_filters(
    user_id: Optional[str] = Query(None, alias="userId"),
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
) -> AttendanceFilters:
    """Shared query filters for the attendance listing and its exports."""
    parsed_user_id = None
    if user_id:
        try:
            parsed_user_id = int(user_id)
        except ValueError:
            raise ValidationError("Invalid user ID")

    return AttendanceFilters(
        user_id=parsed_user_id,
        date_range=DateRange.parse(date_from, date_to),
        date_from=date_from or None,
        date_to=date_to or None,
    )


# ============= Employee Management =============

@router.get("/employees", response_model=EmployeeListResponse)
async def admin_list_employees(
    include_inactive: bool = Query(False, alias="includeInactive"),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    employees = await users.list_users(db, include_inactive=include_inactive)
    return EmployeeListResponse(employees=employees)


@router.post("/employees", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
async def admin_create_employee(
    employee_in: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    employee = await users.create_user(
        db,
        name=employee_in.name,
        mobile_number=employee_in.mobile_number,
        employee_id=employee_in.employee_id,
        password=employee_in.password,
        role=employee_in.role,
    )
    return EmployeeResponse(message="Employee created successfully", employee=employee)


@router.patch("/employees/{user_id}", response_model=EmployeeResponse)
async def admin_update_employee(
    user_id: int,
    employee_in: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    employee = await users.update_profile(
        db,
        user_id,
        name=employee_in.name,
        mobile_number=employee_in.mobile_number,
        employee_id=employee_in.employee_id,
    )
    return EmployeeResponse(message="Employee updated successfully", employee=employee)


@router.delete("/employees/{user_id}", response_model=EmployeeResponse)
async def admin_deactivate_employee(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Soft delete: the account is deactivated, its attendance history is kept."""
    if user_id == admin.id:
        raise ValidationError("You cannot deactivate your own account")

    employee = await users.set_active(db, user_id, False)
    return EmployeeResponse(message="Employee deactivated successfully", employee=employee)


@router.patch("/employees/{user_id}/activate", response_model=EmployeeResponse)
async def admin_activate_employee(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    employee = await users.set_active(db, user_id, True)
    return EmployeeResponse(message="Employee activated successfully", employee=employee)


# ============= Attendance Management =============

@router.get("/attendance", response_model=AdminAttendanceResponse)
async def admin_list_attendance(
    admin: User = Depends(get_current_admin),
    filters: AttendanceFilters = Depends(attendance_filters),
    db: AsyncSession = Depends(get_db),
    ledger: AttendanceLedger = Depends(get_ledger)
):
    entries = await ledger.list_all(db, user_id=filters.user_id, date_range=filters.date_range)

    records = [
        AdminAttendanceRecord(
            id=record.id,
            user_id=record.user_id,
            user_name=user.name,
            employee_id=user.employee_id,
            mobile_number=user.mobile_number,
            check_in_time=record.check_in_time,
            check_in_latitude=record.check_in_latitude,
            check_in_longitude=record.check_in_longitude,
            check_out_time=record.check_out_time,
            check_out_latitude=record.check_out_latitude,
            check_out_longitude=record.check_out_longitude,
            created_at=record.created_at
        )
        for record, user in entries
    ]
    return AdminAttendanceResponse(records=records, count=len(records))


async def _report_filters(db: AsyncSession, filters: AttendanceFilters) -> ReportFilters:
    employee_name = None
    if filters.user_id is not None:
        user = await users.find_by_id(db, filters.user_id)
        employee_name = user.name if user else None
    return ReportFilters(date_from=filters.date_from, date_to=filters.date_to, employee_name=employee_name)


def _download(content: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/attendance/export/excel")
async def admin_export_attendance_excel(
    admin: User = Depends(get_current_admin),
    filters: AttendanceFilters = Depends(attendance_filters),
    db: AsyncSession = Depends(get_db),
    ledger: AttendanceLedger = Depends(get_ledger)
):
    entries = await ledger.list_all(db, user_id=filters.user_id, date_range=filters.date_range)
    report_filters = await _report_filters(db, filters)

    content = await run_in_threadpool(build_excel_report, entries, report_filters)
    return _download(content, XLSX_MEDIA_TYPE, report_filename("xlsx"))


@router.get("/attendance/export/pdf")
async def admin_export_attendance_pdf(
    admin: User = Depends(get_current_admin),
    filters: AttendanceFilters = Depends(attendance_filters),
    db: AsyncSession = Depends(get_db),
    ledger: AttendanceLedger = Depends(get_ledger)
):
    entries = await ledger.list_all(db, user_id=filters.user_id, date_range=filters.date_range)
    report_filters = await _report_filters(db, filters)

    content = await run_in_threadpool(build_pdf_report, entries, report_filters)
    return _download(content, PDF_MEDIA_TYPE, report_filename("pdf"))
