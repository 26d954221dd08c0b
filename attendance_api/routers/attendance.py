from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from attendance_api.database import get_db
from attendance_api.core.auth import get_current_user
from attendance_api.models.user import User
from attendance_api.schemas.attendance import (
    LocationPayload,
    AttendanceResponse,
    AttendanceStatusResponse,
    AttendanceSummary,
    MyAttendanceResponse,
)
from attendance_api.services.attendance import AttendanceLedger, DateRange, get_ledger


router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.post("/check-in", response_model=AttendanceResponse, status_code=status.HTTP_201_CREATED)
async def check_in(
    location: Optional[LocationPayload] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    ledger: AttendanceLedger = Depends(get_ledger)
):
    location = location or LocationPayload()
    record = await ledger.check_in(db, current_user.id, location.latitude, location.longitude)
    return AttendanceResponse(message="Check-in successful", record=record)


@router.post("/check-out", response_model=AttendanceResponse)
async def check_out(
    location: Optional[LocationPayload] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    ledger: AttendanceLedger = Depends(get_ledger)
):
    location = location or LocationPayload()
    record = await ledger.check_out(db, current_user.id, location.latitude, location.longitude)
    return AttendanceResponse(message="Check-out successful", record=record)


@router.get("/status", response_model=AttendanceStatusResponse)
async def get_attendance_status(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    ledger: AttendanceLedger = Depends(get_ledger)
):
    ledger_status = await ledger.get_status(db, current_user.id)
    return AttendanceStatusResponse(
        is_checked_in=ledger_status.is_checked_in,
        current_record=ledger_status.current_record
    )


@router.get("/me", response_model=MyAttendanceResponse)
async def get_my_attendance(
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    ledger: AttendanceLedger = Depends(get_ledger)
):
    date_range = DateRange.parse(date_from, date_to)
    records, summary = await ledger.list_for_user(db, current_user.id, date_range)

    return MyAttendanceResponse(
        records=records,
        summary=AttendanceSummary(
            total_records=summary.total_records,
            completed_records=summary.completed_records,
            first_check_in=summary.first_check_in,
            last_check_in=summary.last_check_in
        )
    )
