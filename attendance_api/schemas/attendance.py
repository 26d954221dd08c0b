from pydantic import Field
from datetime import datetime
from typing import Optional, List
from attendance_api.schemas.base import CamelModel

class LocationPayload(CamelModel):
    # Both absent → the client could not get a location fix
    latitude: Optional[float] = None
    longitude: Optional[float] = None

class AttendanceRecordResponse(CamelModel):
    id: int
    user_id: int
    check_in_time: datetime
    check_in_latitude: Optional[float]
    check_in_longitude: Optional[float]
    check_out_time: Optional[datetime]
    check_out_latitude: Optional[float]
    check_out_longitude: Optional[float]
    created_at: Optional[datetime]

class AttendanceResponse(CamelModel):
    success: bool = True
    message: str
    record: AttendanceRecordResponse

class AttendanceStatusResponse(CamelModel):
    success: bool = True
    is_checked_in: bool
    current_record: Optional[AttendanceRecordResponse] = None

class AttendanceSummary(CamelModel):
    total_records: int = 0
    completed_records: int = 0
    first_check_in: Optional[datetime] = None
    last_check_in: Optional[datetime] = None

class MyAttendanceResponse(CamelModel):
    success: bool = True
    records: List[AttendanceRecordResponse] = Field(default_factory=list)
    summary: AttendanceSummary
