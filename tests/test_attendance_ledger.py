import math
from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from attendance_api.core.exceptions import (
    AlreadyCheckedInError,
    AttendanceCompletedError,
    ConflictError,
    NoActiveCheckInError,
    NotFoundError,
    ValidationError,
)
from attendance_api.models.attendance import AttendanceRecord
from attendance_api.services.attendance import AttendanceLedger, DateRange, LedgerPolicy

from conftest import make_user

MORNING = datetime(2024, 5, 1, 9, 0, 0)
EVENING = datetime(2024, 5, 1, 18, 0, 0)


async def count_records(db, user_id, open_only=False):
    query = select(func.count(AttendanceRecord.id)).where(AttendanceRecord.user_id == user_id)
    if open_only:
        query = query.where(AttendanceRecord.check_out_time.is_(None))
    return (await db.execute(query)).scalar_one()


async def test_check_in_opens_record(db):
    user_id = await make_user(db)
    ledger = AttendanceLedger()

    record = await ledger.check_in(db, user_id, 12.9, 77.6, now=MORNING)

    assert record.id is not None
    assert record.check_in_time == MORNING
    assert record.check_in_latitude == 12.9
    assert record.check_in_longitude == 77.6
    assert record.check_out_time is None

    status = await ledger.get_status(db, user_id)
    assert status.is_checked_in
    assert status.current_record.id == record.id


async def test_check_in_without_location_is_recorded_as_null(db):
    user_id = await make_user(db)

    record = await AttendanceLedger().check_in(db, user_id, now=MORNING)

    assert record.check_in_latitude is None
    assert record.check_in_longitude is None


async def test_double_check_in_is_rejected(db):
    user_id = await make_user(db)
    ledger = AttendanceLedger()
    await ledger.check_in(db, user_id, now=MORNING)

    with pytest.raises(AlreadyCheckedInError, match="already checked in"):
        await ledger.check_in(db, user_id, now=MORNING + timedelta(minutes=5))

    assert await count_records(db, user_id) == 1


async def test_check_out_without_open_record_is_rejected(db):
    user_id = await make_user(db)
    ledger = AttendanceLedger()

    with pytest.raises(NoActiveCheckInError):
        await ledger.check_out(db, user_id, now=EVENING)

    assert await count_records(db, user_id) == 0
    assert issubclass(NoActiveCheckInError, NotFoundError)


async def test_check_in_then_check_out(db):
    user_id = await make_user(db)
    ledger = AttendanceLedger()
    await ledger.check_in(db, user_id, 12.9, 77.6, now=MORNING)

    record = await ledger.check_out(db, user_id, 12.91, 77.61, now=EVENING)

    assert record.check_in_time <= record.check_out_time
    assert (record.check_in_latitude, record.check_in_longitude) == (12.9, 77.6)
    assert (record.check_out_latitude, record.check_out_longitude) == (12.91, 77.61)

    status = await ledger.get_status(db, user_id)
    assert not status.is_checked_in
    assert status.current_record is None

    with pytest.raises(NoActiveCheckInError):
        await ledger.check_out(db, user_id, now=EVENING)


async def test_check_out_never_precedes_check_in(db):
    user_id = await make_user(db)
    ledger = AttendanceLedger()
    await ledger.check_in(db, user_id, now=EVENING)

    record = await ledger.check_out(db, user_id, now=MORNING)

    assert record.check_out_time == record.check_in_time


async def test_check_in_for_unknown_user(db):
    with pytest.raises(NotFoundError):
        await AttendanceLedger().check_in(db, 404, now=MORNING)


async def test_second_cycle_same_day_allowed_by_default(db):
    user_id = await make_user(db)
    ledger = AttendanceLedger()
    await ledger.check_in(db, user_id, now=MORNING)
    await ledger.check_out(db, user_id, now=MORNING + timedelta(hours=2))

    await ledger.check_in(db, user_id, now=EVENING)

    assert await count_records(db, user_id) == 2


async def test_one_check_in_per_day_policy(db):
    user_id = await make_user(db)
    ledger = AttendanceLedger(LedgerPolicy(one_check_in_per_day=True))
    await ledger.check_in(db, user_id, now=MORNING)
    await ledger.check_out(db, user_id, now=EVENING)

    with pytest.raises(AttendanceCompletedError, match="already completed attendance"):
        await ledger.check_in(db, user_id, now=EVENING + timedelta(hours=1))
    assert issubclass(AttendanceCompletedError, ConflictError)

    record = await ledger.check_in(db, user_id, now=MORNING + timedelta(days=1))
    assert record.check_out_time is None
    assert await count_records(db, user_id) == 2


async def test_require_location_policy(db):
    user_id = await make_user(db)
    ledger = AttendanceLedger(LedgerPolicy(require_location=True))

    with pytest.raises(ValidationError, match="Location is required"):
        await ledger.check_in(db, user_id, now=MORNING)
    assert await count_records(db, user_id) == 0

    await ledger.check_in(db, user_id, 12.9, 77.6, now=MORNING)
    with pytest.raises(ValidationError):
        await ledger.check_out(db, user_id, now=EVENING)
    assert await count_records(db, user_id, open_only=True) == 1


@pytest.mark.parametrize(
    "latitude, longitude",
    [
        (math.nan, 77.6),
        (12.9, math.inf),
        (91.0, 77.6),
        (12.9, -180.5),
        (12.9, None),
        (None, 77.6),
        ("12.9", 77.6),
    ],
)
async def test_invalid_locations_are_rejected(db, latitude, longitude):
    user_id = await make_user(db)

    with pytest.raises(ValidationError):
        await AttendanceLedger().check_in(db, user_id, latitude, longitude, now=MORNING)

    assert await count_records(db, user_id) == 0


async def test_open_record_index_blocks_racing_check_in(db, monkeypatch):
    user_id = await make_user(db)
    ledger = AttendanceLedger()
    await ledger.check_in(db, user_id, now=MORNING)

    async def stale_read(session, uid):
        # What a concurrent request sees before the first insert commits
        return None

    monkeypatch.setattr(ledger, "find_open_record", stale_read)

    with pytest.raises(AlreadyCheckedInError):
        await ledger.check_in(db, user_id, now=MORNING + timedelta(seconds=1))

    assert await count_records(db, user_id, open_only=True) == 1


async def test_list_for_user_newest_first_with_summary(db):
    user_id = await make_user(db)
    other_id = await make_user(db, name="Other", mobile_number="9000000001", employee_id="EMP002")
    ledger = AttendanceLedger()
    for day in range(3):
        start = MORNING + timedelta(days=day)
        await ledger.check_in(db, user_id, now=start)
        if day < 2:
            await ledger.check_out(db, user_id, now=start + timedelta(hours=8))
    await ledger.check_in(db, other_id, now=MORNING)

    records, summary = await ledger.list_for_user(db, user_id)

    assert [r.check_in_time for r in records] == [
        MORNING + timedelta(days=2),
        MORNING + timedelta(days=1),
        MORNING,
    ]
    assert summary.total_records == 3
    assert summary.completed_records == 2
    assert summary.first_check_in == MORNING
    assert summary.last_check_in == MORNING + timedelta(days=2)


async def test_empty_history_summary(db):
    user_id = await make_user(db)

    records, summary = await AttendanceLedger().list_for_user(db, user_id)

    assert records == []
    assert summary.total_records == 0
    assert summary.first_check_in is None


async def test_to_filter_is_inclusive_through_end_of_day(db):
    user_id = await make_user(db)
    last_moment = datetime(2024, 5, 1, 23, 59, 59, 999000)
    next_day = datetime(2024, 5, 2, 0, 0, 0)
    db.add_all([
        AttendanceRecord(user_id=user_id, check_in_time=last_moment, check_out_time=last_moment),
        AttendanceRecord(user_id=user_id, check_in_time=next_day, check_out_time=next_day),
    ])
    await db.commit()

    records, summary = await AttendanceLedger().list_for_user(
        db, user_id, DateRange.parse(None, "2024-05-01")
    )

    assert [r.check_in_time for r in records] == [last_moment]
    assert summary.total_records == 1


async def test_from_filter_is_inclusive(db):
    user_id = await make_user(db)
    db.add_all([
        AttendanceRecord(user_id=user_id, check_in_time=datetime(2024, 4, 30, 23, 59, 59), check_out_time=datetime(2024, 5, 1, 1, 0)),
        AttendanceRecord(user_id=user_id, check_in_time=datetime(2024, 5, 1, 0, 0, 0), check_out_time=datetime(2024, 5, 1, 8, 0)),
    ])
    await db.commit()

    records, _ = await AttendanceLedger().list_for_user(
        db, user_id, DateRange.parse("2024-05-01", "2024-05-01")
    )

    assert [r.check_in_time for r in records] == [datetime(2024, 5, 1, 0, 0, 0)]


def test_date_range_parsing():
    date_range = DateRange.parse("2024-05-01T08:30:00", "2024-05-03T10:00:00")

    assert date_range.start == datetime(2024, 5, 1, 8, 30)
    assert date_range.end == datetime(2024, 5, 3, 23, 59, 59, 999999)
    assert DateRange.parse(None, "") == DateRange()


@pytest.mark.parametrize("date_from, date_to, message", [
    ("yesterday", None, 'Invalid "from" date format'),
    (None, "2024-13-01", 'Invalid "to" date format'),
])
def test_date_range_rejects_bad_dates(date_from, date_to, message):
    with pytest.raises(ValidationError) as exc_info:
        DateRange.parse(date_from, date_to)
    assert exc_info.value.message == message


async def test_list_all_joins_user_identity(db):
    first = await make_user(db, name="Asha", mobile_number="9000000001", employee_id="EMP001")
    second = await make_user(db, name="Bala", mobile_number="9000000002", employee_id=None)
    ledger = AttendanceLedger()
    await ledger.check_in(db, first, now=MORNING)
    await ledger.check_in(db, second, now=EVENING)

    entries = await ledger.list_all(db)

    assert [(e.user.name, e.record.check_in_time) for e in entries] == [("Bala", EVENING), ("Asha", MORNING)]
    assert entries[0].user.employee_id is None

    only_first = await ledger.list_all(db, user_id=first)
    assert [e.record.user_id for e in only_first] == [first]

    none_in_range = await ledger.list_all(db, date_range=DateRange.parse("2024-06-01", None))
    assert none_in_range == []
