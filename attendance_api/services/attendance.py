"""
Attendance ledger - per-user check-in/check-out state machine

Each user is either OPEN (one attendance record without a check-out time)
or CLOSED. Transitions lock the user's row first, and the storage layer
backs this with a partial unique index on open records, so concurrent
check-ins for the same user cannot both succeed.
"""
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List, NamedTuple, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_api.config import Settings, settings
from attendance_api.core.exceptions import (
    AlreadyCheckedInError,
    AttendanceCompletedError,
    NoActiveCheckInError,
    NotFoundError,
    ValidationError,
)
from attendance_api.models.attendance import AttendanceRecord
from attendance_api.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerPolicy:
    one_check_in_per_day: bool = False
    require_location: bool = False

    @classmethod
    def from_settings(cls, config: Settings) -> "LedgerPolicy":
        return cls(
            one_check_in_per_day=config.ONE_CHECKIN_PER_DAY,
            require_location=config.REQUIRE_LOCATION,
        )


def _parse_moment(value: Optional[str], name: str) -> Optional[datetime]:
    if value is None or not value.strip():
        return None
    value = value.strip()
    try:
        if len(value) == 10:
            return datetime.combine(date.fromisoformat(value), time.min)
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f'Invalid "{name}" date format')
    if moment.tzinfo is not None:
        # Stored timestamps are naive server-local time
        moment = moment.astimezone().replace(tzinfo=None)
    return moment


@dataclass(frozen=True)
class DateRange:
    """Inclusive check-in time window; either bound may be open."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @classmethod
    def parse(cls, date_from: Optional[str] = None, date_to: Optional[str] = None) -> "DateRange":
        """
        Build a range from query-string values (ISO date or datetime).

        "to" always extends through the end of its calendar date, so
        to=2024-05-01 covers everything up to 2024-05-01 23:59:59.999999.
        """
        start = _parse_moment(date_from, "from")
        end = _parse_moment(date_to, "to")
        if end is not None:
            end = datetime.combine(end.date(), time.max)
        return cls(start=start, end=end)

    def apply(self, query, column):
        if self.start is not None:
            query = query.where(column >= self.start)
        if self.end is not None:
            query = query.where(column <= self.end)
        return query


@dataclass
class LedgerSummary:
    total_records: int = 0
    completed_records: int = 0
    first_check_in: Optional[datetime] = None
    last_check_in: Optional[datetime] = None

    @classmethod
    def from_records(cls, records: List[AttendanceRecord]) -> "LedgerSummary":
        if not records:
            return cls()
        check_ins = [r.check_in_time for r in records]
        return cls(
            total_records=len(records),
            completed_records=sum(1 for r in records if r.check_out_time is not None),
            first_check_in=min(check_ins),
            last_check_in=max(check_ins),
        )


@dataclass
class LedgerStatus:
    is_checked_in: bool
    current_record: Optional[AttendanceRecord] = None


class LedgerEntry(NamedTuple):
    record: AttendanceRecord
    user: User


def _coordinate(value, label: str, limit: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{label} must be a number")
    if not math.isfinite(value) or abs(value) > limit:
        raise ValidationError(f"{label} must be a finite number between -{limit:g} and {limit:g}")
    return float(value)


class AttendanceLedger:
    def __init__(self, policy: Optional[LedgerPolicy] = None) -> None:
        self.policy = policy or LedgerPolicy()

    def validate_location(
        self, latitude: Optional[float], longitude: Optional[float]
    ) -> Tuple[Optional[float], Optional[float]]:
        """
        Normalise a submitted location.

        Returns:
            (latitude, longitude), both None when no location was sent

        Raises:
            ValidationError: half a coordinate pair, a non-finite or
                out-of-range value, or no location under require_location
        """
        if latitude is None and longitude is None:
            if self.policy.require_location:
                raise ValidationError("Location is required")
            return None, None
        if latitude is None or longitude is None:
            raise ValidationError("Latitude and longitude must be provided together")
        return _coordinate(latitude, "Latitude", 90), _coordinate(longitude, "Longitude", 180)

    async def _lock_user(self, db: AsyncSession, user_id: int) -> None:
        result = await db.execute(
            select(User.id).where(User.id == user_id).with_for_update()
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError("User not found")

    async def find_open_record(self, db: AsyncSession, user_id: int) -> Optional[AttendanceRecord]:
        result = await db.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.user_id == user_id)
            .where(AttendanceRecord.check_out_time.is_(None))
            .order_by(AttendanceRecord.check_in_time.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def _has_completed_cycle_on(self, db: AsyncSession, user_id: int, day: date) -> bool:
        day_start = datetime.combine(day, time.min)
        result = await db.execute(
            select(func.count(AttendanceRecord.id))
            .where(AttendanceRecord.user_id == user_id)
            .where(AttendanceRecord.check_in_time >= day_start)
            .where(AttendanceRecord.check_in_time < day_start + timedelta(days=1))
            .where(AttendanceRecord.check_out_time.isnot(None))
        )
        return result.scalar_one() > 0

    async def check_in(
        self,
        db: AsyncSession,
        user_id: int,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        """
        Open a new attendance record for the user.

        Raises:
            ValidationError: location rejected by the policy
            AlreadyCheckedInError: the user already has an open record
            AttendanceCompletedError: one-per-day policy and today's cycle is done
            NotFoundError: no such user
        """
        latitude, longitude = self.validate_location(latitude, longitude)
        now = now or datetime.now()

        await self._lock_user(db, user_id)

        if await self.find_open_record(db, user_id) is not None:
            logger.info("Rejected check-in for user %s: already checked in", user_id)
            raise AlreadyCheckedInError()

        if self.policy.one_check_in_per_day and await self._has_completed_cycle_on(db, user_id, now.date()):
            logger.info("Rejected check-in for user %s: attendance completed for %s", user_id, now.date())
            raise AttendanceCompletedError()

        record = AttendanceRecord(
            user_id=user_id,
            check_in_time=now,
            check_in_latitude=latitude,
            check_in_longitude=longitude,
        )
        db.add(record)
        try:
            await db.commit()
        except IntegrityError as e:
            # Lost a race against a concurrent check-in for the same user
            await db.rollback()
            logger.warning("Open-record constraint rejected check-in for user %s: %s", user_id, getattr(e, "orig", e))
            raise AlreadyCheckedInError() from e
        await db.refresh(record)

        logger.info("User %s checked in (record %s)", user_id, record.id)
        return record

    async def check_out(
        self,
        db: AsyncSession,
        user_id: int,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        """
        Close the user's open record.

        Raises:
            ValidationError: location rejected by the policy
            NoActiveCheckInError: the user has no open record
            NotFoundError: no such user
        """
        latitude, longitude = self.validate_location(latitude, longitude)
        now = now or datetime.now()

        await self._lock_user(db, user_id)

        record = await self.find_open_record(db, user_id)
        if record is None:
            logger.info("Rejected check-out for user %s: no active check-in", user_id)
            raise NoActiveCheckInError()

        # Never earlier than the check-in it closes
        record.check_out_time = max(now, record.check_in_time)
        record.check_out_latitude = latitude
        record.check_out_longitude = longitude
        db.add(record)
        await db.commit()
        await db.refresh(record)

        logger.info("User %s checked out (record %s)", user_id, record.id)
        return record

    async def get_status(self, db: AsyncSession, user_id: int) -> LedgerStatus:
        record = await self.find_open_record(db, user_id)
        return LedgerStatus(is_checked_in=record is not None, current_record=record)

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: int,
        date_range: Optional[DateRange] = None,
    ) -> Tuple[List[AttendanceRecord], LedgerSummary]:
        """User's records in the range, newest first, with a summary of the same range."""
        date_range = date_range or DateRange()
        query = select(AttendanceRecord).where(AttendanceRecord.user_id == user_id)
        query = date_range.apply(query, AttendanceRecord.check_in_time)
        result = await db.execute(
            query.order_by(AttendanceRecord.check_in_time.desc(), AttendanceRecord.id.desc())
        )
        records = list(result.scalars().all())
        return records, LedgerSummary.from_records(records)

    async def list_all(
        self,
        db: AsyncSession,
        user_id: Optional[int] = None,
        date_range: Optional[DateRange] = None,
    ) -> List[LedgerEntry]:
        """Admin view: records of every user (or one), joined with the owner, newest first."""
        date_range = date_range or DateRange()
        query = select(AttendanceRecord, User).join(User, User.id == AttendanceRecord.user_id)
        if user_id is not None:
            query = query.where(AttendanceRecord.user_id == user_id)
        query = date_range.apply(query, AttendanceRecord.check_in_time)
        result = await db.execute(
            query.order_by(AttendanceRecord.check_in_time.desc(), AttendanceRecord.id.desc())
        )
        return [LedgerEntry(record, user) for record, user in result.all()]


def get_ledger() -> AttendanceLedger:
    return AttendanceLedger(LedgerPolicy.from_settings(settings))
