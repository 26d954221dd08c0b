"""User directory: identity records for employees and admins."""
import logging
from typing import List, Optional
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from attendance_api.config import Settings
from attendance_api.core.enums import Role
from attendance_api.core.exceptions import ConflictError, NotFoundError
from attendance_api.models.user import User
from attendance_api.utils.password import hash_password

logger = logging.getLogger(__name__)


def duplicate_user_message(error: IntegrityError) -> str:
    """Map a unique-constraint violation on users to a field-specific message."""
    detail = str(getattr(error, "orig", error))
    if "mobile" in detail:
        return "Mobile number already registered"
    if "employee_id" in detail:
        return "Employee ID already exists"
    return "Duplicate entry not allowed"


async def find_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def is_active(db: AsyncSession, user_id: int) -> bool:
    user = await find_by_id(db, user_id)
    return user is not None and user.is_active


async def find_by_mobile_number(db: AsyncSession, mobile_number: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.mobile_number == mobile_number))
    return result.scalar_one_or_none()


async def find_by_employee_id(db: AsyncSession, employee_id: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.employee_id == employee_id))
    return result.scalar_one_or_none()


async def find_by_identifier(db: AsyncSession, identifier: str) -> Optional[User]:
    """Login lookup: the identifier is either a mobile number or an employee ID."""
    result = await db.execute(
        select(User)
        .where(or_(User.mobile_number == identifier, User.employee_id == identifier))
        .order_by(User.id)
        .limit(1)
    )
    return result.scalars().first()


async def _ensure_unique(
    db: AsyncSession,
    mobile_number: Optional[str],
    employee_id: Optional[str],
    exclude_id: Optional[int] = None,
) -> None:
    if mobile_number:
        existing = await find_by_mobile_number(db, mobile_number)
        if existing and existing.id != exclude_id:
            raise ConflictError("Mobile number already registered")
    if employee_id:
        existing = await find_by_employee_id(db, employee_id)
        if existing and existing.id != exclude_id:
            raise ConflictError("Employee ID already exists")


async def _commit_user(db: AsyncSession, user: User) -> User:
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("User write rejected by storage: %s", getattr(e, "orig", e))
        raise ConflictError(duplicate_user_message(e)) from e
    await db.refresh(user)
    return user


async def create_user(
    db: AsyncSession,
    *,
    name: str,
    mobile_number: str,
    password: str,
    employee_id: Optional[str] = None,
    role: Role = Role.EMPLOYEE,
) -> User:
    await _ensure_unique(db, mobile_number, employee_id)

    user = User(
        name=name,
        mobile_number=mobile_number,
        employee_id=employee_id or None,
        password_hash=hash_password(password),
        role=role,
    )
    db.add(user)
    user = await _commit_user(db, user)
    logger.info("Created %s account id=%s", user.role.value, user.id)
    return user


async def list_users(db: AsyncSession, include_inactive: bool = False) -> List[User]:
    query = select(User)
    if not include_inactive:
        query = query.where(User.is_active.is_(True))
    result = await db.execute(query.order_by(User.created_at.desc(), User.id.desc()))
    return list(result.scalars().all())


async def set_active(db: AsyncSession, user_id: int, active: bool) -> User:
    user = await find_by_id(db, user_id)
    if user is None:
        raise NotFoundError("Employee not found")

    user.is_active = active
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("User id=%s %s", user.id, "activated" if active else "deactivated")
    return user


async def update_profile(
    db: AsyncSession,
    user_id: int,
    *,
    name: Optional[str] = None,
    mobile_number: Optional[str] = None,
    employee_id: Optional[str] = None,
) -> User:
    """Partial update; fields left as None keep their current value."""
    user = await find_by_id(db, user_id)
    if user is None:
        raise NotFoundError("Employee not found")

    await _ensure_unique(db, mobile_number, employee_id, exclude_id=user.id)

    if name is not None:
        user.name = name
    if mobile_number is not None:
        user.mobile_number = mobile_number
    if employee_id is not None:
        user.employee_id = employee_id
    db.add(user)
    return await _commit_user(db, user)


async def ensure_default_admin(db: AsyncSession, settings: Settings) -> Optional[User]:
    """Seed the bootstrap admin. Returns the new account, or None when nothing was created."""
    password = settings.bootstrap_admin_password
    if not settings.DEFAULT_ADMIN_MOBILE or not password:
        logger.warning("Skipping default admin bootstrap: missing DEFAULT_ADMIN_MOBILE or DEFAULT_ADMIN_PASSWORD")
        return None

    if await find_by_mobile_number(db, settings.DEFAULT_ADMIN_MOBILE):
        logger.info("Default admin already exists (found by mobile)")
        return None
    if settings.DEFAULT_ADMIN_EMPLOYEE_ID and await find_by_employee_id(db, settings.DEFAULT_ADMIN_EMPLOYEE_ID):
        logger.info("Default admin already exists (found by employee ID)")
        return None

    try:
        admin = await create_user(
            db,
            name=settings.DEFAULT_ADMIN_NAME,
            mobile_number=settings.DEFAULT_ADMIN_MOBILE,
            employee_id=settings.DEFAULT_ADMIN_EMPLOYEE_ID,
            password=password,
            role=Role.ADMIN,
        )
    except ConflictError:
        # Another worker seeded it between our lookup and insert
        logger.info("Default admin already exists in database")
        return None

    logger.warning("Default admin created (mobile %s); change its password after first login", admin.mobile_number)
    return admin
