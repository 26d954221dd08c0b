import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from attendance_api.core.enums import Role
from attendance_api.core.security import create_access_token
from attendance_api.database import Base, get_db
from attendance_api.main import app
from attendance_api.models.user import User
from attendance_api.services import users
from attendance_api.services.attendance import AttendanceLedger, LedgerPolicy, get_ledger

PASSWORD = "secret123"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ledger] = lambda: AttendanceLedger(LedgerPolicy())
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def use_policy(policy: LedgerPolicy) -> None:
    """Swap the ledger policy the API uses for the rest of the test."""
    app.dependency_overrides[get_ledger] = lambda: AttendanceLedger(policy)


async def make_user(
    db: AsyncSession,
    name: str = "Asha",
    mobile_number: str = "9876543210",
    employee_id: Optional[str] = "EMP001",
    role: Role = Role.EMPLOYEE,
) -> int:
    """Insert a user without a password and return its id."""
    user = User(name=name, mobile_number=mobile_number, employee_id=employee_id, role=role)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user.id


async def create_account(session_factory, **kwargs) -> int:
    kwargs.setdefault("password", PASSWORD)
    async with session_factory() as session:
        user = await users.create_user(session, **kwargs)
        return user.id


def auth_headers(user_id: int) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user_id)})}"}


@pytest.fixture
async def employee_id(session_factory) -> int:
    return await create_account(
        session_factory, name="Ravi Kumar", mobile_number="9876543210", employee_id="EMP001"
    )


@pytest.fixture
async def admin_id(session_factory) -> int:
    return await create_account(
        session_factory, name="Admin", mobile_number="9999999999", employee_id="ADMIN001", role=Role.ADMIN
    )


@pytest.fixture
def employee_headers(employee_id) -> dict:
    return auth_headers(employee_id)


@pytest.fixture
def admin_headers(admin_id) -> dict:
    return auth_headers(admin_id)
