# attendance_api/scripts/init_db.py
"""Create tables and seed the bootstrap admin.

Runs on application startup; also usable as a one-off command:

    python -m attendance_api.scripts.init_db
"""
import asyncio
import logging
from typing import Optional
from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from attendance_api.config import Settings, settings
from attendance_api.database import Base, engine as default_engine, AsyncSessionLocal
from attendance_api.models.user import User
from attendance_api.models.attendance import AttendanceRecord
from attendance_api.services import users

logger = logging.getLogger(__name__)


async def create_tables(engine: AsyncEngine) -> None:
    # ignore duplicate-object errors from previous partial runs
    async with engine.begin() as conn:
        try:
            await conn.run_sync(Base.metadata.create_all)
        except sa_exc.IntegrityError as e:
            msg = str(getattr(e, "orig", e))
            if "duplicate key value violates unique constraint" in msg or "already exists" in msg:
                logger.warning("Ignored duplicate DDL error during create_all: %s", msg)
            else:
                raise
    logger.info("Tables ready: %s, %s", User.__tablename__, AttendanceRecord.__tablename__)


async def initialize_database(
    engine: Optional[AsyncEngine] = None,
    session_factory: Optional[async_sessionmaker] = None,
    config: Optional[Settings] = None,
) -> Optional[User]:
    """Returns the bootstrap admin when this call created it."""
    await create_tables(engine or default_engine)

    session_factory = session_factory or AsyncSessionLocal
    async with session_factory() as session:  # type: AsyncSession
        return await users.ensure_default_admin(session, config or settings)


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    asyncio.run(initialize_database())
