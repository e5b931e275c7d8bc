"""Database engine, session factory, and declarative base.

A single schema holds every table.  Route handlers get a session from
get_db(), which commits when the request finishes and rolls back if
anything raised.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase

from cuptrace.config import settings
from cuptrace.utils.cache import discard_pending_invalidations, run_pending_invalidations

engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_size=20,
    max_overflow=10,
    pool_pre_ping=True,
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    """Yield a request-scoped session.

    Cache patterns queued with invalidate_on_commit() are cleared after the
    commit succeeds and dropped on rollback.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            discard_pending_invalidations(session)
            await session.rollback()
            raise
        await run_pending_invalidations(session)
