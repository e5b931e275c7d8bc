"""Page/limit pagination for list endpoints."""

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession


async def fetch_page(db: AsyncSession, stmt: Select, page: int, limit: int) -> tuple[list, int]:
    """Return (rows for ``page``, total matching rows).

    ``stmt`` should already carry its filters and ORDER BY.
    """
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = await db.scalar(count_stmt) or 0

    result = await db.execute(stmt.offset((page - 1) * limit).limit(limit))
    return list(result.scalars().all()), total
