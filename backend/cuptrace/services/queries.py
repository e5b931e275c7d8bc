"""Lookups shared by services and routers.

All batch lookups exclude soft-deleted rows.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from cuptrace.models.batch import ProductBatch
from cuptrace.models.cooperative import Cooperative
from cuptrace.models.user import User, UserRole

_TYPE_LABELS = {"coffee": "Coffee batch", "tea": "Tea batch"}


async def get_active_batch(
    db: AsyncSession,
    batch_id: str,
    product_type: str | None = None,
    options: tuple = (),
) -> ProductBatch:
    """Load a non-deleted batch or raise 404.

    With ``product_type`` the batch must also be of that type; the error
    then reads "Coffee batch not found" / "Tea batch not found".
    """
    stmt = select(ProductBatch).where(
        ProductBatch.id == batch_id,
        ProductBatch.deleted_at.is_(None),
    )
    if product_type:
        stmt = stmt.where(ProductBatch.type == product_type)
    if options:
        stmt = stmt.options(*options)

    batch = (await db.execute(stmt)).scalar_one_or_none()
    if not batch:
        label = _TYPE_LABELS.get(product_type or "", "Product batch")
        raise ResourceNotFoundError("ProductBatch", batch_id, message=f"{label} not found")
    return batch


async def get_user(db: AsyncSession, user_id: str, label: str = "User") -> User:
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if not user:
        raise ResourceNotFoundError(label, user_id)
    return user


async def get_user_with_role(
    db: AsyncSession,
    user_id: str,
    role: UserRole,
    label: str = "User",
) -> User:
    """Load an active user that holds ``role``."""
    user = await get_user(db, user_id, label)
    if not user.is_active:
        raise BusinessLogicError(f"{label} {user_id} is inactive", error_code="USER_INACTIVE")
    if user.role != role:
        raise BusinessLogicError(
            f"{label} {user_id} must have role {role.value}, not {user.role.value}",
            error_code="ROLE_MISMATCH",
        )
    return user


async def get_cooperative(db: AsyncSession, cooperative_id: str) -> Cooperative:
    coop = (
        await db.execute(select(Cooperative).where(Cooperative.id == cooperative_id))
    ).scalar_one_or_none()
    if not coop:
        raise ResourceNotFoundError("Cooperative", cooperative_id)
    return coop
