"""Cooperative management.

Endpoints:
    POST   /api/cooperatives/                 Create (admin)
    GET    /api/cooperatives/                 List with search
    GET    /api/cooperatives/{coop_id}        Detail with farmers and recent batches
    PATCH  /api/cooperatives/{coop_id}        Update (admin)
    DELETE /api/cooperatives/{coop_id}        Delete (admin, only when empty)
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.auth.deps import require_permission
from cuptrace.database import get_db
from cuptrace.middleware.exceptions import ConflictError
from cuptrace.models.batch import ProductBatch
from cuptrace.models.cooperative import Cooperative
from cuptrace.models.user import User, UserRole
from cuptrace.schemas.batch import BatchSummary
from cuptrace.schemas.common import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PaginatedResponse
from cuptrace.schemas.cooperative import (
    CooperativeCreate,
    CooperativeDetailOut,
    CooperativeOut,
    CooperativeUpdate,
)
from cuptrace.schemas.user import FarmerSummary
from cuptrace.services.queries import get_cooperative
from cuptrace.utils.cache import cached, invalidate_on_commit
from cuptrace.utils.pagination import fetch_page

router = APIRouter()

RECENT_BATCH_LIMIT = 50


async def _ensure_name_free(db: AsyncSession, name: str, coop_id: str | None = None) -> None:
    stmt = select(Cooperative.id).where(func.lower(Cooperative.name) == name.lower())
    if coop_id:
        stmt = stmt.where(Cooperative.id != coop_id)
    if (await db.execute(stmt)).first():
        raise ConflictError(f"Cooperative name already in use: {name}", error_code="DUPLICATE_NAME")


# ── Create ───────────────────────────────────────────────────

@router.post("/", response_model=CooperativeOut, status_code=status.HTTP_201_CREATED)
async def create_cooperative(
    body: CooperativeCreate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("cooperative.write")),
):
    await _ensure_name_free(db, body.name)

    coop = Cooperative(**body.model_dump())
    db.add(coop)
    await db.flush()
    invalidate_on_commit(db, "cooperatives:*")
    return coop


# ── List ─────────────────────────────────────────────────────

@router.get("/", response_model=PaginatedResponse[CooperativeOut])
@cached(ttl=300, prefix="cooperatives")
async def list_cooperatives(
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("cooperative.read")),
):
    stmt = select(Cooperative)
    if search:
        q = f"%{search}%"
        stmt = stmt.where(
            or_(
                Cooperative.name.ilike(q),
                Cooperative.location.ilike(q),
                Cooperative.description.ilike(q),
            )
        )

    rows, total = await fetch_page(db, stmt.order_by(Cooperative.created_at.desc()), page, limit)
    return PaginatedResponse[CooperativeOut].build(
        [CooperativeOut.model_validate(c) for c in rows], total, page, limit
    )


# ── Detail ───────────────────────────────────────────────────

@router.get("/{coop_id}", response_model=CooperativeDetailOut)
async def get_cooperative_detail(
    coop_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("cooperative.read")),
):
    coop = await get_cooperative(db, coop_id)

    farmers = (
        await db.execute(
            select(User)
            .where(User.cooperative_id == coop_id, User.role == UserRole.FARMER)
            .order_by(User.full_name)
        )
    ).scalars().all()

    batches = (
        await db.execute(
            select(ProductBatch)
            .where(ProductBatch.cooperative_id == coop_id, ProductBatch.deleted_at.is_(None))
            .order_by(ProductBatch.created_at.desc())
            .limit(RECENT_BATCH_LIMIT)
        )
    ).scalars().all()

    # Built field by field: validating the ORM object would lazy-load its relationships
    return CooperativeDetailOut(
        **CooperativeOut.model_validate(coop).model_dump(),
        farmers=[FarmerSummary.model_validate(f) for f in farmers],
        batches=[BatchSummary.model_validate(b) for b in batches],
    )


# ── Update ───────────────────────────────────────────────────

@router.patch("/{coop_id}", response_model=CooperativeOut)
async def update_cooperative(
    coop_id: str,
    body: CooperativeUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("cooperative.write")),
):
    coop = await get_cooperative(db, coop_id)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("name"):
        await _ensure_name_free(db, changes["name"], coop_id)

    for field, value in changes.items():
        setattr(coop, field, value)

    await db.flush()
    invalidate_on_commit(db, "cooperatives:*")
    return coop


# ── Delete ───────────────────────────────────────────────────

@router.delete("/{coop_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_cooperative(
    coop_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("cooperative.delete")),
):
    """Delete an empty cooperative.  Refused while farmers or batches point at it."""
    coop = await get_cooperative(db, coop_id)

    farmer_count = await db.scalar(
        select(func.count()).select_from(User).where(User.cooperative_id == coop_id)
    )
    batch_count = await db.scalar(
        select(func.count()).select_from(ProductBatch).where(ProductBatch.cooperative_id == coop_id)
    )
    if farmer_count or batch_count:
        raise ConflictError(
            f"Cooperative has {farmer_count} members and {batch_count} batches",
            error_code="COOPERATIVE_NOT_EMPTY",
        )

    await db.delete(coop)
    await db.flush()
    invalidate_on_commit(db, "cooperatives:*")
