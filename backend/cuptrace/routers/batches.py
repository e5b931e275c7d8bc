"""Batch router — registration, QC decisions and batch management.

Endpoints:
    POST   /api/batches/                    Register a batch
    GET    /api/batches/                    List batches (with filters)
    GET    /api/batches/{batch_id}          Single batch with integrity check
    PATCH  /api/batches/{batch_id}          Update batch fields
    DELETE /api/batches/{batch_id}          Soft-delete batch
    POST   /api/batches/{batch_id}/approve  QC approval
    POST   /api/batches/{batch_id}/reject   QC rejection
    GET    /api/batches/{batch_id}/qr       QR code SVG of the public trace URL
"""

import io

import segno
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cuptrace.auth.deps import require_permission, require_role
from cuptrace.config import settings
from cuptrace.database import get_db
from cuptrace.models.batch import BatchStatus, ProductBatch, ProductType, SupplyChainStage
from cuptrace.models.user import User, UserRole
from cuptrace.schemas.batch import (
    ApproveRequest,
    BatchCreate,
    BatchDetailOut,
    BatchOut,
    BatchUpdate,
    IntegrityVerification,
    RejectRequest,
)
from cuptrace.schemas.common import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PaginatedResponse
from cuptrace.services import batch as batch_service
from cuptrace.services.queries import get_active_batch
from cuptrace.utils.cache import cached, invalidate_on_commit
from cuptrace.utils.pagination import fetch_page

router = APIRouter()


# ── Register ─────────────────────────────────────────────────

@router.post("/", response_model=BatchOut, status_code=status.HTTP_201_CREATED)
async def create_batch(
    body: BatchCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("batch.write")),
):
    """Register a batch at the farmer stage.  It stays pending until QC decides."""
    batch = await batch_service.create_batch(db, body, user)
    invalidate_on_commit(db, "batches:*")
    return batch


# ── List batches ─────────────────────────────────────────────

@router.get("/", response_model=PaginatedResponse[BatchOut])
@cached(ttl=60, prefix="batches")
async def list_batches(
    product_type: ProductType | None = Query(None, alias="type"),
    stage: SupplyChainStage | None = Query(None),
    batch_status: BatchStatus | None = Query(None, alias="status"),
    cooperative_id: str | None = Query(None),
    farmer_id: str | None = Query(None),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("batch.read")),
):
    stmt = select(ProductBatch).where(ProductBatch.deleted_at.is_(None))

    if product_type:
        stmt = stmt.where(ProductBatch.type == product_type.value)
    if stage:
        stmt = stmt.where(ProductBatch.current_stage == stage.value)
    if batch_status:
        stmt = stmt.where(ProductBatch.status == batch_status.value)
    if cooperative_id:
        stmt = stmt.where(ProductBatch.cooperative_id == cooperative_id)
    if farmer_id:
        stmt = stmt.where(ProductBatch.farmer_id == farmer_id)
    if search:
        q = f"%{search}%"
        stmt = stmt.where(
            or_(
                ProductBatch.lot_id.ilike(q),
                ProductBatch.origin_location.ilike(q),
                ProductBatch.region.ilike(q),
                ProductBatch.description.ilike(q),
            )
        )

    rows, total = await fetch_page(db, stmt.order_by(ProductBatch.created_at.desc()), page, limit)
    return PaginatedResponse[BatchOut].build(
        [BatchOut.model_validate(b) for b in rows], total, page, limit
    )


# ── Single batch detail ──────────────────────────────────────

@router.get("/{batch_id}", response_model=BatchDetailOut)
async def get_batch(
    batch_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("batch.read")),
):
    batch = await get_active_batch(
        db, batch_id, options=(selectinload(ProductBatch.integrity),)
    )
    detail = BatchDetailOut.model_validate(batch)
    detail.verification = IntegrityVerification(
        **batch_service.verify_integrity(batch, batch.integrity)
    )
    return detail


# ── QR code ──────────────────────────────────────────────────

@router.get("/{batch_id}/qr")
async def get_batch_qr(
    batch_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("batch.read")),
):
    """Return an SVG QR code pointing at the batch's public trace page."""
    batch = await get_active_batch(db, batch_id)

    trace_url = f"{settings.app_url.rstrip('/')}/trace/{batch.public_trace_hash}"
    qr = segno.make(trace_url)
    buf = io.BytesIO()
    qr.save(buf, kind="svg", scale=4, dark="#6f4e37")
    return Response(content=buf.getvalue(), media_type="image/svg+xml")


# ── Update batch ─────────────────────────────────────────────

@router.patch("/{batch_id}", response_model=BatchOut)
async def update_batch(
    batch_id: str,
    body: BatchUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("batch.write")),
):
    batch = await batch_service.update_batch(db, batch_id, body, user)
    invalidate_on_commit(db, "batches:*")
    return batch


# ── Soft delete ──────────────────────────────────────────────

@router.delete("/{batch_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_batch(
    batch_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("batch.delete")),
):
    await batch_service.delete_batch(db, batch_id)
    invalidate_on_commit(db, "batches:*")


# ── QC decisions ─────────────────────────────────────────────

@router.post("/{batch_id}/approve", response_model=BatchOut)
async def approve_batch(
    batch_id: str,
    body: ApproveRequest | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_role(UserRole.QC, UserRole.ADMIN)),
):
    body = body or ApproveRequest()
    batch = await batch_service.approve_batch(
        db, batch_id, user,
        washing_station_id=body.washing_station_id,
        notes=body.notes,
    )
    invalidate_on_commit(db, "batches:*")
    return batch


@router.post("/{batch_id}/reject", response_model=BatchOut)
async def reject_batch(
    batch_id: str,
    body: RejectRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_role(UserRole.QC, UserRole.ADMIN)),
):
    batch = await batch_service.reject_batch(db, batch_id, user, body.reason)
    invalidate_on_commit(db, "batches:*")
    return batch
