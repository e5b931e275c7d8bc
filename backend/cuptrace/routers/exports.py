"""Export records — one shipment per batch.

Endpoints:
    POST   /api/exports/                   Record an export
    GET    /api/exports/                   List (filter by exporter, batch, method)
    GET    /api/exports/batch/{batch_id}   Export of a batch
    GET    /api/exports/{export_id}        Single export
    PATCH  /api/exports/{export_id}        Update
    DELETE /api/exports/{export_id}        Delete
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.auth.deps import require_permission
from cuptrace.database import get_db
from cuptrace.middleware.exceptions import (
    BusinessLogicError,
    ConflictError,
    ResourceNotFoundError,
)
from cuptrace.models.export_record import ExportRecord
from cuptrace.models.user import User, UserRole
from cuptrace.schemas.common import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PaginatedResponse
from cuptrace.schemas.export import ExportCreate, ExportOut, ExportUpdate, ShippingMethod
from cuptrace.services.queries import get_active_batch, get_user_with_role
from cuptrace.utils.events import record_event
from cuptrace.utils.pagination import fetch_page

router = APIRouter()


async def _get_export(db: AsyncSession, export_id: str) -> ExportRecord:
    record = (
        await db.execute(select(ExportRecord).where(ExportRecord.id == export_id))
    ).scalar_one_or_none()
    if not record:
        raise ResourceNotFoundError("ExportRecord", export_id)
    return record


@router.post("/", response_model=ExportOut, status_code=status.HTTP_201_CREATED)
async def create_export(
    body: ExportCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("export.write")),
):
    batch = await get_active_batch(db, body.batch_id)

    existing = await db.execute(select(ExportRecord.id).where(ExportRecord.batch_id == batch.id))
    if existing.first():
        raise ConflictError(
            f"Batch {batch.lot_id or batch.id} already has an export record",
            error_code="DUPLICATE_EXPORT",
        )

    exporter = await get_user_with_role(
        db, body.exporter_id or user.id, UserRole.EXPORTER, "Exporter"
    )

    record = ExportRecord(**body.model_dump(exclude={"exporter_id"}), exporter_id=exporter.id)
    db.add(record)
    await db.flush()

    await record_event(
        db,
        batch_id=batch.id,
        event_type="EXPORTED",
        operator_id=user.id,
        description=f"Shipped by {body.shipping_method} to {body.buyer_name}",
        metadata={
            "export_id": record.id,
            "exporter_id": exporter.id,
            "buyer_name": body.buyer_name,
            "shipping_method": body.shipping_method,
            "tracking_number": body.tracking_number,
        },
    )
    await db.flush()
    return record


@router.get("/", response_model=PaginatedResponse[ExportOut])
async def list_exports(
    exporter_id: str | None = Query(None),
    batch_id: str | None = Query(None),
    shipping_method: ShippingMethod | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("export.read")),
):
    stmt = select(ExportRecord)
    if exporter_id:
        stmt = stmt.where(ExportRecord.exporter_id == exporter_id)
    if batch_id:
        stmt = stmt.where(ExportRecord.batch_id == batch_id)
    if shipping_method:
        stmt = stmt.where(ExportRecord.shipping_method == shipping_method.value)

    rows, total = await fetch_page(db, stmt.order_by(ExportRecord.created_at.desc()), page, limit)
    return PaginatedResponse[ExportOut].build(
        [ExportOut.model_validate(r) for r in rows], total, page, limit
    )


@router.get("/batch/{batch_id}", response_model=ExportOut)
async def get_batch_export(
    batch_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("export.read")),
):
    await get_active_batch(db, batch_id)
    record = (
        await db.execute(select(ExportRecord).where(ExportRecord.batch_id == batch_id))
    ).scalar_one_or_none()
    if not record:
        raise ResourceNotFoundError("ExportRecord", batch_id, message="No export for this batch")
    return record


@router.get("/{export_id}", response_model=ExportOut)
async def get_export(
    export_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("export.read")),
):
    return await _get_export(db, export_id)


@router.patch("/{export_id}", response_model=ExportOut)
async def update_export(
    export_id: str,
    body: ExportUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("export.write")),
):
    record = await _get_export(db, export_id)
    changes = body.model_dump(exclude_unset=True)

    shipping = changes.get("shipping_date", record.shipping_date)
    arrival = changes.get("expected_arrival", record.expected_arrival)
    if shipping is not None and arrival is not None and arrival <= shipping:
        raise BusinessLogicError(
            "expected_arrival must be after shipping_date", error_code="INVALID_DATES"
        )

    for field, value in changes.items():
        setattr(record, field, value)

    await db.flush()
    return record


@router.delete("/{export_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_export(
    export_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("export.write")),
):
    record = await _get_export(db, export_id)
    await db.delete(record)
    await db.flush()
