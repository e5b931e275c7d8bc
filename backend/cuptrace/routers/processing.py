"""Processing records (washing, drying, hulling, withering, ...).

Endpoints:
    POST   /api/processing/                Record a processing step
    GET    /api/processing/                List (filter by batch, stage, processor)
    GET    /api/processing/{record_id}     Single record
    PATCH  /api/processing/{record_id}     Update
    DELETE /api/processing/{record_id}     Delete
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.auth.deps import require_permission
from cuptrace.database import get_db
from cuptrace.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from cuptrace.models.batch import SupplyChainStage
from cuptrace.models.processing_record import ProcessingRecord
from cuptrace.models.user import User
from cuptrace.schemas.common import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PaginatedResponse
from cuptrace.schemas.processing import ProcessingCreate, ProcessingOut, ProcessingUpdate
from cuptrace.services.queries import get_active_batch, get_user
from cuptrace.utils.events import record_event
from cuptrace.utils.pagination import fetch_page

router = APIRouter()


async def _get_record(db: AsyncSession, record_id: str) -> ProcessingRecord:
    record = (
        await db.execute(select(ProcessingRecord).where(ProcessingRecord.id == record_id))
    ).scalar_one_or_none()
    if not record:
        raise ResourceNotFoundError("ProcessingRecord", record_id)
    return record


@router.post("/", response_model=ProcessingOut, status_code=status.HTTP_201_CREATED)
async def create_processing_record(
    body: ProcessingCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("processing.write")),
):
    batch = await get_active_batch(db, body.batch_id)
    processor = await get_user(db, body.processed_by or user.id, "Processor")

    record = ProcessingRecord(
        batch_id=batch.id,
        stage=body.stage,
        processing_type=body.processing_type,
        notes=body.notes,
        quality_score=body.quality_score,
        quantity_in=body.quantity_in,
        quantity_out=body.quantity_out,
        processed_by=processor.id,
        processed_at=body.processed_at or datetime.utcnow(),
        blockchain_tx_hash=body.blockchain_tx_hash,
    )
    db.add(record)
    await db.flush()

    await record_event(
        db,
        batch_id=batch.id,
        event_type="PROCESSING",
        operator_id=user.id,
        description=body.notes,
        metadata={
            "processing_record_id": record.id,
            "stage": body.stage,
            "processing_type": body.processing_type,
            "quantity_in": body.quantity_in,
            "quantity_out": body.quantity_out,
            "quality_score": body.quality_score,
        },
    )
    await db.flush()
    return record


@router.get("/", response_model=PaginatedResponse[ProcessingOut])
async def list_processing_records(
    batch_id: str | None = Query(None),
    stage: SupplyChainStage | None = Query(None),
    processed_by: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("processing.read")),
):
    stmt = select(ProcessingRecord)
    if batch_id:
        stmt = stmt.where(ProcessingRecord.batch_id == batch_id)
    if stage:
        stmt = stmt.where(ProcessingRecord.stage == stage.value)
    if processed_by:
        stmt = stmt.where(ProcessingRecord.processed_by == processed_by)

    rows, total = await fetch_page(
        db, stmt.order_by(ProcessingRecord.processed_at.desc()), page, limit
    )
    return PaginatedResponse[ProcessingOut].build(
        [ProcessingOut.model_validate(r) for r in rows], total, page, limit
    )


@router.get("/{record_id}", response_model=ProcessingOut)
async def get_processing_record(
    record_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("processing.read")),
):
    return await _get_record(db, record_id)


@router.patch("/{record_id}", response_model=ProcessingOut)
async def update_processing_record(
    record_id: str,
    body: ProcessingUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("processing.write")),
):
    record = await _get_record(db, record_id)
    changes = body.model_dump(exclude_unset=True)

    quantity_in = changes.get("quantity_in", record.quantity_in)
    quantity_out = changes.get("quantity_out", record.quantity_out)
    if quantity_in is not None and quantity_out is not None and quantity_out > quantity_in:
        raise BusinessLogicError(
            "quantity_out cannot exceed quantity_in", error_code="INVALID_QUANTITY"
        )

    for field, value in changes.items():
        setattr(record, field, value)

    await db.flush()
    return record


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_processing_record(
    record_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("processing.write")),
):
    record = await _get_record(db, record_id)
    await db.delete(record)
    await db.flush()
