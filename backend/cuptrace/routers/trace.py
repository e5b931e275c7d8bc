"""Public consumer trace (no authentication).

Endpoints:
    GET /api/trace/{public_hash}   Trace by the batch's B-… hash
    GET /api/trace/qr/{qr_code}    Trace by scanned QR code
    GET /api/trace/lot/{lot_id}    Trace by lot code
"""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cuptrace.database import get_db
from cuptrace.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from cuptrace.models.batch import ProductBatch
from cuptrace.models.batch_history import BatchHistory
from cuptrace.models.supply_chain_event import SupplyChainEvent
from cuptrace.schemas.batch import IntegrityVerification
from cuptrace.schemas.certificate import CertificateOut
from cuptrace.schemas.trace import (
    TraceBatchOut,
    TraceCooperativeOut,
    TraceEventOut,
    TraceFarmerOut,
    TraceHistoryOut,
    TraceOut,
)
from cuptrace.services.batch import verify_integrity
from cuptrace.utils.numbering import is_valid_qr_code

router = APIRouter()

TRACE_HISTORY_LIMIT = 10


async def _load(db: AsyncSession, where, identifier: str) -> ProductBatch:
    result = await db.execute(
        select(ProductBatch)
        .where(where, ProductBatch.deleted_at.is_(None))
        .options(
            selectinload(ProductBatch.cooperative),
            selectinload(ProductBatch.farmer),
            selectinload(ProductBatch.certificates),
            selectinload(ProductBatch.integrity),
        )
    )
    batch = result.scalar_one_or_none()
    if not batch:
        raise ResourceNotFoundError("ProductBatch", identifier, message="Product batch not found")
    return batch


async def _build_trace(db: AsyncSession, batch: ProductBatch) -> TraceOut:
    history = (
        await db.execute(
            select(BatchHistory)
            .where(BatchHistory.batch_id == batch.id)
            .order_by(BatchHistory.timestamp.desc())
            .limit(TRACE_HISTORY_LIMIT)
        )
    ).scalars().all()
    events = (
        await db.execute(
            select(SupplyChainEvent)
            .where(SupplyChainEvent.batch_id == batch.id)
            .order_by(SupplyChainEvent.timestamp.desc())
        )
    ).scalars().all()

    return TraceOut(
        batch=TraceBatchOut.model_validate(batch),
        cooperative=(
            TraceCooperativeOut.model_validate(batch.cooperative) if batch.cooperative else None
        ),
        farmer=TraceFarmerOut(public_hash=batch.farmer.public_hash if batch.farmer else None),
        certificates=[CertificateOut.model_validate(c) for c in batch.certificates],
        history=[TraceHistoryOut.model_validate(h) for h in history],
        events=[TraceEventOut.model_validate(e) for e in events],
        verification=IntegrityVerification(**verify_integrity(batch, batch.integrity)),
    )


@router.get("/qr/{qr_code}", response_model=TraceOut)
async def trace_by_qr(qr_code: str, db: AsyncSession = Depends(get_db)):
    if not is_valid_qr_code(qr_code):
        raise BusinessLogicError("Invalid QR code format", error_code="INVALID_QR_CODE")
    batch = await _load(db, ProductBatch.qr_code == qr_code, qr_code)
    return await _build_trace(db, batch)


@router.get("/lot/{lot_id}", response_model=TraceOut)
async def trace_by_lot(lot_id: str, db: AsyncSession = Depends(get_db)):
    batch = await _load(db, ProductBatch.lot_id == lot_id, lot_id)
    return await _build_trace(db, batch)


@router.get("/{public_hash}", response_model=TraceOut)
async def trace_by_hash(public_hash: str, db: AsyncSession = Depends(get_db)):
    batch = await _load(db, ProductBatch.public_trace_hash == public_hash, public_hash)
    return await _build_trace(db, batch)
