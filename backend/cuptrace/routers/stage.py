"""Stage updates for coffee and tea batches.

Endpoints:
    PUT /api/stage/coffee/{batch_id}   Move a coffee batch along the chain
    PUT /api/stage/tea/{batch_id}      Move a tea batch along the chain
    GET /api/stage/{batch_id}/history  Stage history, newest first
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.auth.deps import require_permission
from cuptrace.database import get_db
from cuptrace.models.batch import ProductType
from cuptrace.models.user import User
from cuptrace.schemas.batch import BatchOut
from cuptrace.schemas.stage import BatchHistoryOut, StageUpdateRequest
from cuptrace.services.stage import get_batch_history, update_batch_stage
from cuptrace.utils.cache import invalidate_on_commit

router = APIRouter()


async def _update(
    db: AsyncSession,
    batch_id: str,
    body: StageUpdateRequest,
    user: User,
    product_type: ProductType,
):
    batch = await update_batch_stage(
        db, batch_id,
        stage=body.stage,
        changed_by=user,
        product_type=product_type.value,
        blockchain_tx_hash=body.blockchain_tx_hash,
        notes=body.notes,
        quantity=body.quantity,
        quality=body.quality,
        location=body.location,
        metadata=body.metadata,
    )
    invalidate_on_commit(db, "batches:*")
    return batch


@router.put("/coffee/{batch_id}", response_model=BatchOut)
async def update_coffee_stage(
    batch_id: str,
    body: StageUpdateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("stage.update")),
):
    return await _update(db, batch_id, body, user, ProductType.COFFEE)


@router.put("/tea/{batch_id}", response_model=BatchOut)
async def update_tea_stage(
    batch_id: str,
    body: StageUpdateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("stage.update")),
):
    return await _update(db, batch_id, body, user, ProductType.TEA)


@router.get("/{batch_id}/history", response_model=list[BatchHistoryOut])
async def batch_history(
    batch_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("batch.read")),
):
    return await get_batch_history(db, batch_id)
