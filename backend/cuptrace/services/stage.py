"""Stage transitions for product batches.

A batch only ever moves forward along STAGE_ORDER (or stays put).  Every
move, whether a plain stage update or an on-chain custody transfer, goes
through ``apply_stage_change`` so the batch row, its BatchHistory entry
and its SupplyChainEvent are written in the same transaction.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.middleware.exceptions import (
    BusinessLogicError,
    ConflictError,
    PermissionDeniedError,
)
from cuptrace.models.batch import (
    STAGE_ACTOR_FIELDS,
    BatchStatus,
    ProductBatch,
    SupplyChainStage,
)
from cuptrace.models.batch_history import BatchHistory
from cuptrace.models.user import User, UserRole
from cuptrace.services.queries import get_active_batch
from cuptrace.utils.events import record_event

logger = logging.getLogger(__name__)

STAGE_ORDER: list[str] = [s.value for s in SupplyChainStage]

# Status a batch takes on when it reaches a stage; farmer keeps its QC status
STAGE_STATUS: dict[str, str] = {
    SupplyChainStage.WASHING_STATION.value: BatchStatus.PROCESSING.value,
    SupplyChainStage.FACTORY.value: BatchStatus.PROCESSING.value,
    SupplyChainStage.EXPORTER.value: BatchStatus.READY_FOR_EXPORT.value,
    SupplyChainStage.IMPORTER.value: BatchStatus.EXPORTED.value,
    SupplyChainStage.RETAILER.value: BatchStatus.DELIVERED.value,
}

# Role an actor must hold to own a batch at a given stage
STAGE_ROLES: dict[str, UserRole] = {stage: UserRole(stage) for stage in STAGE_ORDER}


def validate_stage_transition(current: str, new: str) -> bool:
    """True iff ``new`` is the same stage as ``current`` or further along."""
    if current not in STAGE_ORDER or new not in STAGE_ORDER:
        return False
    return STAGE_ORDER.index(new) >= STAGE_ORDER.index(current)


def check_stage_move(batch: ProductBatch, new_stage: str) -> None:
    """Raise if ``batch`` may not move to ``new_stage``."""
    if new_stage not in STAGE_ORDER:
        raise BusinessLogicError(f"Unknown stage: {new_stage}", error_code="INVALID_STAGE")
    if batch.status == BatchStatus.REJECTED.value:
        raise ConflictError(
            "Rejected batches cannot move along the supply chain",
            error_code="BATCH_REJECTED",
        )
    if (
        batch.status == BatchStatus.PENDING.value
        and new_stage != SupplyChainStage.FARMER.value
    ):
        raise ConflictError(
            "Batch must be approved by QC before leaving the farmer",
            error_code="BATCH_NOT_APPROVED",
        )
    if not validate_stage_transition(batch.current_stage, new_stage):
        raise BusinessLogicError(
            f"Invalid stage transition: {batch.current_stage} → {new_stage}",
            error_code="INVALID_STAGE_TRANSITION",
        )


async def apply_stage_change(
    db: AsyncSession,
    batch: ProductBatch,
    *,
    stage: str,
    actor_id: str,
    changed_by: str,
    event_type: str = "STAGE_UPDATE",
    blockchain_tx_hash: str | None = None,
    event_hash: str | None = None,
    event_metadata: dict | None = None,
    notes: str | None = None,
    quantity: float | None = None,
    quality: str | None = None,
    location: str | None = None,
    metadata: dict | None = None,
) -> BatchHistory:
    """Move ``batch`` to ``stage`` owned by ``actor_id`` and log it.

    Callers validate the move first (``check_stage_move``).  The farmer
    column is never overwritten: the farmer stage always belongs to the
    batch's originating farmer.
    """
    previous_stage = batch.current_stage

    batch.current_stage = stage
    if stage != SupplyChainStage.FARMER.value:
        setattr(batch, STAGE_ACTOR_FIELDS[stage], actor_id)
    if blockchain_tx_hash:
        batch.blockchain_tx_hash = blockchain_tx_hash
    if stage in STAGE_STATUS:
        batch.status = STAGE_STATUS[stage]

    if not batch.actor_for_stage(stage):
        raise BusinessLogicError(
            f"Stage {stage} has no owning actor", error_code="STAGE_ACTOR_MISSING"
        )

    history = BatchHistory(
        batch_id=batch.id,
        stage=stage,
        changed_by=changed_by,
        blockchain_tx_hash=batch.blockchain_tx_hash,
        notes=notes,
        quantity=quantity,
        quality=quality,
        location=location,
        extra_metadata=metadata,
    )
    db.add(history)

    if event_metadata is None:
        event_metadata = {"from_stage": previous_stage, "to_stage": stage, **(metadata or {})}
    await record_event(
        db,
        batch_id=batch.id,
        event_type=event_type,
        operator_id=changed_by,
        location=location,
        description=notes,
        metadata=event_metadata,
        event_hash=event_hash,
    )
    return history


async def update_batch_stage(
    db: AsyncSession,
    batch_id: str,
    *,
    stage: str,
    changed_by: User,
    product_type: str | None = None,
    blockchain_tx_hash: str | None = None,
    notes: str | None = None,
    quantity: float | None = None,
    quality: str | None = None,
    location: str | None = None,
    metadata: dict | None = None,
) -> ProductBatch:
    """Move a batch to ``stage`` on behalf of ``changed_by``.

    ``changed_by`` becomes the owner of the target stage, so they must hold
    that stage's role (admins may act for anyone).  Passing ``product_type``
    restricts the lookup to coffee or tea batches.
    """
    batch = await get_active_batch(db, batch_id, product_type=product_type)

    if changed_by.role != UserRole.ADMIN and changed_by.role != STAGE_ROLES.get(stage):
        raise PermissionDeniedError(
            f"Only {stage} users can move a batch to the {stage} stage"
        )
    check_stage_move(batch, stage)

    await apply_stage_change(
        db, batch,
        stage=stage,
        actor_id=changed_by.id,
        changed_by=changed_by.id,
        blockchain_tx_hash=blockchain_tx_hash,
        notes=notes,
        quantity=quantity,
        quality=quality,
        location=location,
        metadata=metadata,
    )
    await db.flush()

    logger.info(
        f"Batch {batch.lot_id or batch.id} moved to {stage}",
        extra={"batch_id": batch.id, "stage": stage, "user_id": changed_by.id},
    )
    return batch


async def get_batch_history(db: AsyncSession, batch_id: str) -> list[BatchHistory]:
    """History rows for a live batch, newest first."""
    await get_active_batch(db, batch_id)
    result = await db.execute(
        select(BatchHistory)
        .where(BatchHistory.batch_id == batch_id)
        .order_by(BatchHistory.timestamp.desc())
    )
    return list(result.scalars().all())
