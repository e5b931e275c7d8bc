"""Batch lifecycle: registration, QC decisions, edits, soft delete.

Handles:
  - Registering a batch for a farmer (directly or via an agent/admin)
  - Generating lot_id, qr_code and public_trace_hash
  - QC approval, which freezes an integrity snapshot of the batch
  - QC rejection
  - Integrity verification against the frozen snapshot
"""

import hashlib
import json
import logging
import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.middleware.exceptions import (
    BusinessLogicError,
    ConflictError,
    PermissionDeniedError,
)
from cuptrace.models.batch import (
    BatchStatus,
    ProductBatch,
    SupplyChainStage,
)
from cuptrace.models.batch_history import BatchHistory
from cuptrace.models.batch_integrity import BatchIntegrity
from cuptrace.models.user import User, UserRole
from cuptrace.schemas.batch import BatchCreate, BatchUpdate
from cuptrace.services.queries import (
    get_active_batch,
    get_cooperative,
    get_user_with_role,
)
from cuptrace.services.stage import apply_stage_change, check_stage_move
from cuptrace.utils.events import record_event
from cuptrace.utils.hashing import generate_batch_trace_hash, generate_farmer_public_hash
from cuptrace.utils.numbering import generate_lot_id, generate_qr_code

logger = logging.getLogger(__name__)

# Fields captured at approval; changing them afterwards needs admin rights
FROZEN_FIELDS = ("farmer_id", "quantity", "grade", "quality", "moisture", "type", "lot_id")


def _snapshot(batch: ProductBatch) -> dict:
    return {field: getattr(batch, field) for field in FROZEN_FIELDS}


def hash_snapshot(data: dict) -> str:
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


async def _ensure_lot_id_free(db: AsyncSession, lot_id: str, batch_id: str | None = None) -> None:
    stmt = select(ProductBatch.id).where(ProductBatch.lot_id == lot_id)
    if batch_id:
        stmt = stmt.where(ProductBatch.id != batch_id)
    if (await db.execute(stmt)).first():
        raise ConflictError(f"Lot ID already in use: {lot_id}", error_code="DUPLICATE_LOT_ID")


async def _is_frozen(db: AsyncSession, batch_id: str) -> bool:
    result = await db.execute(
        select(BatchIntegrity.id).where(BatchIntegrity.batch_id == batch_id)
    )
    return result.first() is not None


# ── Create ───────────────────────────────────────────────────

async def create_batch(db: AsyncSession, body: BatchCreate, user: User) -> ProductBatch:
    """Register a new batch at the farmer stage, pending QC."""
    if user.role == UserRole.FARMER:
        if body.farmer_id and body.farmer_id != user.id:
            raise PermissionDeniedError("Farmers can only register their own batches")
        farmer = user
    elif user.role in (UserRole.AGENT, UserRole.ADMIN):
        if not body.farmer_id:
            raise BusinessLogicError(
                "farmer_id is required when registering on behalf of a farmer",
                error_code="FARMER_REQUIRED",
            )
        farmer = await get_user_with_role(db, body.farmer_id, UserRole.FARMER, "Farmer")
    else:
        raise PermissionDeniedError("Only farmers, agents and admins can register batches")

    cooperative_id = body.cooperative_id or farmer.cooperative_id
    if cooperative_id:
        await get_cooperative(db, cooperative_id)

    if body.lot_id:
        await _ensure_lot_id_free(db, body.lot_id)
        lot_id = body.lot_id
    else:
        lot_id = await generate_lot_id(db, body.type)

    if not farmer.public_hash:
        farmer.public_hash = generate_farmer_public_hash(farmer.id)

    batch_id = str(uuid.uuid4())
    batch = ProductBatch(
        id=batch_id,
        lot_id=lot_id,
        qr_code=generate_qr_code(batch_id, body.type),
        public_trace_hash=generate_batch_trace_hash(batch_id),
        type=body.type,
        status=BatchStatus.PENDING.value,
        current_stage=SupplyChainStage.FARMER.value,
        farmer_id=farmer.id,
        cooperative_id=cooperative_id,
        origin_location=body.origin_location,
        region=body.region,
        district=body.district,
        sector=body.sector,
        cell=body.cell,
        village=body.village,
        coordinates=body.coordinates,
        quantity=body.quantity,
        quality=body.quality,
        moisture=body.moisture,
        grade=body.grade,
        harvest_date=body.harvest_date,
        processing_type=body.processing_type,
        tea_type=body.tea_type,
        description=body.description,
        tags=body.tags,
        extra_metadata=body.metadata,
    )
    db.add(batch)
    await db.flush()

    db.add(BatchHistory(
        batch_id=batch.id,
        stage=SupplyChainStage.FARMER.value,
        changed_by=user.id,
        quantity=body.quantity,
        quality=body.quality,
        location=body.origin_location,
        notes="Batch registered",
    ))
    await record_event(
        db,
        batch_id=batch.id,
        event_type="BATCH_CREATED",
        operator_id=user.id,
        location=body.origin_location,
        description=f"{body.type} batch {lot_id} registered",
        metadata={"lot_id": lot_id, "farmer_id": farmer.id, "quantity": body.quantity},
    )
    await db.flush()

    logger.info(
        f"Batch {lot_id} registered",
        extra={"batch_id": batch.id, "farmer_id": farmer.id, "user_id": user.id},
    )
    return batch


# ── QC decisions ─────────────────────────────────────────────

async def approve_batch(
    db: AsyncSession,
    batch_id: str,
    user: User,
    washing_station_id: str | None = None,
    notes: str | None = None,
) -> ProductBatch:
    """Approve a pending (or previously rejected) batch.

    The first approval freezes the integrity snapshot.  With
    ``washing_station_id`` the batch is also handed to that station.
    """
    batch = await get_active_batch(db, batch_id)

    if batch.status not in (BatchStatus.PENDING.value, BatchStatus.REJECTED.value):
        raise ConflictError("Batch is already approved", error_code="ALREADY_APPROVED")

    batch.status = BatchStatus.APPROVED.value

    existing = (
        await db.execute(select(BatchIntegrity).where(BatchIntegrity.batch_id == batch.id))
    ).scalar_one_or_none()
    if not existing:
        frozen = _snapshot(batch)
        db.add(BatchIntegrity(
            batch_id=batch.id,
            frozen_data=frozen,
            hash=hash_snapshot(frozen),
            approved_by=user.id,
        ))

    await record_event(
        db,
        batch_id=batch.id,
        event_type="BATCH_APPROVED",
        operator_id=user.id,
        description=notes,
        metadata={"approved_by": user.id},
    )

    if washing_station_id:
        station = await get_user_with_role(
            db, washing_station_id, UserRole.WASHING_STATION, "Washing station"
        )
        check_stage_move(batch, SupplyChainStage.WASHING_STATION.value)
        await apply_stage_change(
            db, batch,
            stage=SupplyChainStage.WASHING_STATION.value,
            actor_id=station.id,
            changed_by=user.id,
            notes=notes or "Approved by QC",
        )

    await db.flush()
    logger.info(
        f"Batch {batch.lot_id} approved",
        extra={"batch_id": batch.id, "user_id": user.id},
    )
    return batch


async def reject_batch(db: AsyncSession, batch_id: str, user: User, reason: str) -> ProductBatch:
    batch = await get_active_batch(db, batch_id)

    if batch.status == BatchStatus.REJECTED.value:
        raise ConflictError("Batch is already rejected", error_code="ALREADY_REJECTED")

    batch.status = BatchStatus.REJECTED.value
    # Reassign so the JSON column is flagged dirty
    batch.extra_metadata = {
        **(batch.extra_metadata or {}),
        "rejection_reason": reason,
        "rejected_at": datetime.utcnow().isoformat(),
        "rejected_by": user.id,
    }

    await record_event(
        db,
        batch_id=batch.id,
        event_type="BATCH_REJECTED",
        operator_id=user.id,
        description=reason,
        metadata={"reason": reason},
    )
    await db.flush()

    logger.info(
        f"Batch {batch.lot_id} rejected",
        extra={"batch_id": batch.id, "user_id": user.id},
    )
    return batch


# ── Update / delete ──────────────────────────────────────────

async def update_batch(
    db: AsyncSession,
    batch_id: str,
    body: BatchUpdate,
    user: User,
) -> ProductBatch:
    batch = await get_active_batch(db, batch_id)
    changes = body.model_dump(exclude_unset=True)

    if user.role == UserRole.FARMER and batch.farmer_id != user.id:
        raise PermissionDeniedError("Farmers can only edit their own batches")

    frozen_changes = set(changes) & set(FROZEN_FIELDS)
    if frozen_changes and user.role != UserRole.ADMIN and await _is_frozen(db, batch.id):
        raise PermissionDeniedError(
            f"Fields frozen at approval: {', '.join(sorted(frozen_changes))}"
        )

    if changes.get("lot_id"):
        await _ensure_lot_id_free(db, changes["lot_id"], batch.id)
    if changes.get("cooperative_id"):
        await get_cooperative(db, changes["cooperative_id"])

    for field, value in changes.items():
        setattr(batch, field, value)

    await db.flush()
    return batch


async def delete_batch(db: AsyncSession, batch_id: str) -> None:
    """Soft delete.  Batches are never removed from the table."""
    batch = await get_active_batch(db, batch_id)
    batch.deleted_at = datetime.utcnow()
    await db.flush()
    logger.info(f"Batch {batch.lot_id} soft-deleted", extra={"batch_id": batch.id})


# ── Integrity ────────────────────────────────────────────────

def verify_integrity(batch: ProductBatch, integrity: BatchIntegrity | None) -> dict:
    """Compare the live batch with the snapshot frozen at approval.

    Returns {"is_valid", "tampered", "issues"}.
    """
    if integrity is None:
        return {
            "is_valid": False,
            "tampered": False,
            "issues": ["Batch has not been approved by QC"],
        }

    issues = []
    if hash_snapshot(integrity.frozen_data) != integrity.hash:
        issues.append("Integrity snapshot hash mismatch")

    for field in FROZEN_FIELDS:
        frozen = integrity.frozen_data.get(field)
        live = getattr(batch, field)
        if frozen != live:
            issues.append(f"{field} changed after approval: {frozen!r} → {live!r}")

    tampered = bool(issues)
    return {"is_valid": not tampered, "tampered": tampered, "issues": issues}
