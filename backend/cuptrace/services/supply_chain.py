"""Custody (NFT) transfers.

The transfer itself happens on chain through the client's wallet; this
service records it.  The caller supplies the transaction hash, which is
stored on the batch, on the BatchHistory row, and as the event_hash of
the NFT_TRANSFER event.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.middleware.exceptions import BusinessLogicError, PermissionDeniedError
from cuptrace.models.batch import ProductBatch, SupplyChainStage
from cuptrace.models.user import User, UserRole
from cuptrace.services.queries import get_active_batch, get_user_with_role
from cuptrace.services.stage import STAGE_ROLES, apply_stage_change, check_stage_move

logger = logging.getLogger(__name__)


async def transfer_custody(
    db: AsyncSession,
    *,
    batch_id: str,
    to_user_id: str,
    tx_hash: str,
    next_stage: str,
    operator: User,
) -> ProductBatch:
    """Hand a batch from its current custodian to ``to_user_id``.

    Only the current custodian (or an admin) may hand the batch on, and
    the recipient must hold the role of ``next_stage``.
    """
    batch = await get_active_batch(db, batch_id)

    current_owner = batch.actor_for_stage(batch.current_stage)
    if operator.role != UserRole.ADMIN and operator.id != current_owner:
        raise PermissionDeniedError("Only the current custodian can transfer this batch")

    if next_stage == SupplyChainStage.FARMER.value:
        raise BusinessLogicError(
            "Custody cannot be transferred to the farmer stage",
            error_code="INVALID_STAGE_TRANSITION",
        )

    recipient = await get_user_with_role(db, to_user_id, STAGE_ROLES[next_stage], "Recipient")
    check_stage_move(batch, next_stage)

    from_stage = batch.current_stage
    await apply_stage_change(
        db, batch,
        stage=next_stage,
        actor_id=recipient.id,
        changed_by=operator.id,
        event_type="NFT_TRANSFER",
        blockchain_tx_hash=tx_hash,
        event_hash=tx_hash,
        event_metadata={
            "tx_hash": tx_hash,
            "from": current_owner,
            "to": recipient.id,
            "from_stage": from_stage,
            "stage": next_stage,
        },
        notes=f"Custody transferred {from_stage} → {next_stage}",
    )
    await db.flush()

    logger.info(
        f"Custody of batch {batch.lot_id} transferred to {next_stage}",
        extra={"batch_id": batch.id, "to_user_id": recipient.id, "tx_hash": tx_hash},
    )
    return batch
