"""Supply-chain custody transfers.

Endpoints:
    POST /api/supplychain/transfer-nft   Record an on-chain custody transfer
"""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.auth.deps import require_permission
from cuptrace.database import get_db
from cuptrace.models.supply_chain_event import SupplyChainEvent
from cuptrace.models.user import User
from cuptrace.schemas.batch import BatchOut
from cuptrace.schemas.event import EventOut
from cuptrace.schemas.supply_chain import TransferRequest, TransferResponse
from cuptrace.services.supply_chain import transfer_custody
from cuptrace.utils.cache import invalidate_on_commit

router = APIRouter()


@router.post("/transfer-nft", response_model=TransferResponse)
async def transfer_nft(
    body: TransferRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("stage.transfer")),
):
    """Record that custody of a batch moved on chain in ``tx_hash``."""
    batch = await transfer_custody(
        db,
        batch_id=body.batch_id,
        to_user_id=body.to_user_id,
        tx_hash=body.tx_hash,
        next_stage=body.next_stage,
        operator=user,
    )
    event = (
        await db.execute(
            select(SupplyChainEvent)
            .where(
                SupplyChainEvent.batch_id == batch.id,
                SupplyChainEvent.event_type == "NFT_TRANSFER",
                SupplyChainEvent.event_hash == body.tx_hash,
            )
            .order_by(SupplyChainEvent.timestamp.desc())
            .limit(1)
        )
    ).scalar_one()

    invalidate_on_commit(db, "batches:*")
    return TransferResponse(
        batch=BatchOut.model_validate(batch),
        event=EventOut.model_validate(event),
    )
