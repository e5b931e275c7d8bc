from pydantic import BaseModel, Field

from cuptrace.models.batch import SupplyChainStage
from cuptrace.schemas.batch import BatchOut
from cuptrace.schemas.event import EventOut


class TransferRequest(BaseModel):
    """Record a custody transfer already executed on chain."""
    batch_id: str
    to_user_id: str
    tx_hash: str = Field(..., min_length=8, max_length=128)
    next_stage: SupplyChainStage

    model_config = {"use_enum_values": True}


class TransferResponse(BaseModel):
    batch: BatchOut
    event: EventOut
