from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field

from cuptrace.models.batch import SupplyChainStage


class StageUpdateRequest(BaseModel):
    """Body for PUT /api/stage/{coffee|tea}/{batch_id}."""
    stage: SupplyChainStage
    blockchain_tx_hash: str | None = Field(None, max_length=128)
    notes: str | None = None
    quantity: float | None = Field(None, ge=0)
    quality: str | None = None
    location: str | None = Field(None, max_length=200)
    metadata: dict | None = None

    model_config = {"use_enum_values": True}


class BatchHistoryOut(BaseModel):
    id: str
    batch_id: str
    stage: str
    changed_by: str
    blockchain_tx_hash: str | None
    notes: str | None
    quantity: float | None
    quality: str | None
    location: str | None
    metadata: dict | None = Field(
        None, validation_alias=AliasChoices("extra_metadata", "metadata")
    )
    timestamp: datetime

    model_config = {"from_attributes": True}
