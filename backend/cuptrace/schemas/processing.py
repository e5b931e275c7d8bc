from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from cuptrace.models.batch import SupplyChainStage


def _check_quantities(quantity_in: float | None, quantity_out: float | None) -> None:
    if quantity_in is not None and quantity_out is not None and quantity_out > quantity_in:
        raise ValueError("quantity_out cannot exceed quantity_in")


class ProcessingCreate(BaseModel):
    """``processed_by`` defaults to the caller."""
    batch_id: str
    stage: SupplyChainStage
    processing_type: str | None = Field(None, max_length=50)
    notes: str | None = None
    quality_score: float | None = Field(None, ge=0, le=100)
    quantity_in: float | None = Field(None, ge=0)
    quantity_out: float | None = Field(None, ge=0)
    processed_by: str | None = None
    processed_at: datetime | None = None
    blockchain_tx_hash: str | None = Field(None, max_length=128)

    model_config = {"use_enum_values": True}

    @model_validator(mode="after")
    def _output_within_input(self):
        _check_quantities(self.quantity_in, self.quantity_out)
        return self


class ProcessingUpdate(BaseModel):
    processing_type: str | None = Field(None, max_length=50)
    notes: str | None = None
    quality_score: float | None = Field(None, ge=0, le=100)
    quantity_in: float | None = Field(None, ge=0)
    quantity_out: float | None = Field(None, ge=0)
    blockchain_tx_hash: str | None = Field(None, max_length=128)

    @model_validator(mode="after")
    def _output_within_input(self):
        _check_quantities(self.quantity_in, self.quantity_out)
        return self


class ProcessingOut(BaseModel):
    id: str
    batch_id: str
    stage: str
    processing_type: str | None
    notes: str | None
    quality_score: float | None
    quantity_in: float | None
    quantity_out: float | None
    processed_by: str
    processed_at: datetime
    blockchain_tx_hash: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
