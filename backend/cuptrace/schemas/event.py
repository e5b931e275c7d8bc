from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field


class EventCreate(BaseModel):
    batch_id: str
    # Free-form but conventional: UPPER_SNAKE_CASE, e.g. "QUALITY_CHECK"
    event_type: str = Field(..., min_length=2, max_length=50, pattern=r"^[A-Z][A-Z0-9_]*$")
    location: str | None = Field(None, max_length=200)
    description: str | None = None
    metadata: dict = {}


class EventOut(BaseModel):
    id: str
    batch_id: str
    event_type: str
    operator_id: str
    location: str | None
    description: str | None
    metadata: dict | None = Field(
        None, validation_alias=AliasChoices("extra_metadata", "metadata")
    )
    event_hash: str
    timestamp: datetime

    model_config = {"from_attributes": True}
