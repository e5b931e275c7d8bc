from datetime import datetime

from pydantic import BaseModel, Field

from cuptrace.schemas.batch import BatchSummary
from cuptrace.schemas.user import FarmerSummary


class CooperativeCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    location: str = Field(..., min_length=2, max_length=200)
    description: str | None = None


class CooperativeUpdate(BaseModel):
    name: str | None = Field(None, min_length=2, max_length=100)
    location: str | None = Field(None, min_length=2, max_length=200)
    description: str | None = None


class CooperativeOut(BaseModel):
    id: str
    name: str
    location: str
    description: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CooperativeDetailOut(CooperativeOut):
    farmers: list[FarmerSummary] = []
    batches: list[BatchSummary] = []
