"""Public trace views.

Consumers never see internal user ids, names or phone numbers: the farmer
appears only as their ``F-…`` public hash and history rows omit who
recorded them.
"""

from datetime import datetime

from pydantic import BaseModel

from cuptrace.schemas.batch import IntegrityVerification
from cuptrace.schemas.certificate import CertificateOut


class TraceBatchOut(BaseModel):
    lot_id: str | None
    qr_code: str | None
    public_trace_hash: str | None
    type: str
    status: str
    current_stage: str
    origin_location: str
    region: str | None
    district: str | None
    sector: str | None
    village: str | None
    quantity: float | None
    quality: str | None
    moisture: float | None
    grade: str | None
    harvest_date: datetime | None
    processing_type: str | None
    tea_type: str | None
    blockchain_tx_hash: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TraceCooperativeOut(BaseModel):
    name: str
    location: str

    model_config = {"from_attributes": True}


class TraceFarmerOut(BaseModel):
    public_hash: str | None


class TraceHistoryOut(BaseModel):
    stage: str
    location: str | None
    notes: str | None
    blockchain_tx_hash: str | None
    timestamp: datetime

    model_config = {"from_attributes": True}


class TraceEventOut(BaseModel):
    event_type: str
    location: str | None
    description: str | None
    event_hash: str
    timestamp: datetime

    model_config = {"from_attributes": True}


class TraceOut(BaseModel):
    batch: TraceBatchOut
    cooperative: TraceCooperativeOut | None
    farmer: TraceFarmerOut
    certificates: list[CertificateOut]
    history: list[TraceHistoryOut]
    events: list[TraceEventOut]
    verification: IntegrityVerification
