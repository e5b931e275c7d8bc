"""Pydantic schemas for ProductBatch CRUD and QC decisions."""

import re
from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field, field_validator

from cuptrace.models.batch import ProductType

_COORDINATES = re.compile(r"^-?\d{1,2}(\.\d+)?,\s*-?\d{1,3}(\.\d+)?$")


def _check_coordinates(value: str | None) -> str | None:
    if value is None:
        return value
    if not _COORDINATES.match(value):
        raise ValueError("coordinates must be 'lat,lng'")
    lat, lng = (float(part) for part in value.split(","))
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise ValueError("coordinates out of range")
    return value.replace(" ", "")


# ── Create ───────────────────────────────────────────────────

class BatchCreate(BaseModel):
    """Payload for POST /api/batches.

    Farmers register their own batches.  Agents and admins must name the
    farmer via ``farmer_id``.  ``lot_id`` is generated when omitted.
    """
    type: ProductType
    origin_location: str = Field(..., min_length=2, max_length=255)
    farmer_id: str | None = None
    cooperative_id: str | None = None
    lot_id: str | None = Field(None, max_length=50)

    region: str | None = None
    district: str | None = None
    sector: str | None = None
    cell: str | None = None
    village: str | None = None
    coordinates: str | None = None

    quantity: float | None = Field(None, ge=0)
    quality: str | None = None
    moisture: float | None = Field(None, ge=0, le=100)
    grade: str | None = None
    harvest_date: datetime | None = None
    processing_type: str | None = None
    tea_type: str | None = None

    description: str | None = None
    tags: list[str] = []
    metadata: dict = {}

    model_config = {"use_enum_values": True}

    @field_validator("coordinates")
    @classmethod
    def _valid_coordinates(cls, value):
        return _check_coordinates(value)


# ── Update (partial) ─────────────────────────────────────────

class BatchUpdate(BaseModel):
    lot_id: str | None = Field(None, max_length=50)
    cooperative_id: str | None = None
    origin_location: str | None = Field(None, min_length=2, max_length=255)
    region: str | None = None
    district: str | None = None
    sector: str | None = None
    cell: str | None = None
    village: str | None = None
    coordinates: str | None = None
    quantity: float | None = Field(None, ge=0)
    quality: str | None = None
    moisture: float | None = Field(None, ge=0, le=100)
    grade: str | None = None
    harvest_date: datetime | None = None
    processing_type: str | None = None
    tea_type: str | None = None
    description: str | None = None
    tags: list[str] | None = None

    @field_validator("coordinates")
    @classmethod
    def _valid_coordinates(cls, value):
        return _check_coordinates(value)


# ── QC decisions ─────────────────────────────────────────────

class ApproveRequest(BaseModel):
    """Optionally hand the approved batch straight to a washing station."""
    washing_station_id: str | None = None
    notes: str | None = None


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=3, max_length=500)


# ── Response ─────────────────────────────────────────────────

class BatchOut(BaseModel):
    id: str
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
    cell: str | None
    village: str | None
    coordinates: str | None

    quantity: float | None
    quality: str | None
    moisture: float | None
    grade: str | None
    harvest_date: datetime | None
    processing_type: str | None
    tea_type: str | None

    farmer_id: str
    cooperative_id: str | None
    washing_station_id: str | None
    factory_id: str | None
    exporter_id: str | None
    importer_id: str | None
    retailer_id: str | None
    blockchain_tx_hash: str | None

    description: str | None
    tags: list[str] | None
    metadata: dict | None = Field(
        None, validation_alias=AliasChoices("extra_metadata", "metadata")
    )
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BatchSummary(BaseModel):
    id: str
    lot_id: str | None
    type: str
    status: str
    current_stage: str
    quantity: float | None
    created_at: datetime

    model_config = {"from_attributes": True}


class IntegrityOut(BaseModel):
    frozen_data: dict
    hash: str
    approved_by: str | None
    approved_at: datetime

    model_config = {"from_attributes": True}


class IntegrityVerification(BaseModel):
    is_valid: bool
    tampered: bool
    issues: list[str] = []


class BatchDetailOut(BatchOut):
    integrity: IntegrityOut | None = None
    verification: IntegrityVerification | None = None
