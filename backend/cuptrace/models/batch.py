"""ProductBatch — a lot of coffee or tea moving from farm to shelf.

A batch is registered by (or on behalf of) a farmer, checked by QC, then
handed from custodian to custodian.  Each stage has its own actor column;
whichever column matches ``current_stage`` names the current owner.

Stages:   farmer → washing_station → factory → exporter → importer → retailer
Status:   pending → approved | rejected
          approved → processing → ready_for_export → exported → delivered

Batches are never physically removed.  ``deleted_at`` marks a soft delete
and every default query filters on ``deleted_at IS NULL``.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cuptrace.database import Base


class ProductType(str, enum.Enum):
    COFFEE = "coffee"
    TEA = "tea"


class SupplyChainStage(str, enum.Enum):
    FARMER = "farmer"
    WASHING_STATION = "washing_station"
    FACTORY = "factory"
    EXPORTER = "exporter"
    IMPORTER = "importer"
    RETAILER = "retailer"


class BatchStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSING = "processing"
    READY_FOR_EXPORT = "ready_for_export"
    EXPORTED = "exported"
    DELIVERED = "delivered"


# Stage → the column holding the actor who owns the batch at that stage
STAGE_ACTOR_FIELDS: dict[str, str] = {
    SupplyChainStage.FARMER.value: "farmer_id",
    SupplyChainStage.WASHING_STATION.value: "washing_station_id",
    SupplyChainStage.FACTORY.value: "factory_id",
    SupplyChainStage.EXPORTER.value: "exporter_id",
    SupplyChainStage.IMPORTER.value: "importer_id",
    SupplyChainStage.RETAILER.value: "retailer_id",
}


class ProductBatch(Base):
    __tablename__ = "product_batches"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    # ── Identity ─────────────────────────────────────────────
    # Human-readable lot code, e.g. CF-20260218-004
    lot_id: Mapped[str | None] = mapped_column(String(50), unique=True, index=True)
    qr_code: Mapped[str | None] = mapped_column(String(80), unique=True, index=True)
    public_trace_hash: Mapped[str | None] = mapped_column(String(20), unique=True, index=True)

    # coffee | tea
    type: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    # pending | approved | rejected | processing | ready_for_export | exported | delivered
    status: Mapped[str] = mapped_column(String(30), default="pending", index=True)
    # farmer | washing_station | factory | exporter | importer | retailer
    current_stage: Mapped[str] = mapped_column(String(30), default="farmer", index=True)

    # ── Origin ───────────────────────────────────────────────
    origin_location: Mapped[str] = mapped_column(String(255), nullable=False)
    region: Mapped[str | None] = mapped_column(String(100))
    district: Mapped[str | None] = mapped_column(String(100))
    sector: Mapped[str | None] = mapped_column(String(100))
    cell: Mapped[str | None] = mapped_column(String(100))
    village: Mapped[str | None] = mapped_column(String(100))
    # "lat,lng"
    coordinates: Mapped[str | None] = mapped_column(String(50))

    # ── Product attributes ───────────────────────────────────
    quantity: Mapped[float | None] = mapped_column(Float)  # kg
    quality: Mapped[str | None] = mapped_column(String(100))
    moisture: Mapped[float | None] = mapped_column(Float)  # percent
    grade: Mapped[str | None] = mapped_column(String(50))
    harvest_date: Mapped[datetime | None] = mapped_column(DateTime)
    # Coffee: washed / natural / honey.  Tea: green / black / ...
    processing_type: Mapped[str | None] = mapped_column(String(50))
    tea_type: Mapped[str | None] = mapped_column(String(50))

    # ── Custody chain ────────────────────────────────────────
    farmer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    cooperative_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("cooperatives.id"), index=True
    )
    washing_station_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), index=True
    )
    factory_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), index=True
    )
    exporter_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), index=True
    )
    importer_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), index=True
    )
    retailer_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), index=True
    )

    # Latest custody-change transaction on chain
    blockchain_tx_hash: Mapped[str | None] = mapped_column(String(128))

    # ── Metadata ─────────────────────────────────────────────
    description: Mapped[str | None] = mapped_column(Text)
    tags: Mapped[list | None] = mapped_column(JSON, default=list)
    # "metadata" is reserved on declarative classes
    extra_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, default=dict)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # ── Relationships ────────────────────────────────────────
    # Keep lazy="select" and load explicitly with selectinload() in queries.
    farmer = relationship("User", foreign_keys=[farmer_id])
    washing_station = relationship("User", foreign_keys=[washing_station_id])
    factory = relationship("User", foreign_keys=[factory_id])
    exporter = relationship("User", foreign_keys=[exporter_id])
    importer = relationship("User", foreign_keys=[importer_id])
    retailer = relationship("User", foreign_keys=[retailer_id])
    cooperative = relationship("Cooperative", back_populates="batches")
    history = relationship(
        "BatchHistory", back_populates="batch",
        order_by="BatchHistory.timestamp",
    )
    certificates = relationship("Certificate", back_populates="batch")
    integrity = relationship("BatchIntegrity", back_populates="batch", uselist=False)

    def actor_for_stage(self, stage: str) -> str | None:
        return getattr(self, STAGE_ACTOR_FIELDS[stage])
