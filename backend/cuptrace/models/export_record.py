"""ExportRecord — the shipment that takes a batch out of the country.

One export per batch.  The exporter must hold the exporter role.

Shipping methods:  air | sea | road
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cuptrace.database import Base


class ExportRecord(Base):
    __tablename__ = "export_records"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    batch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product_batches.id"), unique=True, nullable=False
    )
    exporter_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )

    # ── Buyer ────────────────────────────────────────────────
    buyer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    buyer_address: Mapped[str | None] = mapped_column(Text)
    buyer_email: Mapped[str | None] = mapped_column(String(255))

    # ── Shipping ─────────────────────────────────────────────
    shipping_method: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    shipping_date: Mapped[datetime | None] = mapped_column(DateTime)
    expected_arrival: Mapped[datetime | None] = mapped_column(DateTime)
    tracking_number: Mapped[str | None] = mapped_column(String(100))

    # JSON array of certificate numbers travelling with the shipment
    certificates: Mapped[list | None] = mapped_column(JSON, default=list)
    blockchain_tx_hash: Mapped[str | None] = mapped_column(String(128))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    batch = relationship("ProductBatch")
    exporter = relationship("User")
