"""ProcessingRecord — one processing step applied to a batch.

Washing, drying, hulling, roasting for coffee; withering, rolling,
oxidation, firing for tea.  ``quantity_out`` never exceeds
``quantity_in``: processing only loses mass.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cuptrace.database import Base


class ProcessingRecord(Base):
    __tablename__ = "processing_records"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    batch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product_batches.id"), nullable=False, index=True
    )
    stage: Mapped[str] = mapped_column(String(30), nullable=False)
    processing_type: Mapped[str | None] = mapped_column(String(50))
    notes: Mapped[str | None] = mapped_column(Text)

    # ── Measurements ─────────────────────────────────────────
    quality_score: Mapped[float | None] = mapped_column(Float)  # 0-100
    quantity_in: Mapped[float | None] = mapped_column(Float)  # kg
    quantity_out: Mapped[float | None] = mapped_column(Float)  # kg

    processed_by: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    processed_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    blockchain_tx_hash: Mapped[str | None] = mapped_column(String(128))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    batch = relationship("ProductBatch")
    processor = relationship("User")
