"""BatchHistory — one row per stage transition of a batch.

Written by the stage-update and custody-transfer flows in the same
transaction as the batch update, so the history always matches the
batch's current stage.  Rows are never edited.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cuptrace.database import Base


class BatchHistory(Base):
    __tablename__ = "batch_history"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    batch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product_batches.id"), nullable=False, index=True
    )
    stage: Mapped[str] = mapped_column(String(30), nullable=False)
    changed_by: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    blockchain_tx_hash: Mapped[str | None] = mapped_column(String(128))

    # ── Observations at hand-over ────────────────────────────
    notes: Mapped[str | None] = mapped_column(Text)
    quantity: Mapped[float | None] = mapped_column(Float)
    quality: Mapped[str | None] = mapped_column(String(100))
    location: Mapped[str | None] = mapped_column(String(200))
    extra_metadata: Mapped[dict | None] = mapped_column("metadata", JSON)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False, index=True
    )

    batch = relationship("ProductBatch", back_populates="history")
    user = relationship("User")
