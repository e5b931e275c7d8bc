"""BatchIntegrity — snapshot of a batch's key facts frozen at QC approval.

Consumers verifying a batch get the live values compared against this
snapshot, and the snapshot itself re-hashed against ``hash``.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cuptrace.database import Base


class BatchIntegrity(Base):
    __tablename__ = "batch_integrity"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    batch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product_batches.id"), unique=True, nullable=False
    )
    frozen_data: Mapped[dict] = mapped_column(JSON, nullable=False)
    hash: Mapped[str] = mapped_column(String(64), nullable=False)
    approved_by: Mapped[str | None] = mapped_column(String(36))  # user_id
    approved_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    batch = relationship("ProductBatch", back_populates="integrity")
