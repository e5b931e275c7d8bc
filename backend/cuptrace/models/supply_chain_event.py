"""SupplyChainEvent — append-only audit log for a batch.

Covers creation, QC decisions, stage updates, custody (NFT) transfers,
processing, certification, export, and free-form operator events.

event_hash is the SHA-256 of the canonical event payload, or the
on-chain transaction hash for NFT transfers.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cuptrace.database import Base


class SupplyChainEvent(Base):
    __tablename__ = "supply_chain_events"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    batch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product_batches.id"), nullable=False, index=True
    )

    # BATCH_CREATED | BATCH_APPROVED | BATCH_REJECTED | STAGE_UPDATE |
    # NFT_TRANSFER | PROCESSING | CERTIFIED | EXPORTED | <operator-defined>
    event_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    operator_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    location: Mapped[str | None] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text)
    extra_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, default=dict)
    event_hash: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False, index=True
    )

    operator = relationship("User")
