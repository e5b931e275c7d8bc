"""Payment — money moving between two actors against a batch.

Lifecycle:  pending → processing → completed | failed | cancelled

Completed payments are final: they can be neither edited nor deleted.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cuptrace.database import Base


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    # ── Links ────────────────────────────────────────────────
    batch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product_batches.id"), nullable=False, index=True
    )
    payer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    payee_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )

    # ── Amount ───────────────────────────────────────────────
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="RWF")

    # harvest_payment | processing_payment | export_payment | quality_bonus | other
    payment_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    # pending | processing | completed | failed | cancelled
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    payment_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    # Mobile-money / bank reference
    transaction_ref: Mapped[str | None] = mapped_column(String(100))
    notes: Mapped[str | None] = mapped_column(Text)
    blockchain_tx_hash: Mapped[str | None] = mapped_column(String(128))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    batch = relationship("ProductBatch")
    payer = relationship("User", foreign_keys=[payer_id])
    payee = relationship("User", foreign_keys=[payee_id])
