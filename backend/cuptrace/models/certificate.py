import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cuptrace.database import Base

CERTIFICATE_TYPES = (
    "organic",
    "fair_trade",
    "quality_grade",
    "export_permit",
    "health_certificate",
    "origin_certificate",
    "other",
)


class Certificate(Base):
    __tablename__ = "certificates"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    batch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product_batches.id"), nullable=False, index=True
    )
    certificate_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    certificate_number: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False, index=True
    )
    # Issuing body, e.g. "NAEB" or "Rainforest Alliance"
    issued_by: Mapped[str] = mapped_column(String(200), nullable=False)
    issued_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    expiry_date: Mapped[datetime | None] = mapped_column(DateTime)
    document_url: Mapped[str | None] = mapped_column(String(500))
    blockchain_tx_hash: Mapped[str | None] = mapped_column(String(128))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    batch = relationship("ProductBatch", back_populates="certificates")
