import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cuptrace.database import Base


class UserRole(str, enum.Enum):
    FARMER = "farmer"
    AGENT = "agent"
    WASHING_STATION = "washing_station"
    FACTORY = "factory"
    EXPORTER = "exporter"
    IMPORTER = "importer"
    RETAILER = "retailer"
    ADMIN = "admin"
    QC = "qc"


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20))
    role: Mapped[UserRole] = mapped_column(SAEnum(UserRole), default=UserRole.FARMER)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Farmers (and the agents registering them) belong to a cooperative
    cooperative_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("cooperatives.id"), index=True
    )

    # F-xxxxxxxxxxxx handle shown to consumers instead of the farmer's name
    public_hash: Mapped[str | None] = mapped_column(String(20), unique=True, index=True)

    # ── Profile ──────────────────────────────────────────────
    address: Mapped[str | None] = mapped_column(String(200))
    city: Mapped[str | None] = mapped_column(String(100))
    province: Mapped[str | None] = mapped_column(String(100))
    country: Mapped[str | None] = mapped_column(String(100))
    registration_number: Mapped[str | None] = mapped_column(String(50))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    cooperative = relationship("Cooperative", back_populates="farmers")
