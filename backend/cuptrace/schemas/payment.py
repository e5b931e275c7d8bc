import enum
from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class PaymentType(str, enum.Enum):
    HARVEST_PAYMENT = "harvest_payment"
    PROCESSING_PAYMENT = "processing_payment"
    EXPORT_PAYMENT = "export_payment"
    QUALITY_BONUS = "quality_bonus"
    OTHER = "other"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


def _upper_currency(value: str | None) -> str | None:
    return value.upper() if value else value


class PaymentCreate(BaseModel):
    """``payer_id`` defaults to the caller."""
    batch_id: str
    payer_id: str | None = None
    payee_id: str
    amount: float = Field(..., gt=0)
    currency: str = Field("RWF", pattern=r"^[A-Za-z]{3}$")
    payment_type: PaymentType
    status: PaymentStatus = Field(PaymentStatus.PENDING, validate_default=True)
    payment_date: datetime | None = None
    transaction_ref: str | None = Field(None, max_length=100)
    notes: str | None = None
    blockchain_tx_hash: str | None = Field(None, max_length=128)

    model_config = {"use_enum_values": True}

    @field_validator("currency")
    @classmethod
    def _currency_upper(cls, value):
        return _upper_currency(value)


class PaymentUpdate(BaseModel):
    amount: float | None = Field(None, gt=0)
    currency: str | None = Field(None, pattern=r"^[A-Za-z]{3}$")
    status: PaymentStatus | None = None
    payment_date: datetime | None = None
    transaction_ref: str | None = Field(None, max_length=100)
    notes: str | None = None
    blockchain_tx_hash: str | None = Field(None, max_length=128)

    model_config = {"use_enum_values": True}

    @field_validator("currency")
    @classmethod
    def _currency_upper(cls, value):
        return _upper_currency(value)


class PaymentOut(BaseModel):
    id: str
    batch_id: str
    payer_id: str
    payee_id: str
    amount: float
    currency: str
    payment_type: str
    status: str
    payment_date: datetime
    transaction_ref: str | None
    notes: str | None
    blockchain_tx_hash: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
