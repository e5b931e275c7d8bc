import enum
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, model_validator


class ShippingMethod(str, enum.Enum):
    AIR = "air"
    SEA = "sea"
    ROAD = "road"


def _check_dates(shipping: datetime | None, arrival: datetime | None) -> None:
    if shipping is not None and arrival is not None and arrival <= shipping:
        raise ValueError("expected_arrival must be after shipping_date")


class ExportCreate(BaseModel):
    """``exporter_id`` defaults to the caller."""
    batch_id: str
    exporter_id: str | None = None
    buyer_name: str = Field(..., min_length=2, max_length=200)
    buyer_address: str | None = None
    buyer_email: EmailStr | None = None
    shipping_method: ShippingMethod
    shipping_date: datetime | None = None
    expected_arrival: datetime | None = None
    tracking_number: str | None = Field(None, max_length=100)
    certificates: list[str] = []
    blockchain_tx_hash: str | None = Field(None, max_length=128)

    model_config = {"use_enum_values": True}

    @model_validator(mode="after")
    def _arrival_after_shipping(self):
        _check_dates(self.shipping_date, self.expected_arrival)
        return self


class ExportUpdate(BaseModel):
    buyer_name: str | None = Field(None, min_length=2, max_length=200)
    buyer_address: str | None = None
    buyer_email: EmailStr | None = None
    shipping_method: ShippingMethod | None = None
    shipping_date: datetime | None = None
    expected_arrival: datetime | None = None
    tracking_number: str | None = Field(None, max_length=100)
    certificates: list[str] | None = None
    blockchain_tx_hash: str | None = Field(None, max_length=128)

    model_config = {"use_enum_values": True}


class ExportOut(BaseModel):
    id: str
    batch_id: str
    exporter_id: str
    buyer_name: str
    buyer_address: str | None
    buyer_email: str | None
    shipping_method: str
    shipping_date: datetime | None
    expected_arrival: datetime | None
    tracking_number: str | None
    certificates: list[str] | None
    blockchain_tx_hash: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
