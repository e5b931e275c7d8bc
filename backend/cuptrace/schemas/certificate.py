import enum
from datetime import datetime

from pydantic import BaseModel, Field, model_validator


class CertificateType(str, enum.Enum):
    ORGANIC = "organic"
    FAIR_TRADE = "fair_trade"
    QUALITY_GRADE = "quality_grade"
    EXPORT_PERMIT = "export_permit"
    HEALTH_CERTIFICATE = "health_certificate"
    ORIGIN_CERTIFICATE = "origin_certificate"
    OTHER = "other"


def _check_dates(issued: datetime | None, expiry: datetime | None) -> None:
    if issued is not None and expiry is not None and expiry <= issued:
        raise ValueError("expiry_date must be after issued_date")


class CertificateCreate(BaseModel):
    batch_id: str
    certificate_type: CertificateType
    certificate_number: str = Field(..., min_length=3, max_length=100)
    issued_by: str = Field(..., min_length=2, max_length=200)
    issued_date: datetime
    expiry_date: datetime | None = None
    document_url: str | None = Field(None, max_length=500)
    blockchain_tx_hash: str | None = Field(None, max_length=128)

    model_config = {"use_enum_values": True}

    @model_validator(mode="after")
    def _expiry_after_issue(self):
        _check_dates(self.issued_date, self.expiry_date)
        return self


class CertificateUpdate(BaseModel):
    certificate_type: CertificateType | None = None
    certificate_number: str | None = Field(None, min_length=3, max_length=100)
    issued_by: str | None = Field(None, min_length=2, max_length=200)
    issued_date: datetime | None = None
    expiry_date: datetime | None = None
    document_url: str | None = Field(None, max_length=500)
    blockchain_tx_hash: str | None = Field(None, max_length=128)

    model_config = {"use_enum_values": True}


class CertificateOut(BaseModel):
    id: str
    batch_id: str
    certificate_type: str
    certificate_number: str
    issued_by: str
    issued_date: datetime
    expiry_date: datetime | None
    document_url: str | None
    blockchain_tx_hash: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
