from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from cuptrace.models.user import UserRole
from cuptrace.utils.hashing import mask_phone


class UserOut(BaseModel):
    id: str
    email: str
    full_name: str
    phone: str | None
    role: UserRole
    is_active: bool
    cooperative_id: str | None
    public_hash: str | None
    permissions: list[str] = []

    model_config = {"from_attributes": True}


class UserSummary(BaseModel):
    """Admin user listing; includes profile fields."""
    id: str
    email: str
    full_name: str
    phone: str | None
    role: UserRole
    is_active: bool
    cooperative_id: str | None
    public_hash: str | None
    address: str | None
    city: str | None
    province: str | None
    country: str | None
    registration_number: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class FarmerSummary(BaseModel):
    """Cooperative member listing; the phone number is masked."""
    id: str
    full_name: str
    phone: str | None
    public_hash: str | None
    is_active: bool

    model_config = {"from_attributes": True}

    @field_validator("phone")
    @classmethod
    def _masked_phone(cls, value):
        return mask_phone(value)


class UserUpdate(BaseModel):
    email: EmailStr | None = None
    full_name: str | None = Field(None, min_length=2, max_length=100)
    phone: str | None = Field(None, max_length=20)
    role: UserRole | None = None
    cooperative_id: str | None = None
    address: str | None = None
    city: str | None = None
    province: str | None = None
    country: str | None = None
    registration_number: str | None = None


class ResetPasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=8, max_length=128)
