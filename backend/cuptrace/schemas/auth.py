from pydantic import BaseModel, EmailStr, Field

from cuptrace.models.user import UserRole
from cuptrace.schemas.user import UserOut


# ── Self-registration ────────────────────────────────────────

class RegisterRequest(BaseModel):
    """Supply-chain actors register themselves; admin and qc are provisioned."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str = Field(..., min_length=2, max_length=100)
    phone: str | None = Field(None, max_length=20)
    role: UserRole = UserRole.FARMER
    cooperative_id: str | None = None
    address: str | None = None
    city: str | None = None
    province: str | None = None
    country: str | None = None
    registration_number: str | None = None


# ── Login ────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserOut


# ── Token refresh ────────────────────────────────────────────

class RefreshRequest(BaseModel):
    refresh_token: str


# ── Password ─────────────────────────────────────────────────

class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=128)
