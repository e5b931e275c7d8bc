"""Auth routes: register, login, refresh, logout, profile, password.

Route overview:
  POST /register         — self-registration for supply-chain actors
  POST /login            — email + password login
  POST /refresh          — exchange a refresh token for a new token pair
  POST /logout           — revoke the current access (and refresh) token
  GET  /me               — current user profile + permissions
  POST /change-password  — change own password, revoking older sessions
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.auth.deps import get_current_user
from cuptrace.auth.jwt import create_access_token, create_refresh_token, decode_token
from cuptrace.auth.password import hash_password, verify_password
from cuptrace.auth.permissions import resolve_permissions
from cuptrace.auth.revocation import TokenRevocation
from cuptrace.database import get_db
from cuptrace.middleware.exceptions import (
    AuthenticationError,
    BusinessLogicError,
    ConflictError,
    PermissionDeniedError,
)
from cuptrace.models.user import User, UserRole
from cuptrace.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
)
from cuptrace.schemas.common import MessageResponse
from cuptrace.schemas.user import UserOut
from cuptrace.services.queries import get_cooperative
from cuptrace.utils.hashing import generate_farmer_public_hash

logger = logging.getLogger(__name__)

router = APIRouter()

# Roles that must be provisioned by an admin
_PRIVILEGED_ROLES = {UserRole.ADMIN, UserRole.QC}


# ── Helpers ──────────────────────────────────────────────────

def _build_user_out(user: User, permissions: list[str]) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        phone=user.phone,
        role=user.role,
        is_active=user.is_active,
        cooperative_id=user.cooperative_id,
        public_hash=user.public_hash,
        permissions=permissions,
    )


def _build_token_response(user: User) -> TokenResponse:
    permissions = resolve_permissions(user.role.value)
    return TokenResponse(
        access_token=create_access_token(
            user_id=user.id,
            role=user.role.value,
            permissions=permissions,
        ),
        refresh_token=create_refresh_token(user_id=user.id, role=user.role.value),
        user=_build_user_out(user, permissions),
    )


# ── POST /register ──────────────────────────────────────────

@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    if body.role in _PRIVILEGED_ROLES:
        raise PermissionDeniedError(f"Role {body.role.value} cannot self-register")

    existing = await db.execute(select(User).where(User.email == body.email))
    if existing.scalar_one_or_none():
        raise ConflictError("Email already registered", error_code="EMAIL_TAKEN")

    if body.cooperative_id:
        await get_cooperative(db, body.cooperative_id)

    user = User(
        email=body.email,
        hashed_password=hash_password(body.password),
        full_name=body.full_name,
        phone=body.phone,
        role=body.role,
        cooperative_id=body.cooperative_id,
        address=body.address,
        city=body.city,
        province=body.province,
        country=body.country,
        registration_number=body.registration_number,
    )
    db.add(user)
    await db.flush()  # populate user.id

    if user.role == UserRole.FARMER:
        user.public_hash = generate_farmer_public_hash(user.id)
        await db.flush()

    logger.info(f"Registered {user.role.value} {user.email}", extra={"user_id": user.id})
    return _build_token_response(user)


# ── POST /login ──────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(body.password, user.hashed_password):
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        raise PermissionDeniedError("Account deactivated")

    return _build_token_response(user)


# ── POST /refresh ───────────────────────────────────────────

@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Rotate tokens: the presented refresh token is revoked."""
    payload = decode_token(body.refresh_token)
    user_id = payload.get("sub")
    if not user_id or payload.get("type") != "refresh":
        raise AuthenticationError("Invalid or expired refresh token")

    if await TokenRevocation.is_revoked(body.refresh_token):
        raise AuthenticationError("Refresh token has been revoked")
    if await TokenRevocation.is_user_revoked(user_id, payload.get("iat_ts", 0.0)):
        raise AuthenticationError("Session expired. Please log in again.")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    await TokenRevocation.revoke_token(body.refresh_token, payload["exp"])
    return _build_token_response(user)


# ── POST /logout ────────────────────────────────────────────

@router.post("/logout", response_model=MessageResponse)
async def logout(
    body: RefreshRequest | None = None,
    user: User = Depends(get_current_user),
):
    payload: dict = getattr(user, "_token_payload", {})
    await TokenRevocation.revoke_token(user._token, payload["exp"])  # type: ignore[attr-defined]

    if body:
        refresh_payload = decode_token(body.refresh_token)
        if refresh_payload.get("sub") == user.id:
            await TokenRevocation.revoke_token(body.refresh_token, refresh_payload["exp"])

    return MessageResponse(message="Logged out")


# ── GET /me ──────────────────────────────────────────────────

@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)):
    return _build_user_out(user, resolve_permissions(user.role.value))


# ── POST /change-password ───────────────────────────────────

@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Change own password.  Every token issued before now stops working."""
    if not verify_password(body.current_password, user.hashed_password):
        raise BusinessLogicError("Current password is incorrect", error_code="INVALID_PASSWORD")
    if body.current_password == body.new_password:
        raise BusinessLogicError(
            "New password must differ from the current one", error_code="PASSWORD_UNCHANGED"
        )

    user.hashed_password = hash_password(body.new_password)
    await db.flush()
    await TokenRevocation.revoke_all_user_tokens(user.id)

    logger.info("Password changed", extra={"user_id": user.id})
    return MessageResponse(message="Password changed. Please log in again.")
