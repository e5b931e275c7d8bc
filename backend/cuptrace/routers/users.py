"""User administration (admin only).

Endpoints:
    GET  /api/users/                       List users (filters + search)
    GET  /api/users/{user_id}              Single user
    PATCH /api/users/{user_id}             Update profile / role / cooperative
    POST /api/users/{user_id}/activate     Re-enable an account
    POST /api/users/{user_id}/deactivate   Disable an account and revoke its tokens
    POST /api/users/{user_id}/reset-password
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.auth.deps import require_permission
from cuptrace.auth.password import hash_password
from cuptrace.auth.revocation import TokenRevocation
from cuptrace.database import get_db
from cuptrace.middleware.exceptions import BusinessLogicError, ConflictError
from cuptrace.models.user import User, UserRole
from cuptrace.schemas.common import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    MessageResponse,
    PaginatedResponse,
)
from cuptrace.schemas.user import ResetPasswordRequest, UserSummary, UserUpdate
from cuptrace.services.queries import get_cooperative, get_user
from cuptrace.utils.hashing import generate_farmer_public_hash
from cuptrace.utils.pagination import fetch_page

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[UserSummary])
async def list_users(
    role: UserRole | None = Query(None),
    cooperative_id: str | None = Query(None),
    is_active: bool | None = Query(None),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("users.read")),
):
    stmt = select(User)
    if role:
        stmt = stmt.where(User.role == role)
    if cooperative_id:
        stmt = stmt.where(User.cooperative_id == cooperative_id)
    if is_active is not None:
        stmt = stmt.where(User.is_active == is_active)
    if search:
        q = f"%{search}%"
        stmt = stmt.where(or_(User.email.ilike(q), User.full_name.ilike(q)))

    rows, total = await fetch_page(db, stmt.order_by(User.created_at.desc()), page, limit)
    return PaginatedResponse[UserSummary].build(
        [UserSummary.model_validate(u) for u in rows], total, page, limit
    )


@router.get("/{user_id}", response_model=UserSummary)
async def get_user_detail(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("users.read")),
):
    return await get_user(db, user_id)


@router.patch("/{user_id}", response_model=UserSummary)
async def update_user(
    user_id: str,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_permission("users.write")),
):
    user = await get_user(db, user_id)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("role") is not None and user_id == admin.id:
        raise BusinessLogicError("You cannot change your own role")
    role_changed = changes.get("role") is not None and changes["role"] != user.role

    if changes.get("email") and changes["email"] != user.email:
        taken = await db.execute(select(User.id).where(User.email == changes["email"]))
        if taken.first():
            raise ConflictError("Email already registered", error_code="EMAIL_TAKEN")
    if changes.get("cooperative_id"):
        await get_cooperative(db, changes["cooperative_id"])

    for field, value in changes.items():
        setattr(user, field, value)

    if user.role == UserRole.FARMER and not user.public_hash:
        user.public_hash = generate_farmer_public_hash(user.id)

    await db.flush()

    # Permissions are embedded in the JWT; tokens from the old role must die
    if role_changed:
        await TokenRevocation.revoke_all_user_tokens(user.id)
        logger.info(
            f"Changed role of {user.email} to {user.role.value}",
            extra={"user_id": user.id, "admin_id": admin.id},
        )
    return user


@router.post("/{user_id}/activate", response_model=UserSummary)
async def activate_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("users.write")),
):
    user = await get_user(db, user_id)
    user.is_active = True
    await db.flush()
    return user


@router.post("/{user_id}/deactivate", response_model=UserSummary)
async def deactivate_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_permission("users.write")),
):
    if user_id == admin.id:
        raise BusinessLogicError("You cannot deactivate your own account")

    user = await get_user(db, user_id)
    user.is_active = False
    await db.flush()
    await TokenRevocation.revoke_all_user_tokens(user.id)

    logger.info(f"Deactivated user {user.email}", extra={"user_id": user.id, "admin_id": admin.id})
    return user


@router.post("/{user_id}/reset-password", response_model=MessageResponse)
async def reset_password(
    user_id: str,
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_permission("users.write")),
):
    user = await get_user(db, user_id)
    user.hashed_password = hash_password(body.new_password)
    await db.flush()
    await TokenRevocation.revoke_all_user_tokens(user.id)

    logger.info("Password reset by admin", extra={"user_id": user.id, "admin_id": admin.id})
    return MessageResponse(message="Password reset")
