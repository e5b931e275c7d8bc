"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_current_user        → decode JWT, load user from DB, return User
  require_role(...)       → restrict to specific roles
  require_permission(...) → restrict to specific granular permissions
"""

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.auth.jwt import decode_token
from cuptrace.auth.permissions import has_permission
from cuptrace.auth.revocation import TokenRevocation
from cuptrace.database import get_db
from cuptrace.middleware.exceptions import AuthenticationError, PermissionDeniedError
from cuptrace.models.user import User, UserRole

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# ── Core user dependency ────────────────────────────────────

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the JWT, load the user, and return it.

    Also stashes the decoded payload on the user object as `_token_payload`
    and the raw token as `_token` so downstream code (permission checks,
    logout) can read them without re-decoding.
    """
    payload = decode_token(token)
    user_id: str | None = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise AuthenticationError("Invalid or expired token")

    if await TokenRevocation.is_revoked(token):
        raise AuthenticationError("Token has been revoked")

    if await TokenRevocation.is_user_revoked(user_id, payload.get("iat_ts", 0.0)):
        raise AuthenticationError("Session expired. Please log in again.")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    user._token_payload = payload  # type: ignore[attr-defined]
    user._token = token  # type: ignore[attr-defined]
    return user


# ── Role-based access control ───────────────────────────────

def require_role(*roles: UserRole):
    """Dependency factory — restrict to one or more roles.

    Usage:
        @router.post("/{batch_id}/approve")
        async def approve(user: User = Depends(require_role(UserRole.QC, UserRole.ADMIN))):
            ...
    """
    async def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise PermissionDeniedError(
                f"Requires role: {', '.join(r.value for r in roles)}"
            )
        return user

    return _check


# ── Permission-based access control ─────────────────────────

def require_permission(*perms: str):
    """Dependency factory — restrict to users who hold ALL listed permissions.

    Reads permissions from the JWT claims (embedded at login), so this is
    a zero-DB-hit check for the hot path.
    """
    async def _check(user: User = Depends(get_current_user)) -> User:
        payload: dict = getattr(user, "_token_payload", {})
        user_perms: list[str] = payload.get("permissions", [])

        missing = [p for p in perms if not has_permission(user_perms, p)]
        if missing:
            raise PermissionDeniedError(f"Missing permissions: {', '.join(missing)}")
        return user

    return _check
