"""Payments between supply-chain actors.

Endpoints:
    POST   /api/payments/               Record a payment
    GET    /api/payments/               List (filter by batch, payer, payee, type, status)
    GET    /api/payments/{payment_id}   Single payment
    PATCH  /api/payments/{payment_id}   Update (not once completed)
    DELETE /api/payments/{payment_id}   Delete (not once completed)

Non-admins only see and touch payments they are a party to.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.auth.deps import require_permission
from cuptrace.database import get_db
from cuptrace.middleware.exceptions import (
    BusinessLogicError,
    ConflictError,
    PermissionDeniedError,
    ResourceNotFoundError,
)
from cuptrace.models.payment import Payment
from cuptrace.models.user import User, UserRole
from cuptrace.schemas.common import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PaginatedResponse
from cuptrace.schemas.payment import (
    PaymentCreate,
    PaymentOut,
    PaymentStatus,
    PaymentType,
    PaymentUpdate,
)
from cuptrace.services.queries import get_active_batch, get_user
from cuptrace.utils.pagination import fetch_page

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_payment(db: AsyncSession, payment_id: str, user: User) -> Payment:
    payment = (
        await db.execute(select(Payment).where(Payment.id == payment_id))
    ).scalar_one_or_none()
    if not payment:
        raise ResourceNotFoundError("Payment", payment_id)
    if user.role != UserRole.ADMIN and user.id not in (payment.payer_id, payment.payee_id):
        raise PermissionDeniedError("Not a party to this payment")
    return payment


def _ensure_mutable(payment: Payment) -> None:
    if payment.status == PaymentStatus.COMPLETED.value:
        raise ConflictError("Completed payments cannot be changed", error_code="PAYMENT_COMPLETED")


# ── Record payment ───────────────────────────────────────────

@router.post("/", response_model=PaymentOut, status_code=status.HTTP_201_CREATED)
async def create_payment(
    body: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("payment.write")),
):
    payer_id = body.payer_id or user.id
    if payer_id != user.id and user.role != UserRole.ADMIN:
        raise PermissionDeniedError("You can only record payments you make")
    if payer_id == body.payee_id:
        raise BusinessLogicError("Payer and payee must differ", error_code="SAME_PARTY")

    await get_user(db, payer_id, "Payer")
    await get_user(db, body.payee_id, "Payee")
    await get_active_batch(db, body.batch_id)

    payment = Payment(
        **body.model_dump(exclude={"payer_id", "payment_date"}),
        payer_id=payer_id,
        payment_date=body.payment_date or datetime.utcnow(),
    )
    db.add(payment)
    await db.flush()

    logger.info(
        f"Payment {payment.amount} {payment.currency} recorded",
        extra={"payment_id": payment.id, "batch_id": payment.batch_id},
    )
    return payment


# ── List ─────────────────────────────────────────────────────

@router.get("/", response_model=PaginatedResponse[PaymentOut])
async def list_payments(
    batch_id: str | None = Query(None),
    payer_id: str | None = Query(None),
    payee_id: str | None = Query(None),
    payment_type: PaymentType | None = Query(None),
    payment_status: PaymentStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("payment.read")),
):
    stmt = select(Payment)
    if user.role != UserRole.ADMIN:
        stmt = stmt.where(or_(Payment.payer_id == user.id, Payment.payee_id == user.id))
    if batch_id:
        stmt = stmt.where(Payment.batch_id == batch_id)
    if payer_id:
        stmt = stmt.where(Payment.payer_id == payer_id)
    if payee_id:
        stmt = stmt.where(Payment.payee_id == payee_id)
    if payment_type:
        stmt = stmt.where(Payment.payment_type == payment_type.value)
    if payment_status:
        stmt = stmt.where(Payment.status == payment_status.value)

    rows, total = await fetch_page(db, stmt.order_by(Payment.payment_date.desc()), page, limit)
    return PaginatedResponse[PaymentOut].build(
        [PaymentOut.model_validate(p) for p in rows], total, page, limit
    )


@router.get("/{payment_id}", response_model=PaymentOut)
async def get_payment(
    payment_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("payment.read")),
):
    return await _get_payment(db, payment_id, user)


# ── Update / delete ──────────────────────────────────────────

@router.patch("/{payment_id}", response_model=PaymentOut)
async def update_payment(
    payment_id: str,
    body: PaymentUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("payment.write")),
):
    payment = await _get_payment(db, payment_id, user)
    _ensure_mutable(payment)

    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(payment, field, value)

    await db.flush()
    return payment


@router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment(
    payment_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("payment.write")),
):
    payment = await _get_payment(db, payment_id, user)
    _ensure_mutable(payment)
    await db.delete(payment)
    await db.flush()
