"""Batch certificates (organic, fair trade, export permits, ...).

Endpoints:
    POST   /api/certificates/                     Issue a certificate
    GET    /api/certificates/                     List (filter by batch, type)
    GET    /api/certificates/number/{number}      Look up by certificate number
    GET    /api/certificates/batch/{batch_id}     All certificates of a batch
    GET    /api/certificates/{certificate_id}     Single certificate
    PATCH  /api/certificates/{certificate_id}     Update
    DELETE /api/certificates/{certificate_id}     Delete
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.auth.deps import require_permission
from cuptrace.database import get_db
from cuptrace.middleware.exceptions import (
    BusinessLogicError,
    ConflictError,
    ResourceNotFoundError,
)
from cuptrace.models.certificate import Certificate
from cuptrace.models.user import User
from cuptrace.schemas.certificate import (
    CertificateCreate,
    CertificateOut,
    CertificateType,
    CertificateUpdate,
)
from cuptrace.schemas.common import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PaginatedResponse
from cuptrace.services.queries import get_active_batch
from cuptrace.utils.events import record_event
from cuptrace.utils.pagination import fetch_page

router = APIRouter()


async def _get_certificate(db: AsyncSession, certificate_id: str) -> Certificate:
    cert = (
        await db.execute(select(Certificate).where(Certificate.id == certificate_id))
    ).scalar_one_or_none()
    if not cert:
        raise ResourceNotFoundError("Certificate", certificate_id)
    return cert


async def _ensure_number_free(db: AsyncSession, number: str, certificate_id: str | None = None) -> None:
    stmt = select(Certificate.id).where(Certificate.certificate_number == number)
    if certificate_id:
        stmt = stmt.where(Certificate.id != certificate_id)
    if (await db.execute(stmt)).first():
        raise ConflictError(
            f"Certificate number already exists: {number}",
            error_code="DUPLICATE_CERTIFICATE_NUMBER",
        )


# ── Issue ────────────────────────────────────────────────────

@router.post("/", response_model=CertificateOut, status_code=status.HTTP_201_CREATED)
async def create_certificate(
    body: CertificateCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("certificate.write")),
):
    batch = await get_active_batch(db, body.batch_id)
    await _ensure_number_free(db, body.certificate_number)

    cert = Certificate(**body.model_dump())
    db.add(cert)
    await db.flush()

    await record_event(
        db,
        batch_id=batch.id,
        event_type="CERTIFIED",
        operator_id=user.id,
        description=f"{body.certificate_type} certificate {body.certificate_number}",
        metadata={
            "certificate_id": cert.id,
            "certificate_type": body.certificate_type,
            "certificate_number": body.certificate_number,
            "issued_by": body.issued_by,
        },
    )
    await db.flush()
    return cert


# ── Read ─────────────────────────────────────────────────────

@router.get("/", response_model=PaginatedResponse[CertificateOut])
async def list_certificates(
    batch_id: str | None = Query(None),
    certificate_type: CertificateType | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("certificate.read")),
):
    stmt = select(Certificate)
    if batch_id:
        stmt = stmt.where(Certificate.batch_id == batch_id)
    if certificate_type:
        stmt = stmt.where(Certificate.certificate_type == certificate_type.value)

    rows, total = await fetch_page(db, stmt.order_by(Certificate.issued_date.desc()), page, limit)
    return PaginatedResponse[CertificateOut].build(
        [CertificateOut.model_validate(c) for c in rows], total, page, limit
    )


@router.get("/number/{certificate_number}", response_model=CertificateOut)
async def get_certificate_by_number(
    certificate_number: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("certificate.read")),
):
    cert = (
        await db.execute(
            select(Certificate).where(Certificate.certificate_number == certificate_number)
        )
    ).scalar_one_or_none()
    if not cert:
        raise ResourceNotFoundError("Certificate", certificate_number)
    return cert


@router.get("/batch/{batch_id}", response_model=list[CertificateOut])
async def list_batch_certificates(
    batch_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("certificate.read")),
):
    await get_active_batch(db, batch_id)
    result = await db.execute(
        select(Certificate)
        .where(Certificate.batch_id == batch_id)
        .order_by(Certificate.issued_date.desc())
    )
    return result.scalars().all()


@router.get("/{certificate_id}", response_model=CertificateOut)
async def get_certificate(
    certificate_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("certificate.read")),
):
    return await _get_certificate(db, certificate_id)


# ── Update / delete ──────────────────────────────────────────

@router.patch("/{certificate_id}", response_model=CertificateOut)
async def update_certificate(
    certificate_id: str,
    body: CertificateUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("certificate.write")),
):
    cert = await _get_certificate(db, certificate_id)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("certificate_number"):
        await _ensure_number_free(db, changes["certificate_number"], cert.id)

    issued = changes.get("issued_date", cert.issued_date)
    expiry = changes.get("expiry_date", cert.expiry_date)
    if issued is not None and expiry is not None and expiry <= issued:
        raise BusinessLogicError(
            "expiry_date must be after issued_date", error_code="INVALID_DATES"
        )

    for field, value in changes.items():
        setattr(cert, field, value)

    await db.flush()
    return cert


@router.delete("/{certificate_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_certificate(
    certificate_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("certificate.write")),
):
    cert = await _get_certificate(db, certificate_id)
    await db.delete(cert)
    await db.flush()
