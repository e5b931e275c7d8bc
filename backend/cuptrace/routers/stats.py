"""Role dashboards: batch counts and payment totals.

Endpoints:
    GET /api/stats/                 Platform overview (admin)
    GET /api/stats/farmer           The caller's own batches and payments
    GET /api/stats/washing-station  Batches routed through the caller
    GET /api/stats/factory          Approved pipeline + the caller's custody
    GET /api/stats/agent            The agent's cooperative

Soft-deleted batches are never counted.
"""

from datetime import datetime, time

from fastapi import APIRouter, Depends, Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.auth.deps import require_role
from cuptrace.database import get_db
from cuptrace.middleware.exceptions import BusinessLogicError
from cuptrace.models.batch import BatchStatus, ProductBatch, SupplyChainStage
from cuptrace.models.cooperative import Cooperative
from cuptrace.models.payment import Payment
from cuptrace.models.user import User, UserRole
from cuptrace.schemas.payment import PaymentStatus
from cuptrace.schemas.stats import (
    AgentStats,
    DashboardStats,
    FactoryStats,
    FarmerStats,
    WashingStationStats,
)

router = APIRouter()

CACHE_CONTROL = "private, max-age=60"

# Statuses a batch can only reach after QC approval
_APPROVED_OR_LATER = {
    BatchStatus.APPROVED.value,
    BatchStatus.PROCESSING.value,
    BatchStatus.READY_FOR_EXPORT.value,
    BatchStatus.EXPORTED.value,
    BatchStatus.DELIVERED.value,
}

_live = ProductBatch.deleted_at.is_(None)


async def _count_batches(db: AsyncSession, *conditions) -> int:
    return await db.scalar(
        select(func.count(ProductBatch.id)).where(_live, *conditions)
    ) or 0


async def _grouped(db: AsyncSession, column, *conditions) -> dict[str, int]:
    """Count live batches grouped by ``column``."""
    result = await db.execute(
        select(column, func.count(ProductBatch.id))
        .where(_live, *conditions)
        .group_by(column)
    )
    return {key: count for key, count in result.all()}


# ── Admin ────────────────────────────────────────────────────

@router.get("/", response_model=DashboardStats)
async def dashboard_stats(
    response: Response,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_role(UserRole.ADMIN)),
):
    by_status = await _grouped(db, ProductBatch.status)
    by_stage = await _grouped(db, ProductBatch.current_stage)

    response.headers["Cache-Control"] = CACHE_CONTROL
    return DashboardStats(
        total_users=await db.scalar(select(func.count(User.id))) or 0,
        total_cooperatives=await db.scalar(select(func.count(Cooperative.id))) or 0,
        total_batches=sum(by_status.values()),
        pending_batches=by_status.get(BatchStatus.PENDING.value, 0),
        by_status=by_status,
        by_stage=by_stage,
    )


# ── Per role ─────────────────────────────────────────────────

@router.get("/farmer", response_model=FarmerStats)
async def farmer_stats(
    response: Response,
    db: AsyncSession = Depends(get_db),
    farmer: User = Depends(require_role(UserRole.FARMER)),
):
    result = await db.execute(
        select(ProductBatch.status, ProductBatch.current_stage, func.count(ProductBatch.id))
        .where(_live, ProductBatch.farmer_id == farmer.id)
        .group_by(ProductBatch.status, ProductBatch.current_stage)
    )
    total = pending = in_transit = completed = 0
    for status, stage, count in result.all():
        total += count
        if status == BatchStatus.PENDING.value:
            pending += count
        if status == BatchStatus.DELIVERED.value:
            completed += count
        if stage != SupplyChainStage.FARMER.value:
            in_transit += count

    paid = await db.scalar(
        select(func.sum(Payment.amount)).where(
            Payment.payee_id == farmer.id,
            Payment.status == PaymentStatus.COMPLETED.value,
        )
    )

    response.headers["Cache-Control"] = CACHE_CONTROL
    return FarmerStats(
        total_batches=total,
        pending_batches=pending,
        in_transit_batches=in_transit,
        completed_batches=completed,
        total_payments=float(paid or 0),
    )


@router.get("/washing-station", response_model=WashingStationStats)
async def washing_station_stats(
    response: Response,
    db: AsyncSession = Depends(get_db),
    station: User = Depends(require_role(UserRole.WASHING_STATION)),
):
    mine = ProductBatch.washing_station_id == station.id
    by_status = await _grouped(db, ProductBatch.status, mine)

    response.headers["Cache-Control"] = CACHE_CONTROL
    return WashingStationStats(
        total_batches=sum(by_status.values()),
        pending_batches=by_status.get(BatchStatus.PENDING.value, 0),
        processing_batches=by_status.get(BatchStatus.PROCESSING.value, 0),
        inventory_batches=await _count_batches(
            db, mine, ProductBatch.current_stage == SupplyChainStage.WASHING_STATION.value
        ),
    )


@router.get("/factory", response_model=FactoryStats)
async def factory_stats(
    response: Response,
    db: AsyncSession = Depends(get_db),
    factory: User = Depends(require_role(UserRole.FACTORY)),
):
    approved = ProductBatch.status == BatchStatus.APPROVED.value

    response.headers["Cache-Control"] = CACHE_CONTROL
    return FactoryStats(
        ready_to_process=await _count_batches(db, approved),
        with_qr_codes=await _count_batches(db, approved, ProductBatch.qr_code.is_not(None)),
        on_chain=await _count_batches(
            db, approved, ProductBatch.blockchain_tx_hash.is_not(None)
        ),
        in_custody=await _count_batches(
            db,
            ProductBatch.factory_id == factory.id,
            ProductBatch.current_stage == SupplyChainStage.FACTORY.value,
        ),
    )


@router.get("/agent", response_model=AgentStats)
async def agent_stats(
    response: Response,
    db: AsyncSession = Depends(get_db),
    agent: User = Depends(require_role(UserRole.AGENT)),
):
    if not agent.cooperative_id:
        raise BusinessLogicError(
            "Agent is not assigned to a cooperative", error_code="NO_COOPERATIVE"
        )

    in_coop = ProductBatch.cooperative_id == agent.cooperative_id
    by_status = await _grouped(db, ProductBatch.status, in_coop)
    start_of_day = datetime.combine(datetime.utcnow().date(), time.min)

    response.headers["Cache-Control"] = CACHE_CONTROL
    return AgentStats(
        total_batches=sum(by_status.values()),
        pending_batches=by_status.get(BatchStatus.PENDING.value, 0),
        approved_batches=sum(
            count for status, count in by_status.items() if status in _APPROVED_OR_LATER
        ),
        rejected_batches=by_status.get(BatchStatus.REJECTED.value, 0),
        today_batches=await _count_batches(
            db, in_coop, ProductBatch.created_at >= start_of_day
        ),
    )
