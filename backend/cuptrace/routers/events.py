"""Supply-chain audit events.

Endpoints:
    POST /api/events/                  Record a free-form operator event
    GET  /api/events/batch/{batch_id}  A batch's events, newest first
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.auth.deps import require_permission
from cuptrace.database import get_db
from cuptrace.models.supply_chain_event import SupplyChainEvent
from cuptrace.models.user import User
from cuptrace.schemas.event import EventCreate, EventOut
from cuptrace.services.queries import get_active_batch
from cuptrace.utils.events import record_event

router = APIRouter()


@router.post("/", response_model=EventOut, status_code=status.HTTP_201_CREATED)
async def create_event(
    body: EventCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("event.write")),
):
    await get_active_batch(db, body.batch_id)

    event = await record_event(
        db,
        batch_id=body.batch_id,
        event_type=body.event_type,
        operator_id=user.id,
        location=body.location,
        description=body.description,
        metadata=body.metadata,
    )
    await db.flush()
    return event


@router.get("/batch/{batch_id}", response_model=list[EventOut])
async def list_batch_events(
    batch_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("event.read")),
):
    await get_active_batch(db, batch_id)

    result = await db.execute(
        select(SupplyChainEvent)
        .where(SupplyChainEvent.batch_id == batch_id)
        .order_by(SupplyChainEvent.timestamp.desc())
    )
    return result.scalars().all()
