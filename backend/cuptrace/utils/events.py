"""Helper for appending supply-chain audit events.

Usage:
    await record_event(
        db, batch_id=batch.id, event_type="STAGE_UPDATE",
        operator_id=user.id, metadata={"from": "farmer", "to": "factory"},
    )

The row is added to the current session and committed with the
enclosing transaction; no extra flush is performed.
"""

from __future__ import annotations

import hashlib
import json
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.models.supply_chain_event import SupplyChainEvent


def compute_event_hash(
    batch_id: str,
    event_type: str,
    operator_id: str,
    timestamp: datetime,
    metadata: dict | None,
) -> str:
    """SHA-256 over the canonical (sorted-key, compact) JSON of the event."""
    canonical = json.dumps(
        {
            "batch_id": batch_id,
            "event_type": event_type,
            "operator_id": operator_id,
            "timestamp": timestamp.isoformat(),
            "metadata": metadata or {},
        },
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


async def record_event(
    db: AsyncSession,
    *,
    batch_id: str,
    event_type: str,
    operator_id: str,
    location: str | None = None,
    description: str | None = None,
    metadata: dict | None = None,
    event_hash: str | None = None,
) -> SupplyChainEvent:
    """Append a SupplyChainEvent to the current DB session.

    ``event_hash`` overrides the computed hash; NFT transfers pass the
    on-chain transaction hash.
    """
    timestamp = datetime.utcnow()
    event = SupplyChainEvent(
        batch_id=batch_id,
        event_type=event_type,
        operator_id=operator_id,
        location=location,
        description=description,
        extra_metadata=metadata or {},
        event_hash=event_hash or compute_event_hash(
            batch_id, event_type, operator_id, timestamp, metadata
        ),
        timestamp=timestamp,
    )
    db.add(event)
    return event
