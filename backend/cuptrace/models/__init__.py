"""Aggregate model imports for Alembic auto-detection."""

# Actors
from cuptrace.models.user import User, UserRole  # noqa: F401
from cuptrace.models.cooperative import Cooperative  # noqa: F401

# Batches and their audit trail
from cuptrace.models.batch import (  # noqa: F401
    BatchStatus, ProductBatch, ProductType, SupplyChainStage,
)
from cuptrace.models.batch_history import BatchHistory  # noqa: F401
from cuptrace.models.supply_chain_event import SupplyChainEvent  # noqa: F401
from cuptrace.models.batch_integrity import BatchIntegrity  # noqa: F401

# Downstream records
from cuptrace.models.processing_record import ProcessingRecord  # noqa: F401
from cuptrace.models.certificate import Certificate  # noqa: F401
from cuptrace.models.export_record import ExportRecord  # noqa: F401
from cuptrace.models.payment import Payment  # noqa: F401
