from pydantic import BaseModel


class DashboardStats(BaseModel):
    total_users: int
    total_cooperatives: int
    total_batches: int
    pending_batches: int
    by_status: dict[str, int]
    by_stage: dict[str, int]


class FarmerStats(BaseModel):
    total_batches: int
    pending_batches: int
    # Left the farm (stage past "farmer")
    in_transit_batches: int
    completed_batches: int
    # Sum of completed payments received
    total_payments: float


class WashingStationStats(BaseModel):
    total_batches: int
    pending_batches: int
    processing_batches: int
    # Still held at the washing station
    inventory_batches: int


class FactoryStats(BaseModel):
    ready_to_process: int
    with_qr_codes: int
    on_chain: int
    in_custody: int


class AgentStats(BaseModel):
    total_batches: int
    pending_batches: int
    approved_batches: int
    rejected_batches: int
    today_batches: int
