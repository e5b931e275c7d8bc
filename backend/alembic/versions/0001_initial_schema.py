"""Initial schema — actors, batches, audit trail and downstream records.

Revision ID: 0001
Revises: (none)
Create Date: 2026-02-18
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa

USER_ROLES = (
    "FARMER", "AGENT", "WASHING_STATION", "FACTORY", "EXPORTER",
    "IMPORTER", "RETAILER", "ADMIN", "QC",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # ── Actors ───────────────────────────────────────────────

    op.create_table(
        "cooperatives",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("location", sa.String(200), nullable=False),
        sa.Column("description", sa.Text()),
        *_timestamps(),
    )
    op.create_index("ix_cooperatives_name", "cooperatives", ["name"], unique=True)
    op.create_index("ix_cooperatives_created_at", "cooperatives", ["created_at"])

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(20)),
        sa.Column("role", sa.Enum(*USER_ROLES, name="userrole"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("cooperative_id", sa.String(36), sa.ForeignKey("cooperatives.id")),
        sa.Column("public_hash", sa.String(20)),
        sa.Column("address", sa.String(200)),
        sa.Column("city", sa.String(100)),
        sa.Column("province", sa.String(100)),
        sa.Column("country", sa.String(100)),
        sa.Column("registration_number", sa.String(50)),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_public_hash", "users", ["public_hash"], unique=True)
    op.create_index("ix_users_cooperative_id", "users", ["cooperative_id"])

    # ── Batches ──────────────────────────────────────────────

    op.create_table(
        "product_batches",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("lot_id", sa.String(50)),
        sa.Column("qr_code", sa.String(80)),
        sa.Column("public_trace_hash", sa.String(20)),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("status", sa.String(30), server_default="pending"),
        sa.Column("current_stage", sa.String(30), server_default="farmer"),
        sa.Column("origin_location", sa.String(255), nullable=False),
        sa.Column("region", sa.String(100)),
        sa.Column("district", sa.String(100)),
        sa.Column("sector", sa.String(100)),
        sa.Column("cell", sa.String(100)),
        sa.Column("village", sa.String(100)),
        sa.Column("coordinates", sa.String(50)),
        sa.Column("quantity", sa.Float()),
        sa.Column("quality", sa.String(100)),
        sa.Column("moisture", sa.Float()),
        sa.Column("grade", sa.String(50)),
        sa.Column("harvest_date", sa.DateTime()),
        sa.Column("processing_type", sa.String(50)),
        sa.Column("tea_type", sa.String(50)),
        sa.Column("farmer_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("cooperative_id", sa.String(36), sa.ForeignKey("cooperatives.id")),
        sa.Column("washing_station_id", sa.String(36), sa.ForeignKey("users.id")),
        sa.Column("factory_id", sa.String(36), sa.ForeignKey("users.id")),
        sa.Column("exporter_id", sa.String(36), sa.ForeignKey("users.id")),
        sa.Column("importer_id", sa.String(36), sa.ForeignKey("users.id")),
        sa.Column("retailer_id", sa.String(36), sa.ForeignKey("users.id")),
        sa.Column("blockchain_tx_hash", sa.String(128)),
        sa.Column("description", sa.Text()),
        sa.Column("tags", sa.JSON()),
        sa.Column("metadata", sa.JSON()),
        sa.Column("deleted_at", sa.DateTime()),
        *_timestamps(),
    )
    op.create_index("ix_product_batches_lot_id", "product_batches", ["lot_id"], unique=True)
    op.create_index("ix_product_batches_qr_code", "product_batches", ["qr_code"], unique=True)
    op.create_index(
        "ix_product_batches_public_trace_hash", "product_batches", ["public_trace_hash"], unique=True
    )
    for column in (
        "type", "status", "current_stage", "farmer_id", "cooperative_id",
        "washing_station_id", "factory_id", "exporter_id", "importer_id",
        "retailer_id", "deleted_at", "created_at",
    ):
        op.create_index(f"ix_product_batches_{column}", "product_batches", [column])

    op.create_table(
        "batch_history",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("batch_id", sa.String(36), sa.ForeignKey("product_batches.id"), nullable=False),
        sa.Column("stage", sa.String(30), nullable=False),
        sa.Column("changed_by", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("blockchain_tx_hash", sa.String(128)),
        sa.Column("notes", sa.Text()),
        sa.Column("quantity", sa.Float()),
        sa.Column("quality", sa.String(100)),
        sa.Column("location", sa.String(200)),
        sa.Column("metadata", sa.JSON()),
        sa.Column("timestamp", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_batch_history_batch_id", "batch_history", ["batch_id"])
    op.create_index("ix_batch_history_timestamp", "batch_history", ["timestamp"])

    op.create_table(
        "supply_chain_events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("batch_id", sa.String(36), sa.ForeignKey("product_batches.id"), nullable=False),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("operator_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("location", sa.String(200)),
        sa.Column("description", sa.Text()),
        sa.Column("metadata", sa.JSON()),
        sa.Column("event_hash", sa.String(128), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    for column in ("batch_id", "event_type", "operator_id", "event_hash", "timestamp"):
        op.create_index(f"ix_supply_chain_events_{column}", "supply_chain_events", [column])

    op.create_table(
        "batch_integrity",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "batch_id", sa.String(36), sa.ForeignKey("product_batches.id"),
            nullable=False, unique=True,
        ),
        sa.Column("frozen_data", sa.JSON(), nullable=False),
        sa.Column("hash", sa.String(64), nullable=False),
        sa.Column("approved_by", sa.String(36)),
        sa.Column("approved_at", sa.DateTime(), server_default=sa.func.now()),
    )

    # ── Downstream records ───────────────────────────────────

    op.create_table(
        "processing_records",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("batch_id", sa.String(36), sa.ForeignKey("product_batches.id"), nullable=False),
        sa.Column("stage", sa.String(30), nullable=False),
        sa.Column("processing_type", sa.String(50)),
        sa.Column("notes", sa.Text()),
        sa.Column("quality_score", sa.Float()),
        sa.Column("quantity_in", sa.Float()),
        sa.Column("quantity_out", sa.Float()),
        sa.Column("processed_by", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("processed_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("blockchain_tx_hash", sa.String(128)),
        *_timestamps(),
    )
    for column in ("batch_id", "processed_by", "processed_at"):
        op.create_index(f"ix_processing_records_{column}", "processing_records", [column])

    op.create_table(
        "certificates",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("batch_id", sa.String(36), sa.ForeignKey("product_batches.id"), nullable=False),
        sa.Column("certificate_type", sa.String(30), nullable=False),
        sa.Column("certificate_number", sa.String(100), nullable=False),
        sa.Column("issued_by", sa.String(200), nullable=False),
        sa.Column("issued_date", sa.DateTime(), nullable=False),
        sa.Column("expiry_date", sa.DateTime()),
        sa.Column("document_url", sa.String(500)),
        sa.Column("blockchain_tx_hash", sa.String(128)),
        *_timestamps(),
    )
    op.create_index(
        "ix_certificates_certificate_number", "certificates", ["certificate_number"], unique=True
    )
    op.create_index("ix_certificates_batch_id", "certificates", ["batch_id"])
    op.create_index("ix_certificates_certificate_type", "certificates", ["certificate_type"])

    op.create_table(
        "export_records",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "batch_id", sa.String(36), sa.ForeignKey("product_batches.id"),
            nullable=False, unique=True,
        ),
        sa.Column("exporter_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("buyer_name", sa.String(200), nullable=False),
        sa.Column("buyer_address", sa.Text()),
        sa.Column("buyer_email", sa.String(255)),
        sa.Column("shipping_method", sa.String(10), nullable=False),
        sa.Column("shipping_date", sa.DateTime()),
        sa.Column("expected_arrival", sa.DateTime()),
        sa.Column("tracking_number", sa.String(100)),
        sa.Column("certificates", sa.JSON()),
        sa.Column("blockchain_tx_hash", sa.String(128)),
        *_timestamps(),
    )
    for column in ("exporter_id", "shipping_method", "created_at"):
        op.create_index(f"ix_export_records_{column}", "export_records", [column])

    op.create_table(
        "payments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("batch_id", sa.String(36), sa.ForeignKey("product_batches.id"), nullable=False),
        sa.Column("payer_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("payee_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(3), server_default="RWF"),
        sa.Column("payment_type", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), server_default="pending"),
        sa.Column("payment_date", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("transaction_ref", sa.String(100)),
        sa.Column("notes", sa.Text()),
        sa.Column("blockchain_tx_hash", sa.String(128)),
        *_timestamps(),
    )
    for column in ("batch_id", "payer_id", "payee_id", "payment_type", "status", "payment_date"):
        op.create_index(f"ix_payments_{column}", "payments", [column])


def downgrade() -> None:
    for table in (
        "payments",
        "export_records",
        "certificates",
        "processing_records",
        "batch_integrity",
        "supply_chain_events",
        "batch_history",
        "product_batches",
        "users",
        "cooperatives",
    ):
        op.drop_table(table)
    sa.Enum(name="userrole").drop(op.get_bind(), checkfirst=True)
