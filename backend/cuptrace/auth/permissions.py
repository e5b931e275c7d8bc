"""Role-based permission defaults for CupTrace.

Design:
  - Each role has a fixed set of DEFAULT permissions (defined here, not in DB).
  - `resolve_permissions(role)` computes the effective permission set.
  - The effective set is embedded in the JWT so most checks are token-only
    (no DB roundtrip).

Permission naming: `<resource>.<action>`
  Resources: users, cooperative, batch, stage, processing, certificate,
             export, payment, event
  Actions:   read, write, delete, approve, transfer
"""

from __future__ import annotations


# ── All known permissions ───────────────────────────────────

ALL_PERMISSIONS: set[str] = {
    # User management
    "users.read",
    "users.write",

    # Cooperatives
    "cooperative.read",
    "cooperative.write",
    "cooperative.delete",

    # Batches
    "batch.read",
    "batch.write",
    "batch.delete",
    "batch.approve",          # QC approve / reject

    # Custody chain
    "stage.update",
    "stage.transfer",

    # Downstream records
    "processing.read",
    "processing.write",
    "certificate.read",
    "certificate.write",
    "export.read",
    "export.write",

    # Money
    "payment.read",
    "payment.write",

    # Audit log
    "event.read",
    "event.write",
}

_READ_ALL = {p for p in ALL_PERMISSIONS if p.endswith(".read") and p != "users.read"}

# Every supply-chain custodian can read, move batches on, and log events
_CUSTODIAN = _READ_ALL | {"stage.update", "stage.transfer", "event.write"}


# ── Role → default permissions ──────────────────────────────

ROLE_DEFAULTS: dict[str, set[str]] = {
    "admin": ALL_PERMISSIONS.copy(),

    "qc": _READ_ALL | {
        "batch.approve",
        "certificate.write",
        "processing.write",
        "event.write",
    },

    "farmer": _CUSTODIAN | {"batch.write", "payment.write"},

    # Field agents register batches on behalf of farmers
    "agent": _CUSTODIAN | {"batch.write"},

    "washing_station": _CUSTODIAN | {"processing.write", "payment.write"},

    "factory": _CUSTODIAN | {"processing.write", "payment.write"},

    "exporter": _CUSTODIAN | {"export.write", "certificate.write", "payment.write"},

    "importer": _CUSTODIAN | {"payment.write"},

    "retailer": _CUSTODIAN | {"payment.write"},
}


# ── Resolution ──────────────────────────────────────────────

def resolve_permissions(role: str) -> list[str]:
    """Return the role's permissions as a sorted list (stable JWT claims)."""
    return sorted(ROLE_DEFAULTS.get(role, set()))


def has_permission(user_permissions: list[str] | set[str], required: str) -> bool:
    """Check whether a permission set satisfies a requirement."""
    return required in user_permissions
