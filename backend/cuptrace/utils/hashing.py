"""Privacy-preserving identifiers.

Consumers scanning a QR code see ``F-…`` / ``B-…`` handles instead of
farmer names, phone numbers or internal UUIDs.  Handles are HMAC-SHA256
digests keyed with server-side salts, so they cannot be reversed or
recomputed without the salt.
"""

import hashlib
import hmac
import re

from cuptrace.config import settings

PUBLIC_HASH_LENGTH = 12

_PHONE_STRIP = re.compile(r"[\s\-]")


def _hmac_hex(value: str, salt: str) -> str:
    return hmac.new(salt.encode("utf-8"), value.encode("utf-8"), hashlib.sha256).hexdigest()


def generate_farmer_public_hash(farmer_id: str) -> str:
    """``F-`` + 12 hex chars, shown publicly in place of the farmer."""
    return f"F-{_hmac_hex(farmer_id, settings.farmer_hash_salt)[:PUBLIC_HASH_LENGTH]}"


def generate_batch_trace_hash(batch_id: str) -> str:
    """``B-`` + 12 hex chars, the consumer-facing handle for a batch."""
    return f"B-{_hmac_hex(batch_id, settings.farmer_hash_salt)[:PUBLIC_HASH_LENGTH]}"


def normalize_phone(phone: str) -> str:
    return _PHONE_STRIP.sub("", phone).lstrip("0")


def generate_phone_hash(phone: str) -> str:
    """Full HMAC of the normalised number, for lookups without storing it."""
    return _hmac_hex(normalize_phone(phone), settings.phone_hash_salt)


def mask_phone(phone: str | None) -> str:
    if not phone:
        return "****"
    digits = re.sub(r"\D", "", phone)
    if len(digits) < 4:
        return "****"
    return f"****{digits[-4:]}"


def verify_hash(value: str, expected: str, kind: str = "farmer") -> bool:
    """Recompute the ``kind`` hash of ``value`` and compare in constant time.

    kind: farmer | batch | phone
    """
    generators = {
        "farmer": generate_farmer_public_hash,
        "batch": generate_batch_trace_hash,
        "phone": generate_phone_hash,
    }
    if kind not in generators:
        raise ValueError(f"Unknown hash kind: {kind}")
    return hmac.compare_digest(generators[kind](value), expected)
