"""Code generation for batches.

Formats:
  lot_id:   CF-{YYYYMMDD}-{seq:3}   (TE- for tea), sequence resets daily
  qr_code:  CF-{first 8 id chars}-{base36 unix ms}-{6 random chars}
"""

import re
import secrets
import string
import time
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cuptrace.models.batch import ProductBatch, ProductType

TYPE_PREFIXES = {
    ProductType.COFFEE.value: "CF",
    ProductType.TEA.value: "TE",
}

QR_CODE_PATTERN = re.compile(r"^(CF|TE)-[A-Z0-9]{8}-[A-Z0-9]+-[A-Z0-9]+$")

_BASE36 = string.digits + string.ascii_uppercase


def _type_prefix(product_type: str) -> str:
    try:
        return TYPE_PREFIXES[product_type]
    except KeyError:
        raise ValueError(f"Unknown product type: {product_type}") from None


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


async def generate_lot_id(db: AsyncSession, product_type: str) -> str:
    """Next lot code for today, e.g. ``CF-20260218-004``.

    Continues after the highest numeric suffix among today's codes with the
    same prefix (soft-deleted batches included, so a code is never reused).
    Hand-entered lot IDs in the same format are skipped over.
    """
    prefix = f"{_type_prefix(product_type)}-{date.today().strftime('%Y%m%d')}-"
    result = await db.execute(
        select(ProductBatch.lot_id).where(ProductBatch.lot_id.like(f"{prefix}%"))
    )
    highest = 0
    for (lot_id,) in result:
        suffix = lot_id[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1:03d}"


def generate_qr_code(batch_id: str, product_type: str) -> str:
    stem = re.sub(r"[^A-Za-z0-9]", "", batch_id)[:8].upper().ljust(8, "0")
    stamp = to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"{_type_prefix(product_type)}-{stem}-{stamp}-{suffix}"


def is_valid_qr_code(code: str) -> bool:
    return bool(QR_CODE_PATTERN.match(code or ""))
