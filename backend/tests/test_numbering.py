"""Tests for lot and QR code generation."""

import re
from datetime import date

import pytest

from cuptrace.utils.numbering import (
    generate_lot_id,
    generate_qr_code,
    is_valid_qr_code,
    to_base36,
)


@pytest.mark.unit
class TestCodes:
    """Pure code helpers."""

    @pytest.mark.parametrize(
        "number,expected", [(0, "0"), (35, "Z"), (36, "10"), (1295, "ZZ")]
    )
    def test_to_base36(self, number, expected):
        assert to_base36(number) == expected

    def test_qr_code_format(self):
        code = generate_qr_code("3f2a9c1e-7b4d-4e8a-9c2f-1a2b3c4d5e6f", "coffee")

        assert code.startswith("CF-3F2A9C1E-")
        assert is_valid_qr_code(code)

    def test_qr_codes_are_unique(self):
        codes = {generate_qr_code("3f2a9c1e-7b4d", "tea") for _ in range(50)}

        assert len(codes) == 50
        assert all(code.startswith("TE-") for code in codes)

    @pytest.mark.parametrize("code", ["", "hello", "XX-12345678-ABC-DEF", "CF-short-A-B"])
    def test_invalid_qr_codes(self, code):
        assert is_valid_qr_code(code) is False

    def test_unknown_product_type(self):
        with pytest.raises(ValueError):
            generate_qr_code("abc", "cocoa")


@pytest.mark.unit
@pytest.mark.asyncio
class TestLotIds:
    """Daily lot sequence."""

    async def test_first_lot_of_the_day(self, session_factory):
        async with session_factory() as session:
            lot_id = await generate_lot_id(session, "coffee")

        assert lot_id == f"CF-{date.today().strftime('%Y%m%d')}-001"
        assert re.match(r"^CF-\d{8}-\d{3}$", lot_id)

    async def test_sequence_follows_highest_suffix(self, session_factory, create_batch):
        today = date.today().strftime("%Y%m%d")
        await create_batch(lot_id=f"CF-{today}-007")
        await create_batch(lot_id=f"CF-{today}-MANUAL")
        async with session_factory() as session:
            lot_id = await generate_lot_id(session, "coffee")

        assert lot_id == f"CF-{today}-008"

    async def test_tea_sequence_is_separate(self, session_factory, create_batch):
        await create_batch()
        async with session_factory() as session:
            lot_id = await generate_lot_id(session, "tea")

        assert lot_id.endswith("-001")
        assert lot_id.startswith("TE-")
