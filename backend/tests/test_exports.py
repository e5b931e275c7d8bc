"""Tests for export records."""

import pytest
from httpx import AsyncClient


@pytest.mark.api
@pytest.mark.asyncio
class TestExports:
    """CRUD on /api/exports"""

    async def _create(self, client, batch_id, user, headers, **fields):
        payload = {
            "batch_id": batch_id,
            "buyer_name": "Hamburg Roasters GmbH",
            "buyer_email": "buying@roasters.de",
            "shipping_method": "sea",
            "shipping_date": "2026-03-01T08:00:00",
            "expected_arrival": "2026-04-10T08:00:00",
            "tracking_number": "MSCU1234567",
            **fields,
        }
        return await client.post("/api/exports/", json=payload, headers=headers(user))

    async def test_exporter_records_export(
        self, client: AsyncClient, approved_batch, exporter, auth_headers
    ):
        response = await self._create(client, approved_batch["id"], exporter, auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["exporter_id"] == exporter.id
        assert data["shipping_method"] == "sea"

        by_batch = await client.get(
            f"/api/exports/batch/{approved_batch['id']}", headers=auth_headers(exporter)
        )
        assert by_batch.json()["id"] == data["id"]

    async def test_one_export_per_batch(
        self, client: AsyncClient, approved_batch, exporter, auth_headers
    ):
        await self._create(client, approved_batch["id"], exporter, auth_headers)
        response = await self._create(client, approved_batch["id"], exporter, auth_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DUPLICATE_EXPORT"

    async def test_arrival_after_shipping(
        self, client: AsyncClient, approved_batch, exporter, auth_headers
    ):
        response = await self._create(
            client, approved_batch["id"], exporter, auth_headers,
            expected_arrival="2026-02-01T08:00:00",
        )

        assert response.status_code == 422

    async def test_admin_must_name_an_exporter(
        self, client: AsyncClient, approved_batch, admin, exporter, auth_headers
    ):
        """exporter_id defaults to the caller, who must hold the exporter role."""
        refused = await self._create(client, approved_batch["id"], admin, auth_headers)
        assert refused.status_code == 422
        assert refused.json()["error"]["code"] == "ROLE_MISMATCH"

        accepted = await self._create(
            client, approved_batch["id"], admin, auth_headers, exporter_id=exporter.id
        )
        assert accepted.status_code == 201

    async def test_update_and_filter(
        self, client: AsyncClient, approved_batch, exporter, auth_headers
    ):
        created = await self._create(client, approved_batch["id"], exporter, auth_headers)
        headers = auth_headers(exporter)

        updated = await client.patch(
            f"/api/exports/{created.json()['id']}",
            json={"shipping_method": "air", "expected_arrival": "2026-03-03T08:00:00"},
            headers=headers,
        )
        assert updated.status_code == 200
        assert updated.json()["shipping_method"] == "air"

        air = await client.get("/api/exports/", params={"shipping_method": "air"}, headers=headers)
        assert air.json()["total"] == 1

    async def test_no_export_for_batch(self, client: AsyncClient, approved_batch, exporter, auth_headers):
        response = await client.get(
            f"/api/exports/batch/{approved_batch['id']}", headers=auth_headers(exporter)
        )

        assert response.status_code == 404
