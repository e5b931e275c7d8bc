"""Tests for processing records."""

import pytest
from httpx import AsyncClient


@pytest.mark.api
@pytest.mark.asyncio
class TestProcessingRecords:
    """CRUD on /api/processing"""

    async def _create(self, client, batch_id, user, headers, **fields):
        payload = {
            "batch_id": batch_id,
            "stage": "washing_station",
            "processing_type": "washed",
            "quantity_in": 500.0,
            "quantity_out": 420.0,
            "quality_score": 86.5,
            **fields,
        }
        return await client.post("/api/processing/", json=payload, headers=headers(user))

    async def test_station_records_processing(
        self, client: AsyncClient, approved_batch, washing_station, auth_headers
    ):
        response = await self._create(client, approved_batch["id"], washing_station, auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["processed_by"] == washing_station.id
        assert data["quantity_out"] == 420.0

        events = await client.get(
            f"/api/events/batch/{approved_batch['id']}", headers=auth_headers(washing_station)
        )
        processing = [e for e in events.json() if e["event_type"] == "PROCESSING"]
        assert processing[0]["metadata"]["processing_record_id"] == data["id"]

    async def test_output_cannot_exceed_input(
        self, client: AsyncClient, approved_batch, washing_station, auth_headers
    ):
        response = await self._create(
            client, approved_batch["id"], washing_station, auth_headers,
            quantity_in=100.0, quantity_out=150.0,
        )

        assert response.status_code == 422

    async def test_update_checks_merged_quantities(
        self, client: AsyncClient, approved_batch, washing_station, auth_headers
    ):
        created = await self._create(client, approved_batch["id"], washing_station, auth_headers)
        record_id = created.json()["id"]

        response = await client.patch(
            f"/api/processing/{record_id}",
            json={"quantity_out": 600.0},
            headers=auth_headers(washing_station),
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_QUANTITY"

        response = await client.patch(
            f"/api/processing/{record_id}",
            json={"quantity_out": 410.0, "notes": "Second pass through the pulper"},
            headers=auth_headers(washing_station),
        )
        assert response.status_code == 200
        assert response.json()["quantity_out"] == 410.0

    async def test_list_filter_by_batch(
        self, client: AsyncClient, approved_batch, create_batch, washing_station, auth_headers
    ):
        other = await create_batch()
        await self._create(client, approved_batch["id"], washing_station, auth_headers)
        await self._create(client, other["id"], washing_station, auth_headers)

        response = await client.get(
            "/api/processing/",
            params={"batch_id": approved_batch["id"]},
            headers=auth_headers(washing_station),
        )

        assert response.json()["total"] == 1

    async def test_farmer_cannot_record(
        self, client: AsyncClient, approved_batch, farmer, auth_headers
    ):
        response = await self._create(client, approved_batch["id"], farmer, auth_headers)

        assert response.status_code == 403

    async def test_delete(self, client: AsyncClient, approved_batch, washing_station, auth_headers):
        created = await self._create(client, approved_batch["id"], washing_station, auth_headers)
        record_id = created.json()["id"]
        headers = auth_headers(washing_station)

        assert (await client.delete(f"/api/processing/{record_id}", headers=headers)).status_code == 204
        assert (await client.get(f"/api/processing/{record_id}", headers=headers)).status_code == 404
