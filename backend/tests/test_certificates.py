"""Tests for batch certificates."""

import pytest
from httpx import AsyncClient


@pytest.mark.api
@pytest.mark.asyncio
class TestCertificates:
    """CRUD on /api/certificates"""

    async def _issue(self, client, batch_id, user, headers, **fields):
        payload = {
            "batch_id": batch_id,
            "certificate_type": "organic",
            "certificate_number": "RW-ORG-2026-0042",
            "issued_by": "Rwanda Standards Board",
            "issued_date": "2026-02-01T00:00:00",
            "expiry_date": "2027-02-01T00:00:00",
            **fields,
        }
        return await client.post("/api/certificates/", json=payload, headers=headers(user))

    async def test_qc_issues_certificate(self, client: AsyncClient, approved_batch, qc, auth_headers):
        response = await self._issue(client, approved_batch["id"], qc, auth_headers)

        assert response.status_code == 201
        assert response.json()["certificate_type"] == "organic"

        by_batch = await client.get(
            f"/api/certificates/batch/{approved_batch['id']}", headers=auth_headers(qc)
        )
        assert [c["certificate_number"] for c in by_batch.json()] == ["RW-ORG-2026-0042"]

    async def test_lookup_by_number(self, client: AsyncClient, approved_batch, qc, auth_headers):
        await self._issue(client, approved_batch["id"], qc, auth_headers)
        response = await client.get(
            "/api/certificates/number/RW-ORG-2026-0042", headers=auth_headers(qc)
        )

        assert response.status_code == 200
        assert response.json()["batch_id"] == approved_batch["id"]

    async def test_duplicate_number(self, client: AsyncClient, approved_batch, qc, auth_headers):
        await self._issue(client, approved_batch["id"], qc, auth_headers)
        response = await self._issue(client, approved_batch["id"], qc, auth_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DUPLICATE_CERTIFICATE_NUMBER"

    async def test_expiry_must_follow_issue(
        self, client: AsyncClient, approved_batch, qc, auth_headers
    ):
        response = await self._issue(
            client, approved_batch["id"], qc, auth_headers, expiry_date="2025-01-01T00:00:00"
        )

        assert response.status_code == 422

    async def test_update_checks_merged_dates(
        self, client: AsyncClient, approved_batch, qc, auth_headers
    ):
        created = await self._issue(client, approved_batch["id"], qc, auth_headers)
        response = await client.patch(
            f"/api/certificates/{created.json()['id']}",
            json={"expiry_date": "2026-01-01T00:00:00"},
            headers=auth_headers(qc),
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_DATES"

    async def test_certified_event_recorded(
        self, client: AsyncClient, approved_batch, qc, auth_headers
    ):
        await self._issue(client, approved_batch["id"], qc, auth_headers)
        events = await client.get(
            f"/api/events/batch/{approved_batch['id']}", headers=auth_headers(qc)
        )

        assert events.json()[0]["event_type"] == "CERTIFIED"

    async def test_farmer_cannot_issue(
        self, client: AsyncClient, approved_batch, farmer, auth_headers
    ):
        response = await self._issue(client, approved_batch["id"], farmer, auth_headers)

        assert response.status_code == 403

    async def test_unknown_batch(self, client: AsyncClient, qc, auth_headers):
        response = await self._issue(client, "missing-batch", qc, auth_headers)

        assert response.status_code == 404
