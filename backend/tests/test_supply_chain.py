"""Tests for custody (NFT) transfers."""

import pytest
from httpx import AsyncClient

from cuptrace.models.user import UserRole

TX_HASH = "0x9f2c4e7a1b3d5f6e8a0c2b4d6f8e0a1c3b5d7f9e"


@pytest.mark.api
@pytest.mark.asyncio
class TestTransferCustody:
    """POST /api/supplychain/transfer-nft"""

    async def test_farmer_hands_batch_to_station(
        self, client: AsyncClient, approved_batch, farmer, washing_station, auth_headers
    ):
        response = await client.post(
            "/api/supplychain/transfer-nft",
            json={
                "batch_id": approved_batch["id"],
                "to_user_id": washing_station.id,
                "tx_hash": TX_HASH,
                "next_stage": "washing_station",
            },
            headers=auth_headers(farmer),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["batch"]["current_stage"] == "washing_station"
        assert data["batch"]["washing_station_id"] == washing_station.id
        assert data["batch"]["blockchain_tx_hash"] == TX_HASH

        event = data["event"]
        assert event["event_type"] == "NFT_TRANSFER"
        assert event["event_hash"] == TX_HASH
        assert event["operator_id"] == farmer.id
        assert event["metadata"]["from"] == farmer.id
        assert event["metadata"]["to"] == washing_station.id
        assert event["metadata"]["from_stage"] == "farmer"
        assert event["metadata"]["stage"] == "washing_station"

    async def test_transfer_records_history(
        self, client: AsyncClient, approved_batch, farmer, washing_station, auth_headers
    ):
        await client.post(
            "/api/supplychain/transfer-nft",
            json={
                "batch_id": approved_batch["id"],
                "to_user_id": washing_station.id,
                "tx_hash": TX_HASH,
                "next_stage": "washing_station",
            },
            headers=auth_headers(farmer),
        )

        response = await client.get(
            f"/api/stage/{approved_batch['id']}/history", headers=auth_headers(farmer)
        )
        latest = response.json()[0]
        assert latest["stage"] == "washing_station"
        assert latest["changed_by"] == farmer.id
        assert latest["blockchain_tx_hash"] == TX_HASH

    async def test_chain_of_custody(
        self, client: AsyncClient, approved_batch, farmer, washing_station, factory, auth_headers
    ):
        """Each custodian hands on to the next."""
        batch_id = approved_batch["id"]
        first = await client.post(
            "/api/supplychain/transfer-nft",
            json={
                "batch_id": batch_id,
                "to_user_id": washing_station.id,
                "tx_hash": "0xaaaaaaaa01",
                "next_stage": "washing_station",
            },
            headers=auth_headers(farmer),
        )
        assert first.status_code == 200

        second = await client.post(
            "/api/supplychain/transfer-nft",
            json={
                "batch_id": batch_id,
                "to_user_id": factory.id,
                "tx_hash": "0xaaaaaaaa02",
                "next_stage": "factory",
            },
            headers=auth_headers(washing_station),
        )
        assert second.status_code == 200
        assert second.json()["batch"]["factory_id"] == factory.id
        assert second.json()["event"]["metadata"]["from"] == washing_station.id

    async def test_only_current_custodian_transfers(
        self, client: AsyncClient, approved_batch, washing_station, factory, auth_headers
    ):
        """The batch still sits with the farmer, so the station cannot pass it on."""
        response = await client.post(
            "/api/supplychain/transfer-nft",
            json={
                "batch_id": approved_batch["id"],
                "to_user_id": factory.id,
                "tx_hash": TX_HASH,
                "next_stage": "factory",
            },
            headers=auth_headers(washing_station),
        )

        assert response.status_code == 403

    async def test_recipient_role_must_match(
        self, client: AsyncClient, approved_batch, farmer, factory, auth_headers
    ):
        response = await client.post(
            "/api/supplychain/transfer-nft",
            json={
                "batch_id": approved_batch["id"],
                "to_user_id": factory.id,
                "tx_hash": TX_HASH,
                "next_stage": "washing_station",
            },
            headers=auth_headers(farmer),
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "ROLE_MISMATCH"

    async def test_inactive_recipient(
        self, client: AsyncClient, approved_batch, farmer, make_user, auth_headers
    ):
        station = await make_user(UserRole.WASHING_STATION, is_active=False)
        response = await client.post(
            "/api/supplychain/transfer-nft",
            json={
                "batch_id": approved_batch["id"],
                "to_user_id": station.id,
                "tx_hash": TX_HASH,
                "next_stage": "washing_station",
            },
            headers=auth_headers(farmer),
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "USER_INACTIVE"

    async def test_pending_batch_cannot_transfer(
        self, client: AsyncClient, create_batch, farmer, washing_station, auth_headers
    ):
        batch = await create_batch()
        response = await client.post(
            "/api/supplychain/transfer-nft",
            json={
                "batch_id": batch["id"],
                "to_user_id": washing_station.id,
                "tx_hash": TX_HASH,
                "next_stage": "washing_station",
            },
            headers=auth_headers(farmer),
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "BATCH_NOT_APPROVED"

    async def test_rejected_batch_cannot_transfer(
        self, client: AsyncClient, create_batch, qc, farmer, washing_station, auth_headers
    ):
        batch = await create_batch()
        await client.post(
            f"/api/batches/{batch['id']}/reject",
            json={"reason": "Mould"},
            headers=auth_headers(qc),
        )
        response = await client.post(
            "/api/supplychain/transfer-nft",
            json={
                "batch_id": batch["id"],
                "to_user_id": washing_station.id,
                "tx_hash": TX_HASH,
                "next_stage": "washing_station",
            },
            headers=auth_headers(farmer),
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "BATCH_REJECTED"

    async def test_cannot_transfer_to_farmer_stage(
        self, client: AsyncClient, approved_batch, farmer, make_user, auth_headers
    ):
        other_farmer = await make_user(UserRole.FARMER)
        response = await client.post(
            "/api/supplychain/transfer-nft",
            json={
                "batch_id": approved_batch["id"],
                "to_user_id": other_farmer.id,
                "tx_hash": TX_HASH,
                "next_stage": "farmer",
            },
            headers=auth_headers(farmer),
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_STAGE_TRANSITION"

    async def test_short_tx_hash_rejected(
        self, client: AsyncClient, approved_batch, farmer, washing_station, auth_headers
    ):
        response = await client.post(
            "/api/supplychain/transfer-nft",
            json={
                "batch_id": approved_batch["id"],
                "to_user_id": washing_station.id,
                "tx_hash": "0x1",
                "next_stage": "washing_station",
            },
            headers=auth_headers(farmer),
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
