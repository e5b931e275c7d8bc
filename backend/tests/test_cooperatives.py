"""Tests for cooperative management."""

import pytest
from httpx import AsyncClient

from cuptrace.models.user import UserRole


@pytest.mark.api
@pytest.mark.asyncio
class TestCooperatives:
    """CRUD on /api/cooperatives"""

    async def test_admin_creates_cooperative(self, client: AsyncClient, admin, auth_headers):
        response = await client.post(
            "/api/cooperatives/",
            json={"name": "Kopakama", "location": "Rutsiro, Western Province"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 201
        assert response.json()["name"] == "Kopakama"

    async def test_duplicate_name_case_insensitive(
        self, client: AsyncClient, admin, cooperative, auth_headers
    ):
        response = await client.post(
            "/api/cooperatives/",
            json={"name": cooperative.name.upper(), "location": "Somewhere"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DUPLICATE_NAME"

    async def test_farmer_cannot_create(self, client: AsyncClient, farmer, auth_headers):
        response = await client.post(
            "/api/cooperatives/",
            json={"name": "Rogue Coop", "location": "Nowhere"},
            headers=auth_headers(farmer),
        )

        assert response.status_code == 403

    async def test_list_and_search(self, client: AsyncClient, admin, cooperative, auth_headers):
        headers = auth_headers(admin)
        await client.post(
            "/api/cooperatives/",
            json={"name": "Dukunde Kawa", "location": "Gakenke"},
            headers=headers,
        )

        listing = await client.get("/api/cooperatives/", headers=headers)
        assert listing.status_code == 200
        assert listing.json()["total"] == 2

        found = await client.get("/api/cooperatives/", params={"search": "dukunde"}, headers=headers)
        assert [c["name"] for c in found.json()["items"]] == ["Dukunde Kawa"]

    async def test_list_is_cached_and_invalidated(
        self, client: AsyncClient, admin, cooperative, auth_headers, fake_redis
    ):
        """The list is served from Redis until a write invalidates it."""
        headers = auth_headers(admin)

        await client.get("/api/cooperatives/", headers=headers)
        assert any(key.startswith("cooperatives:") for key in fake_redis.store)

        await client.post(
            "/api/cooperatives/",
            json={"name": "Musasa", "location": "Gakenke"},
            headers=headers,
        )
        assert not any(key.startswith("cooperatives:") for key in fake_redis.store)

        listing = await client.get("/api/cooperatives/", headers=headers)
        assert listing.json()["total"] == 2

    async def test_detail_lists_farmers_and_batches(
        self, client: AsyncClient, cooperative, farmer, create_batch, auth_headers
    ):
        batch = await create_batch()
        response = await client.get(
            f"/api/cooperatives/{cooperative.id}", headers=auth_headers(farmer)
        )

        assert response.status_code == 200
        data = response.json()
        assert [f["id"] for f in data["farmers"]] == [farmer.id]
        assert data["farmers"][0]["public_hash"].startswith("F-")
        assert data["farmers"][0]["phone"] == "****3456"
        assert [b["id"] for b in data["batches"]] == [batch["id"]]

    async def test_update(self, client: AsyncClient, admin, cooperative, auth_headers):
        response = await client.patch(
            f"/api/cooperatives/{cooperative.id}",
            json={"description": "Women-led washing cooperative"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert response.json()["description"] == "Women-led washing cooperative"

    async def test_delete_empty(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        created = await client.post(
            "/api/cooperatives/",
            json={"name": "Short Lived", "location": "Kigali"},
            headers=headers,
        )
        coop_id = created.json()["id"]

        response = await client.delete(f"/api/cooperatives/{coop_id}", headers=headers)
        assert response.status_code == 204

        missing = await client.get(f"/api/cooperatives/{coop_id}", headers=headers)
        assert missing.status_code == 404

    async def test_delete_with_members_refused(
        self, client: AsyncClient, admin, cooperative, farmer, auth_headers
    ):
        response = await client.delete(
            f"/api/cooperatives/{cooperative.id}", headers=auth_headers(admin)
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "COOPERATIVE_NOT_EMPTY"


@pytest.mark.api
@pytest.mark.asyncio
class TestUserAdministration:
    """Admin-only /api/users endpoints."""

    async def test_list_users_by_role(self, client: AsyncClient, admin, farmer, qc, auth_headers):
        response = await client.get(
            "/api/users/", params={"role": "farmer"}, headers=auth_headers(admin)
        )

        assert response.status_code == 200
        assert [u["id"] for u in response.json()["items"]] == [farmer.id]

    async def test_non_admin_cannot_list(self, client: AsyncClient, farmer, auth_headers):
        response = await client.get("/api/users/", headers=auth_headers(farmer))

        assert response.status_code == 403

    async def test_promote_to_farmer_gets_public_hash(
        self, client: AsyncClient, admin, make_user, auth_headers
    ):
        agent = await make_user(UserRole.AGENT)
        response = await client.patch(
            f"/api/users/{agent.id}", json={"role": "farmer"}, headers=auth_headers(admin)
        )

        assert response.status_code == 200
        assert response.json()["role"] == "farmer"
        assert response.json()["public_hash"].startswith("F-")

    async def test_deactivate_revokes_tokens(
        self, client: AsyncClient, admin, farmer, auth_headers
    ):
        farmer_headers = auth_headers(farmer)
        assert (await client.get("/api/auth/me", headers=farmer_headers)).status_code == 200

        response = await client.post(
            f"/api/users/{farmer.id}/deactivate", headers=auth_headers(admin)
        )
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        assert (await client.get("/api/auth/me", headers=farmer_headers)).status_code == 401

    async def test_cannot_deactivate_self(self, client: AsyncClient, admin, auth_headers):
        response = await client.post(
            f"/api/users/{admin.id}/deactivate", headers=auth_headers(admin)
        )

        assert response.status_code == 422

    async def test_role_change_revokes_old_permissions(
        self, client: AsyncClient, admin, make_user, auth_headers
    ):
        other_admin = await make_user(UserRole.ADMIN)
        stale_headers = auth_headers(other_admin)
        assert (await client.get("/api/users/", headers=stale_headers)).status_code == 200

        response = await client.patch(
            f"/api/users/{other_admin.id}", json={"role": "farmer"}, headers=auth_headers(admin)
        )
        assert response.status_code == 200
        assert response.json()["role"] == "farmer"

        assert (await client.get("/api/users/", headers=stale_headers)).status_code == 401

    async def test_profile_edit_keeps_tokens(
        self, client: AsyncClient, admin, farmer, auth_headers
    ):
        farmer_headers = auth_headers(farmer)
        response = await client.patch(
            f"/api/users/{farmer.id}", json={"city": "Huye"}, headers=auth_headers(admin)
        )
        assert response.status_code == 200

        assert (await client.get("/api/auth/me", headers=farmer_headers)).status_code == 200

    async def test_cannot_change_own_role(self, client: AsyncClient, admin, auth_headers):
        response = await client.patch(
            f"/api/users/{admin.id}", json={"role": "farmer"}, headers=auth_headers(admin)
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "BUSINESS_LOGIC_ERROR"

    async def test_reset_password(self, client: AsyncClient, admin, farmer, auth_headers):
        response = await client.post(
            f"/api/users/{farmer.id}/reset-password",
            json={"new_password": "ResetByAdmin99"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200

        login = await client.post(
            "/api/auth/login", json={"email": farmer.email, "password": "ResetByAdmin99"}
        )
        assert login.status_code == 200
