"""Tests for authentication endpoints."""

import pytest
from httpx import AsyncClient

from cuptrace.auth.jwt import decode_token
from cuptrace.models.user import User, UserRole

TEST_PASSWORD = "testpassword123"


@pytest.mark.auth
@pytest.mark.asyncio
class TestRegistration:
    """Self-registration of supply-chain actors."""

    async def test_register_farmer(self, client: AsyncClient, cooperative):
        """A farmer registers, gets tokens and a public hash."""
        response = await client.post(
            "/api/auth/register",
            json={
                "email": "newfarmer@cuptrace.rw",
                "password": "SecurePassword123!",
                "full_name": "Jean Mugabo",
                "cooperative_id": cooperative.id,
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["user"]["role"] == "farmer"
        assert data["user"]["public_hash"].startswith("F-")
        assert "batch.write" in data["user"]["permissions"]

    async def test_register_exporter_has_no_public_hash(self, client: AsyncClient):
        """Only farmers get an F- handle."""
        response = await client.post(
            "/api/auth/register",
            json={
                "email": "exports@cuptrace.rw",
                "password": "SecurePassword123!",
                "full_name": "Kigali Exports Ltd",
                "role": "exporter",
            },
        )

        assert response.status_code == 201
        assert response.json()["user"]["public_hash"] is None

    @pytest.mark.parametrize("role", ["admin", "qc"])
    async def test_register_privileged_role_forbidden(self, client: AsyncClient, role: str):
        """Admin and QC accounts cannot be self-registered."""
        response = await client.post(
            "/api/auth/register",
            json={
                "email": f"sneaky-{role}@cuptrace.rw",
                "password": "SecurePassword123!",
                "full_name": "Sneaky User",
                "role": role,
            },
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "PERMISSION_DENIED"

    async def test_register_duplicate_email(self, client: AsyncClient, farmer: User):
        """Registration with an existing email is a conflict."""
        response = await client.post(
            "/api/auth/register",
            json={
                "email": farmer.email,
                "password": "AnotherPassword123!",
                "full_name": "Another User",
            },
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "EMAIL_TAKEN"

    async def test_register_unknown_cooperative(self, client: AsyncClient):
        response = await client.post(
            "/api/auth/register",
            json={
                "email": "lost@cuptrace.rw",
                "password": "SecurePassword123!",
                "full_name": "Lost Farmer",
                "cooperative_id": "does-not-exist",
            },
        )

        assert response.status_code == 404

    async def test_register_short_password(self, client: AsyncClient):
        """Validation errors use the standard envelope."""
        response = await client.post(
            "/api/auth/register",
            json={"email": "short@cuptrace.rw", "password": "short", "full_name": "Short"},
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert any("password" in e["field"] for e in error["details"]["errors"])


@pytest.mark.auth
@pytest.mark.asyncio
class TestLogin:
    """Test login, refresh and logout."""

    async def test_login_success(self, client: AsyncClient, farmer: User):
        """Test successful login."""
        response = await client.post(
            "/api/auth/login",
            json={"email": farmer.email, "password": TEST_PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == farmer.email

        claims = decode_token(data["access_token"])
        assert claims["sub"] == farmer.id
        assert claims["type"] == "access"
        assert "batch.write" in claims["permissions"]

    async def test_login_wrong_password(self, client: AsyncClient, farmer: User):
        """Test login with wrong password."""
        response = await client.post(
            "/api/auth/login",
            json={"email": farmer.email, "password": "wrongpassword"},
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_FAILED"

    async def test_login_unknown_email(self, client: AsyncClient):
        response = await client.post(
            "/api/auth/login",
            json={"email": "nobody@cuptrace.rw", "password": TEST_PASSWORD},
        )

        assert response.status_code == 401

    async def test_login_deactivated(self, client: AsyncClient, make_user):
        """Deactivated accounts are refused even with the right password."""
        user = await make_user(UserRole.FACTORY, is_active=False)
        response = await client.post(
            "/api/auth/login",
            json={"email": user.email, "password": TEST_PASSWORD},
        )

        assert response.status_code == 403

    async def test_refresh_rotates_tokens(self, client: AsyncClient, farmer: User):
        """A refresh token can be used exactly once."""
        login = await client.post(
            "/api/auth/login",
            json={"email": farmer.email, "password": TEST_PASSWORD},
        )
        refresh_token = login.json()["refresh_token"]

        first = await client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
        assert first.status_code == 200
        assert first.json()["user"]["id"] == farmer.id

        second = await client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
        assert second.status_code == 401

    async def test_refresh_rejects_access_token(self, client: AsyncClient, farmer: User):
        login = await client.post(
            "/api/auth/login",
            json={"email": farmer.email, "password": TEST_PASSWORD},
        )
        response = await client.post(
            "/api/auth/refresh", json={"refresh_token": login.json()["access_token"]}
        )

        assert response.status_code == 401

    async def test_logout_revokes_token(self, client: AsyncClient, farmer: User):
        """After logout the access token no longer works."""
        login = await client.post(
            "/api/auth/login",
            json={"email": farmer.email, "password": TEST_PASSWORD},
        )
        headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

        response = await client.post(
            "/api/auth/logout",
            json={"refresh_token": login.json()["refresh_token"]},
            headers=headers,
        )
        assert response.status_code == 200

        me = await client.get("/api/auth/me", headers=headers)
        assert me.status_code == 401

        refresh = await client.post(
            "/api/auth/refresh", json={"refresh_token": login.json()["refresh_token"]}
        )
        assert refresh.status_code == 401


@pytest.mark.auth
@pytest.mark.asyncio
class TestProfile:
    """Test the current-user endpoints."""

    async def test_get_current_user(self, client: AsyncClient, farmer: User, auth_headers):
        """Test getting current user profile."""
        response = await client.get("/api/auth/me", headers=auth_headers(farmer))

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == farmer.id
        assert data["role"] == "farmer"
        assert "stage.transfer" in data["permissions"]

    async def test_unauthorized_access(self, client: AsyncClient):
        """Test accessing protected endpoint without auth."""
        response = await client.get("/api/auth/me")

        assert response.status_code == 401

    async def test_invalid_token(self, client: AsyncClient):
        """Test with invalid token."""
        response = await client.get(
            "/api/auth/me", headers={"Authorization": "Bearer invalid_token"}
        )

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_change_password(self, client: AsyncClient, farmer: User, auth_headers):
        """Changing the password revokes every older token."""
        headers = auth_headers(farmer)
        response = await client.post(
            "/api/auth/change-password",
            json={"current_password": TEST_PASSWORD, "new_password": "BrandNewPass456"},
            headers=headers,
        )
        assert response.status_code == 200

        assert (await client.get("/api/auth/me", headers=headers)).status_code == 401

        old = await client.post(
            "/api/auth/login", json={"email": farmer.email, "password": TEST_PASSWORD}
        )
        assert old.status_code == 401

        new = await client.post(
            "/api/auth/login", json={"email": farmer.email, "password": "BrandNewPass456"}
        )
        assert new.status_code == 200
        fresh_headers = {"Authorization": f"Bearer {new.json()['access_token']}"}
        assert (await client.get("/api/auth/me", headers=fresh_headers)).status_code == 200

    async def test_change_password_wrong_current(
        self, client: AsyncClient, farmer: User, auth_headers
    ):
        response = await client.post(
            "/api/auth/change-password",
            json={"current_password": "not-my-password", "new_password": "BrandNewPass456"},
            headers=auth_headers(farmer),
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_PASSWORD"

    async def test_change_password_unchanged(
        self, client: AsyncClient, farmer: User, auth_headers
    ):
        response = await client.post(
            "/api/auth/change-password",
            json={"current_password": TEST_PASSWORD, "new_password": TEST_PASSWORD},
            headers=auth_headers(farmer),
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "PASSWORD_UNCHANGED"
