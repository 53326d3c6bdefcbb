"""
Tests for registration, login, cookies, profile and user administration.
"""
import pytest


class TestRegistration:
    @pytest.mark.asyncio
    async def test_register(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"name": "Aline", "email": "Aline@Example.rw", "password": "secret123"},
        )
        assert response.status_code == 201
        user = response.json()["user"]
        assert user["email"] == "aline@example.rw"
        assert user["role"] == "user"
        assert user["points"] == 0
        assert "password_hash" not in user

    @pytest.mark.asyncio
    async def test_register_requires_contact(self, client):
        response = await client.post("/api/auth/register", json={"name": "Aline", "password": "secret123"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_duplicate_phone_conflicts(self, client):
        payload = {"name": "Eric", "phone": "+250788100200", "password": "secret123"}
        assert (await client.post("/api/auth/register", json=payload)).status_code == 201
        response = await client.post("/api/auth/register", json=payload)
        assert response.status_code == 409
        assert response.json() == {"error": "User with this phone already exists"}


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_sets_cookies_and_token(self, client, make_user):
        user, _ = make_user(email="login@example.rw", password="password123")
        response = await client.post("/api/auth/login", json={"email": "login@example.rw", "password": "password123"})
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["id"] == user["id"]
        assert body["token"]
        assert response.cookies.get("userId") == user["id"]
        assert response.cookies.get("auth_token") == body["token"]
        assert "httponly" in response.headers.get_list("set-cookie")[0].lower()

    @pytest.mark.asyncio
    async def test_cookie_authenticates_follow_up_requests(self, client, make_user):
        make_user(phone="+250788300400", password="password123")
        await client.post("/api/auth/login", json={"phone": "+250788300400", "password": "password123"})
        response = await client.get("/api/profile")
        assert response.status_code == 200
        assert response.json()["phone"] == "+250788300400"

    @pytest.mark.asyncio
    async def test_bad_password(self, client, make_user):
        make_user(email="bad@example.rw", password="password123")
        response = await client.post("/api/auth/login", json={"email": "bad@example.rw", "password": "nope"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials"}

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.get("/api/profile", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert "message" in response.json()


class TestProfile:
    @pytest.mark.asyncio
    async def test_profile_exposes_points_as_coins(self, client, make_user):
        _, headers = make_user(email="p@example.rw", points=150)
        body = (await client.get("/api/profile", headers=headers)).json()
        assert body["points"] == 150
        assert body["coins"] == 150
        assert "password_hash" not in body

    @pytest.mark.asyncio
    async def test_update_profile(self, client, make_user):
        _, headers = make_user(email="p2@example.rw")
        response = await client.put("/api/profile", json={"name": "New Name"}, headers=headers)
        assert response.json()["name"] == "New Name"

    @pytest.mark.asyncio
    async def test_empty_update_rejected(self, client, make_user):
        _, headers = make_user(email="p3@example.rw")
        response = await client.put("/api/profile", json={}, headers=headers)
        assert response.status_code == 400
        assert response.json() == {"message": "No valid fields to update"}

    @pytest.mark.asyncio
    async def test_change_password(self, client, make_user):
        _, headers = make_user(email="p4@example.rw", password="password123")
        weak = await client.post(
            "/api/profile/change-password",
            json={"currentPassword": "password123", "newPassword": "short"},
            headers=headers,
        )
        assert weak.status_code == 400
        wrong = await client.post(
            "/api/profile/change-password",
            json={"currentPassword": "wrong-pass", "newPassword": "longenough1"},
            headers=headers,
        )
        assert wrong.json() == {"message": "Current password is incorrect"}
        ok = await client.post(
            "/api/profile/change-password",
            json={"currentPassword": "password123", "newPassword": "longenough1"},
            headers=headers,
        )
        assert ok.status_code == 200
        login = await client.post("/api/auth/login", json={"email": "p4@example.rw", "password": "longenough1"})
        assert login.status_code == 200


class TestUserAdministration:
    @pytest.mark.asyncio
    async def test_admin_lists_users_without_hashes(self, client, make_user):
        _, admin = make_user(email="root@example.rw", role="admin")
        make_user(email="someone@example.rw")
        users = (await client.get("/api/users", headers=admin)).json()
        assert {u["email"] for u in users} == {"root@example.rw", "someone@example.rw"}
        assert all("password_hash" not in u for u in users)

    @pytest.mark.asyncio
    async def test_non_admin_forbidden(self, client, make_user):
        _, citizen = make_user(email="plain@example.rw")
        assert (await client.get("/api/users", headers=citizen)).status_code == 403

    @pytest.mark.asyncio
    async def test_admin_creates_user_with_role(self, client, make_user):
        _, admin = make_user(email="root2@example.rw", role="admin")
        response = await client.post(
            "/api/users",
            json={"name": "Officer", "email": "officer@example.rw", "password": "password123", "role": "institution"},
            headers=admin,
        )
        assert response.status_code == 201
        assert response.json()["role"] == "institution"


class TestDefaultAdmin:
    def test_ensure_default_admin_is_idempotent(self, services):
        first = services.auth.ensure_default_admin("admin@igire.rw", "bootstrap-pass")
        second = services.auth.ensure_default_admin("admin@igire.rw", "bootstrap-pass")
        assert first["id"] == second["id"]
        assert first["role"] == "admin"
        assert len(services.repo.list_users()) == 1

    def test_skipped_without_password(self, services):
        assert services.auth.ensure_default_admin("admin@igire.rw", "") is None
