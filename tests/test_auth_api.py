"""Auth API tests.

Learn: Tests cover:
1. Registration + duplicate prevention + no self-promotion
2. Login → token
3. Protected /me endpoint with real, missing, bad and expired tokens
4. Admin-only user listing
"""

import uuid
from datetime import timedelta

import pytest

from tasktrack.auth.dependencies import get_token_service
from tasktrack.auth.identity import Role
from tasktrack.auth.jwt import TokenService
from tasktrack.config import settings
from tasktrack.main import app
from tasktrack.stores.sql import get_user_store


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_user(client):
    """Register a new user account."""
    email = f"test-{uuid.uuid4().hex[:8]}@example.com"
    r = await client.post(
        "/api/v1/auth/register",
        json={"email": email, "name": "Test User", "password": "secure_password_123"},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["user"]["email"] == email
    assert body["user"]["name"] == "Test User"
    assert body["user"]["role"] == "user"
    assert body["token_type"] == "bearer"
    assert "password_hash" not in body["user"]
    assert "password" not in body["user"]


@pytest.mark.asyncio
async def test_register_normalizes_email(client):
    r = await client.post(
        "/api/v1/auth/register",
        json={"email": "  Mixed.Case@Example.COM ", "name": "Mixed", "password": "password_123"},
    )
    assert r.status_code == 201
    assert r.json()["user"]["email"] == "mixed.case@example.com"


@pytest.mark.asyncio
async def test_register_duplicate_email(client):
    """Can't register with the same email twice, whatever the casing."""
    email = f"dup-{uuid.uuid4().hex[:8]}@example.com"
    r1 = await client.post(
        "/api/v1/auth/register",
        json={"email": email, "name": "User 1", "password": "password_123"},
    )
    assert r1.status_code == 201

    r2 = await client.post(
        "/api/v1/auth/register",
        json={"email": email.upper(), "name": "User 2", "password": "password_123"},
    )
    assert r2.status_code == 409


@pytest.mark.asyncio
async def test_register_cannot_self_promote(client):
    """A role in the register body is ignored — and so is the token's."""
    r = await client.post(
        "/api/v1/auth/register",
        json={
            "email": f"sneaky-{uuid.uuid4().hex[:8]}@example.com",
            "name": "Sneaky",
            "password": "password_123",
            "role": "admin",
        },
    )
    assert r.status_code == 201
    assert r.json()["user"]["role"] == "user"
    assert get_token_service().verify(r.json()["token"]).role is Role.USER


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"email": "short@example.com", "name": "Short", "password": "abc"},
        {"email": "not-an-email", "name": "Bad", "password": "password_123"},
        {"email": "blank@example.com", "name": "   ", "password": "password_123"},
        {"name": "No Email", "password": "password_123"},
    ],
)
async def test_register_validation(client, body):
    r = await client.post("/api/v1/auth/register", json=body)
    assert r.status_code == 422


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_success(client, alice):
    r = await client.post(
        "/api/v1/auth/login",
        json={"email": alice["user"]["email"].upper(), "password": "password_123"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["user"]["id"] == alice["user"]["id"]
    claims = get_token_service().verify(body["token"])
    assert str(claims.user_id) == alice["user"]["id"]


@pytest.mark.asyncio
async def test_login_wrong_password(client, alice):
    r = await client.post(
        "/api/v1/auth/login",
        json={"email": alice["user"]["email"], "password": "wrong_password"},
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_login_nonexistent_user(client):
    r = await client.post(
        "/api/v1/auth/login",
        json={"email": "nobody@example.com", "password": "whatever"},
    )
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_login_unknown_email_still_checks_a_password(client, user_store):
    """Unknown and known emails cost the same bcrypt comparison."""
    app.dependency_overrides[get_user_store] = lambda: user_store

    r = await client.post(
        "/api/v1/auth/login",
        json={"email": "ghost@example.com", "password": "whatever_123"},
    )
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid credentials"
    checks = [call for call in user_store.calls if call[0] == "verify_password"]
    assert len(checks) == 1
    assert checks[0][1].startswith("$2")


# ═══════════════════════════════════════════════════════════
# Protected Endpoint (/me)
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me_with_token(client, alice):
    r = await client.get("/api/v1/auth/me", headers=alice["headers"])
    assert r.status_code == 200
    assert r.json()["email"] == alice["user"]["email"]
    assert r.json()["role"] == "user"


@pytest.mark.asyncio
async def test_me_without_token(client):
    r = await client.get("/api/v1/auth/me")
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_invalid_and_expired_tokens_share_one_message(client, alice):
    expired = TokenService(
        settings.jwt_secret, expires_in=timedelta(seconds=-1)
    ).issue(alice["user"]["id"], Role.USER)

    r_bad = await client.get(
        "/api/v1/auth/me", headers={"Authorization": "Bearer invalid_token_here"}
    )
    r_expired = await client.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {expired}"}
    )
    assert r_bad.status_code == r_expired.status_code == 401
    assert r_bad.json() == r_expired.json()


@pytest.mark.asyncio
async def test_token_for_unknown_account_rejected(client):
    token = get_token_service().issue(uuid.uuid4(), Role.USER)
    r = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Admin-only user listing
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_admin_lists_users(client, admin, alice, bob):
    r = await client.get("/api/v1/auth/users", headers=admin["headers"])
    assert r.status_code == 200
    emails = {u["email"] for u in r.json()}
    assert {alice["user"]["email"], bob["user"]["email"], admin["user"]["email"]} <= emails
    assert all("password_hash" not in u for u in r.json())


@pytest.mark.asyncio
async def test_user_cannot_list_users(client, alice):
    r = await client.get("/api/v1/auth/users", headers=alice["headers"])
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_list_users_requires_token(client):
    r = await client.get("/api/v1/auth/users")
    assert r.status_code == 401
