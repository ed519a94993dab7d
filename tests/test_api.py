"""Tests for basic API functionality."""
import pytest

from helpers import create_user_headers


@pytest.mark.asyncio
async def test_health(client):
    """Health endpoint returns ok."""
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_correlation_id_echoed(client):
    """Incoming correlation id is echoed; a fresh one is generated otherwise."""
    r = await client.get("/api/health", headers={"X-Correlation-Id": "abc-123"})
    assert r.headers["X-Correlation-Id"] == "abc-123"
    r = await client.get("/api/health")
    assert r.headers["X-Correlation-Id"]


@pytest.mark.asyncio
async def test_login_bootstraps_global_admin(client):
    """First login with the initial admin credentials creates a global admin."""
    r = await client.post("/api/auth/login", json={"username": "admin", "password": "testpass123"})
    assert r.status_code == 200
    data = r.json()
    assert data["username"] == "admin"
    assert data["token_type"] == "bearer"
    assert [role["role"] for role in data["roles"]] == ["global_admin"]


@pytest.mark.asyncio
async def test_login_wrong_password(client, auth_headers):
    """Wrong password is a 401 problem."""
    r = await client.post("/api/auth/login", json={"username": "admin", "password": "nope"})
    assert r.status_code == 401
    assert r.headers["content-type"].startswith("application/problem+json")
    assert r.json()["status"] == 401


@pytest.mark.asyncio
async def test_me_requires_auth(client):
    """/me without a token is 401 with WWW-Authenticate."""
    r = await client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"
    assert r.json()["title"] == "Authentication required"


@pytest.mark.asyncio
async def test_me_with_x_auth_token(client, auth_headers):
    """X-Auth-Token works as a fallback for Authorization."""
    token = auth_headers["Authorization"].split(" ", 1)[1]
    r = await client.get("/api/auth/me", headers={"X-Auth-Token": token})
    assert r.status_code == 200
    assert r.json()["username"] == "admin"


@pytest.mark.asyncio
async def test_me_optional_anonymous(client):
    r = await client.get("/api/auth/me/optional")
    assert r.status_code == 200
    assert r.json() is None


@pytest.mark.asyncio
async def test_user_management_requires_global_admin(client, auth_headers):
    """Plain users cannot list users."""
    headers = await create_user_headers(client, auth_headers, "organizer")
    r = await client.get("/api/auth/users", headers=headers)
    assert r.status_code == 403
    r = await client.get("/api/auth/users", headers=auth_headers)
    assert r.status_code == 200
    assert {u["username"] for u in r.json()} == {"admin", "organizer"}


@pytest.mark.asyncio
async def test_duplicate_username_conflict(client, auth_headers):
    await create_user_headers(client, auth_headers, "dupe")
    r = await client.post(
        "/api/auth/users",
        json={"username": "dupe", "password": "x"},
        headers=auth_headers,
    )
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_grant_and_revoke_role(client, auth_headers):
    """Scoped roles need a scope id; grants show up on the user and can be revoked."""
    await create_user_headers(client, auth_headers, "manager")
    r = await client.post(
        "/api/auth/users/manager/roles",
        json={"role": "team_manager"},
        headers=auth_headers,
    )
    assert r.status_code == 400

    r = await client.post(
        "/api/auth/users/manager/roles",
        json={"role": "team_manager", "scope_id": 7},
        headers=auth_headers,
    )
    assert r.status_code == 201
    roles = r.json()["roles"]
    assert roles == [{"id": roles[0]["id"], "role": "team_manager", "scope_type": "team", "scope_id": 7}]

    r = await client.delete(f"/api/auth/users/manager/roles/{roles[0]['id']}", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["roles"] == []


@pytest.mark.asyncio
async def test_grant_unknown_role(client, auth_headers):
    await create_user_headers(client, auth_headers, "someone")
    r = await client.post(
        "/api/auth/users/someone/roles",
        json={"role": "moderator"},
        headers=auth_headers,
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_cannot_delete_self(client, auth_headers):
    r = await client.delete("/api/auth/users/admin", headers=auth_headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_unknown_route_is_problem(client):
    r = await client.get("/api/does-not-exist")
    assert r.status_code == 404
    assert r.headers["content-type"].startswith("application/problem+json")


@pytest.mark.asyncio
async def test_validation_error_is_problem(client):
    """Malformed bodies are 400 problems with per-field errors."""
    r = await client.post("/api/auth/login", json={"username": "admin"})
    assert r.status_code == 400
    body = r.json()
    assert body["title"] == "Invalid request"
    assert "password" in body["errors"]
