"""Tests for invitation-based onboarding."""
from datetime import timedelta

import pytest
from sqlalchemy import update

from helpers import COMPETITION_BODY, create_competition, create_user_headers
from kickoff.models import RoleInvitation
from kickoff.models.base import async_session_factory
from kickoff.services.timeutil import utcnow


async def _invite(client, headers, **body):
    payload = {"email": "Coach@Example.com", "role": "competition_admin"}
    payload.update(body)
    return await client.post("/api/auth/invitations", json=payload, headers=headers)


@pytest.mark.asyncio
async def test_global_admin_creates_invitation(client, auth_headers):
    competition_id = (await create_competition(client, auth_headers))["competition"]["id"]
    r = await _invite(client, auth_headers, scope_id=competition_id)
    assert r.status_code == 201, r.text
    data = r.json()
    assert data["email"] == "coach@example.com"
    assert data["scope_type"] == "competition"
    assert data["scope_id"] == competition_id
    assert data["token"]
    assert data["expires_at"].endswith("Z")
    assert data["accepted_at"] is None


@pytest.mark.asyncio
async def test_accept_creates_account_with_role(client, auth_headers):
    competition_id = (await create_competition(client, auth_headers))["competition"]["id"]
    token = (await _invite(client, auth_headers, scope_id=competition_id)).json()["token"]

    r = await client.post(
        "/api/auth/invitations/accept",
        json={"token": token, "username": "coach", "password": "secret-pass"},
    )
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["invitation"]["accepted_at"] is not None
    assert data["role"]["role"] == "competition_admin"
    assert data["role"]["scope_id"] == competition_id
    assert data["user"]["username"] == "coach"
    assert data["user"]["email"] == "coach@example.com"

    r = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert [(role["role"], role["scope_id"]) for role in r.json()["roles"]] == [("competition_admin", competition_id)]

    r = await client.post("/api/auth/login", json={"username": "coach", "password": "secret-pass"})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_accept_links_signed_in_user(client, auth_headers):
    competition_id = (await create_competition(client, auth_headers))["competition"]["id"]
    headers = await create_user_headers(client, auth_headers, "coach")
    await client.patch("/api/auth/users/coach", json={"email": "COACH@example.com"}, headers=auth_headers)
    token = (await _invite(client, auth_headers, scope_id=competition_id)).json()["token"]

    r = await client.post("/api/auth/invitations/accept", json={"token": token}, headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["user"]["username"] == "coach"

    r = await client.patch(f"/api/competitions/{competition_id}/archive", json={"archived": True}, headers=headers)
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_accept_rejects_other_email(client, auth_headers):
    competition_id = (await create_competition(client, auth_headers))["competition"]["id"]
    headers = await create_user_headers(client, auth_headers, "someone")
    await client.patch("/api/auth/users/someone", json={"email": "someone@example.com"}, headers=auth_headers)
    token = (await _invite(client, auth_headers, scope_id=competition_id)).json()["token"]

    r = await client.post("/api/auth/invitations/accept", json={"token": token}, headers=headers)
    assert r.status_code == 400
    assert r.json()["type"].endswith("/email-mismatch")


@pytest.mark.asyncio
async def test_token_is_single_use(client, auth_headers):
    competition_id = (await create_competition(client, auth_headers))["competition"]["id"]
    token = (await _invite(client, auth_headers, scope_id=competition_id)).json()["token"]
    body = {"token": token, "username": "coach", "password": "secret-pass"}
    assert (await client.post("/api/auth/invitations/accept", json=body)).status_code == 200

    body["username"] = "coach2"
    r = await client.post("/api/auth/invitations/accept", json=body)
    assert r.status_code == 409
    assert r.json()["type"].endswith("/invitation-already-accepted")


@pytest.mark.asyncio
async def test_expired_invitation(client, auth_headers):
    competition_id = (await create_competition(client, auth_headers))["competition"]["id"]
    token = (await _invite(client, auth_headers, scope_id=competition_id)).json()["token"]
    async with async_session_factory() as session:
        await session.execute(
            update(RoleInvitation).where(RoleInvitation.token == token).values(expires_at=utcnow() - timedelta(minutes=1))
        )
        await session.commit()

    r = await client.post(
        "/api/auth/invitations/accept",
        json={"token": token, "username": "coach", "password": "secret-pass"},
    )
    assert r.status_code == 410
    assert r.json()["title"] == "Invitation expired"


@pytest.mark.asyncio
async def test_unknown_token(client):
    r = await client.post(
        "/api/auth/invitations/accept",
        json={"token": "nope", "username": "coach", "password": "secret-pass"},
    )
    assert r.status_code == 404
    assert r.json()["type"].endswith("/invitation-not-found")


@pytest.mark.asyncio
async def test_new_account_needs_credentials(client, auth_headers):
    competition_id = (await create_competition(client, auth_headers))["competition"]["id"]
    token = (await _invite(client, auth_headers, scope_id=competition_id)).json()["token"]
    r = await client.post("/api/auth/invitations/accept", json={"token": token, "username": "coach"})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_competition_admin_invites_only_for_own_competition(client, auth_headers):
    own = (await create_competition(client, auth_headers))["competition"]["id"]
    other_body = {
        "name": "Other Cup",
        "slug": "other-cup",
        "default_edition": dict(COMPETITION_BODY["default_edition"], label="Other Cup 2025"),
    }
    other = (await create_competition(client, auth_headers, other_body))["competition"]["id"]
    headers = await create_user_headers(client, auth_headers, "organizer")
    r = await client.post(
        "/api/auth/users/organizer/roles",
        json={"role": "competition_admin", "scope_id": own},
        headers=auth_headers,
    )
    assert r.status_code == 201

    assert (await _invite(client, headers, scope_id=own)).status_code == 201
    assert (await _invite(client, headers, scope_id=other)).status_code == 403
    assert (await _invite(client, headers, role="global_admin")).status_code == 403


@pytest.mark.asyncio
async def test_invitation_requires_admin(client, auth_headers):
    competition_id = (await create_competition(client, auth_headers))["competition"]["id"]
    headers = await create_user_headers(client, auth_headers, "fan")
    assert (await _invite(client, headers, scope_id=competition_id)).status_code == 403
    assert (await _invite(client, {}, scope_id=competition_id)).status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body,slug",
    [
        ({"email": "not-an-email", "scope_id": 1}, "invalid-email"),
        ({"role": "referee", "scope_id": 1}, "invalid-role"),
        ({"scope_id": None}, "invalid-role-scope"),
        ({"scope_id": 1, "expires_at": "2000-01-01T00:00:00Z"}, "invalid-invitation-expiry"),
    ],
)
async def test_invitation_validation(client, auth_headers, body, slug):
    await create_competition(client, auth_headers)
    r = await _invite(client, auth_headers, **body)
    assert r.status_code == 400
    assert r.json()["type"].endswith(f"/{slug}")
