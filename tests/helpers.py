"""Shared helpers for API tests."""


async def create_user_headers(client, admin_headers, username, password="secret-pass"):
    """Create a user through the admin API and return its auth headers."""
    r = await client.post(
        "/api/auth/users",
        json={"username": username, "password": password},
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    r = await client.post("/api/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


COMPETITION_BODY = {
    "name": "Elite Cup",
    "slug": "elite-cup",
    "default_edition": {
        "label": "Elite Cup 2025",
        "slug": "2025",
        "format": "round_robin",
        "registration_opens_at": "2020-01-01T00:00:00Z",
        "registration_closes_at": "2099-01-01T00:00:00Z",
    },
}


async def create_competition(client, headers, body=None):
    r = await client.post("/api/competitions", json=body or COMPETITION_BODY, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


async def enter_team(client, headers, edition_id, name):
    r = await client.post("/api/teams", json={"name": name}, headers=headers)
    assert r.status_code == 201, r.text
    team = r.json()
    r = await client.post(f"/api/editions/{edition_id}/entries", json={"team_id": team["id"]}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()
