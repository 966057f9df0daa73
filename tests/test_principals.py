from __future__ import annotations

import uuid

import pytest

from samvera.db.models import Organization, User


@pytest.mark.asyncio
async def test_admin_provisions_principal_in_another_org(client, seed) -> None:
    home = await seed.org("home")
    school = await seed.org("school")
    admin = await seed.user(home, "admin")

    r = await client.post(
        "/principals",
        json={"first_name": "Pat", "email": "Pat@School.org", "org_id": str(school.id), "role": "admin"},
        headers=seed.auth(admin),
    )
    assert r.status_code == 201
    created = r.json()
    assert created["org_id"] == str(school.id)
    assert created["role"] == "principal"
    assert created["email"] == "pat@school.org"
    stored = await seed.get(User, uuid.UUID(created["id"]))
    assert stored.roles == ["principal"]

    # The new principal can sign in to their school straight away.
    r = await client.get("/staff", headers=seed.auth(stored))
    assert r.status_code == 200

    r = await client.post(
        "/principals", json={"first_name": "Local"}, headers=seed.auth(admin)
    )
    assert r.json()["org_id"] == str(home.id)

    r = await client.get("/principals", headers=seed.auth(admin))
    assert r.json()["totalCount"] == 2
    r = await client.get("/principals", params={"orgId": str(school.id)}, headers=seed.auth(admin))
    assert [p["id"] for p in r.json()["items"]] == [created["id"]]

    r = await client.post(
        "/principals",
        json={"first_name": "Dup", "email": "pat@school.org", "org_id": str(school.id)},
        headers=seed.auth(admin),
    )
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_principal_org_must_be_live(client, seed) -> None:
    home = await seed.org("home")
    admin = await seed.user(home, "admin")
    closed = await seed.add(Organization(name="Closed", slug="closed", is_active=False))

    for org_id in (closed.id, uuid.uuid4()):
        r = await client.post(
            "/principals", json={"first_name": "Pat", "org_id": str(org_id)}, headers=seed.auth(admin)
        )
        assert r.status_code == 400
        assert "org_id" in r.json()["fields"]


@pytest.mark.asyncio
async def test_only_admins_manage_principals(client, seed) -> None:
    org = await seed.org("home")
    principal = await seed.user(org, "principal")
    r = await client.get("/principals", headers=seed.auth(principal))
    assert r.status_code == 403
    r = await client.post("/principals", json={"first_name": "Me"}, headers=seed.auth(principal))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_update_and_delete_principal(client, seed) -> None:
    home = await seed.org("home")
    admin = await seed.user(home, "admin")
    principal = await seed.user(home, "principal", first_name="Pat")
    teacher = await seed.user(home, "teacher")

    r = await client.put(
        "/principals", json={"id": str(principal.id), "last_name": "Lee"}, headers=seed.auth(admin)
    )
    assert r.status_code == 200
    assert r.json()["first_name"] == "Pat"
    assert r.json()["last_name"] == "Lee"

    r = await client.get(f"/principals/{teacher.id}", headers=seed.auth(admin))
    assert r.status_code == 404

    r = await client.delete("/principals", params={"id": str(principal.id)}, headers=seed.auth(admin))
    assert r.status_code == 200
    r = await client.delete("/principals", params={"id": str(principal.id)}, headers=seed.auth(admin))
    assert r.status_code == 404

    stored = await seed.get(User, principal.id)
    assert stored.is_active is False
    r = await client.get("/staff", headers=seed.auth(principal))
    assert r.status_code == 401
