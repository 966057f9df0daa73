from __future__ import annotations

import pytest


async def _student(client, seed, manager, first_name: str, **extra) -> dict:
    r = await client.post(
        "/students", json={"first_name": first_name, **extra}, headers=seed.auth(manager)
    )
    assert r.status_code == 201, r.text
    return r.json()


@pytest.mark.asyncio
async def test_guardian_sees_only_linked_children(client, seed) -> None:
    org = await seed.org("alpha")
    principal = await seed.user(org, "principal")
    guardian = await seed.user(org, "guardian")

    mine = await _student(client, seed, principal, "Ada")
    other = await _student(client, seed, principal, "Ben")

    r = await client.post(
        "/guardian-students",
        json={"guardian_id": str(guardian.id), "student_id": mine["id"], "relation": "mother"},
        headers=seed.auth(principal),
    )
    assert r.status_code == 201
    link_id = r.json()["id"]

    r = await client.get("/students", headers=seed.auth(guardian))
    assert r.status_code == 200
    assert [s["id"] for s in r.json()["items"]] == [mine["id"]]
    assert r.json()["totalCount"] == 1

    r = await client.get(f"/students/{other['id']}", headers=seed.auth(guardian))
    assert r.status_code == 404
    r = await client.get(f"/students/{mine['id']}", headers=seed.auth(guardian))
    assert r.status_code == 200

    r = await client.get("/students", headers=seed.auth(principal))
    assert r.json()["totalCount"] == 2

    # Unlinking is a hard delete; repeating it is a 404.
    r = await client.delete("/guardian-students", params={"id": link_id}, headers=seed.auth(principal))
    assert r.status_code == 200
    r = await client.delete("/guardian-students", params={"id": link_id}, headers=seed.auth(principal))
    assert r.status_code == 404
    r = await client.get("/students", headers=seed.auth(guardian))
    assert r.json()["items"] == []


@pytest.mark.asyncio
async def test_link_requires_guardian_in_same_org(client, seed) -> None:
    org = await seed.org("alpha")
    foreign_org = await seed.org("beta")
    principal = await seed.user(org, "principal")
    teacher = await seed.user(org, "teacher")
    foreign_guardian = await seed.user(foreign_org, "guardian")
    student = await _student(client, seed, principal, "Ada")

    r = await client.post(
        "/guardian-students",
        json={"guardian_id": str(teacher.id), "student_id": student["id"]},
        headers=seed.auth(principal),
    )
    assert r.status_code == 400

    r = await client.post(
        "/guardian-students",
        json={"guardian_id": str(foreign_guardian.id), "student_id": student["id"]},
        headers=seed.auth(principal),
    )
    assert r.status_code == 400
    assert "guardian_id" in r.json()["fields"]


@pytest.mark.asyncio
async def test_duplicate_link_is_conflict(client, seed) -> None:
    org = await seed.org("alpha")
    principal = await seed.user(org, "principal")
    guardian = await seed.user(org, "guardian")
    student = await _student(client, seed, principal, "Ada")
    payload = {"guardian_id": str(guardian.id), "student_id": student["id"]}

    r = await client.post("/guardian-students", json=payload, headers=seed.auth(principal))
    assert r.status_code == 201
    r = await client.post("/guardian-students", json=payload, headers=seed.auth(principal))
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_class_reference_is_scoped(client, seed) -> None:
    org = await seed.org("alpha")
    other = await seed.org("beta")
    principal = await seed.user(org, "principal")
    other_principal = await seed.user(other, "principal")

    r = await client.post("/classes", json={"name": "Sunflowers"}, headers=seed.auth(other_principal))
    foreign_class = r.json()["id"]
    r = await client.post("/classes", json={"name": "Tulips"}, headers=seed.auth(principal))
    own_class = r.json()["id"]

    r = await client.post(
        "/students", json={"first_name": "Ada", "class_id": foreign_class}, headers=seed.auth(principal)
    )
    assert r.status_code == 400
    assert "class_id" in r.json()["fields"]

    created = await _student(client, seed, principal, "Ada", class_id=own_class)
    r = await client.get("/students", params={"classId": own_class}, headers=seed.auth(principal))
    assert [s["id"] for s in r.json()["items"]] == [created["id"]]


@pytest.mark.asyncio
async def test_update_keeps_org_and_patches_sent_fields(client, seed) -> None:
    org = await seed.org("alpha")
    principal = await seed.user(org, "principal")
    student = await _student(client, seed, principal, "Ada", language="en")

    r = await client.put(
        "/students", json={"id": student["id"], "last_name": "Lovelace"}, headers=seed.auth(principal)
    )
    assert r.status_code == 200
    assert r.json()["last_name"] == "Lovelace"
    assert r.json()["language"] == "en"

    r = await client.put(
        "/students", json={"id": student["id"], "first_name": None}, headers=seed.auth(principal)
    )
    assert r.status_code == 400
