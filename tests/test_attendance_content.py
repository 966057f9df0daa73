"""
tests.test_attendance_content

Attendance upserts and guardian visibility of published content.
"""

from __future__ import annotations

import pytest

from samvera.db.models import Organization


async def _setup(client, seed):
    org = await seed.org("alpha")
    principal = await seed.user(org, "principal")
    teacher = await seed.user(org, "teacher")
    guardian = await seed.user(org, "guardian")
    r = await client.post("/students", json={"first_name": "Ada"}, headers=seed.auth(principal))
    child = r.json()
    r = await client.post("/students", json={"first_name": "Ben"}, headers=seed.auth(principal))
    other = r.json()
    r = await client.post(
        "/guardian-students",
        json={"guardian_id": str(guardian.id), "student_id": child["id"]},
        headers=seed.auth(principal),
    )
    assert r.status_code == 201
    return principal, teacher, guardian, child, other


@pytest.mark.asyncio
async def test_attendance_upsert_and_guardian_view(client, seed) -> None:
    _, teacher, guardian, child, other = await _setup(client, seed)

    r = await client.post(
        "/attendance",
        json={"student_id": child["id"], "date": "2026-09-01", "status": "present"},
        headers=seed.auth(teacher),
    )
    assert r.status_code == 201
    first = r.json()
    assert first["date"] == "2026-09-01"

    r = await client.post(
        "/attendance",
        json={"student_id": child["id"], "date": "2026-09-01", "status": "late"},
        headers=seed.auth(teacher),
    )
    assert r.status_code == 200
    assert r.json()["id"] == first["id"]
    assert r.json()["status"] == "late"

    r = await client.post(
        "/attendance/batch",
        json={
            "records": [
                {"student_id": other["id"], "date": "2026-09-01", "status": "absent"},
                {"student_id": child["id"], "date": "2026-09-02", "status": "present"},
            ]
        },
        headers=seed.auth(teacher),
    )
    assert r.status_code == 200
    assert r.json()["created"] == 2
    assert r.json()["updated"] == 0

    r = await client.get("/attendance", params={"date": "2026-09-01"}, headers=seed.auth(teacher))
    assert r.json()["totalCount"] == 2

    r = await client.get("/attendance", headers=seed.auth(guardian))
    assert {a["student_id"] for a in r.json()["items"]} == {child["id"]}
    assert r.json()["totalCount"] == 2

    r = await client.post(
        "/attendance",
        json={"student_id": child["id"], "date": "2026-09-03", "status": "present"},
        headers=seed.auth(guardian),
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_attendance_rejects_bad_status_and_unknown_students(client, seed) -> None:
    _, teacher, _, child, _ = await _setup(client, seed)
    r = await client.post(
        "/attendance",
        json={"student_id": child["id"], "date": "2026-09-01", "status": "asleep"},
        headers=seed.auth(teacher),
    )
    assert r.status_code == 400
    assert "status" in r.json()["fields"]

    r = await client.post(
        "/attendance/batch",
        json={"records": [{"student_id": str(teacher.id), "date": "2026-09-01", "status": "present"}]},
        headers=seed.auth(teacher),
    )
    assert r.status_code == 400
    assert "records.0.student_id" in r.json()["fields"]


@pytest.mark.asyncio
async def test_guardian_sees_public_content_and_own_child_photos(client, seed) -> None:
    principal, teacher, guardian, child, other = await _setup(client, seed)

    for payload in (
        {"storage_path": "p/public.jpg", "is_public": True},
        {"storage_path": "p/mine.jpg", "student_id": child["id"]},
        {"storage_path": "p/theirs.jpg", "student_id": other["id"]},
    ):
        r = await client.post("/photos", json=payload, headers=seed.auth(teacher))
        assert r.status_code == 201

    r = await client.get("/photos", headers=seed.auth(guardian))
    assert {p["storage_path"] for p in r.json()["items"]} == {"p/public.jpg", "p/mine.jpg"}

    await client.post(
        "/announcements", json={"title": "Picnic", "is_public": True}, headers=seed.auth(principal)
    )
    await client.post(
        "/announcements", json={"title": "Staff only", "is_public": False}, headers=seed.auth(principal)
    )
    r = await client.get("/announcements", headers=seed.auth(guardian))
    assert [a["title"] for a in r.json()["items"]] == ["Picnic"]

    r = await client.get("/dashboard/metrics", headers=seed.auth(guardian))
    assert r.status_code == 200
    assert r.json()["children"] == 1
    assert r.json()["announcements"] == 1


@pytest.mark.asyncio
async def test_teacher_edits_only_own_announcements(client, seed) -> None:
    principal, teacher, _, _, _ = await _setup(client, seed)
    r = await client.post("/announcements", json={"title": "From office"}, headers=seed.auth(principal))
    office = r.json()["id"]
    r = await client.post("/announcements", json={"title": "From class"}, headers=seed.auth(teacher))
    own = r.json()["id"]

    r = await client.put("/announcements", json={"id": office, "title": "Edited"}, headers=seed.auth(teacher))
    assert r.status_code == 403
    r = await client.put("/announcements", json={"id": own, "title": "Edited"}, headers=seed.auth(teacher))
    assert r.status_code == 200
    assert r.json()["title"] == "Edited"
    r = await client.delete("/announcements", params={"id": office}, headers=seed.auth(principal))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_one_menu_per_day_and_class(client, seed) -> None:
    _, teacher, _, _, _ = await _setup(client, seed)
    payload = {"date": "2026-09-01", "lunch": "Soup"}
    r = await client.post("/menus", json=payload, headers=seed.auth(teacher))
    assert r.status_code == 201
    menu = r.json()
    assert menu["date"] == "2026-09-01"
    r = await client.post("/menus", json=payload, headers=seed.auth(teacher))
    assert r.status_code == 409

    # Soft-deleted menus no longer hold the slot.
    r = await client.delete("/menus", params={"id": menu["id"]}, headers=seed.auth(teacher))
    assert r.status_code == 200
    r = await client.post("/menus", json=payload, headers=seed.auth(teacher))
    assert r.status_code == 201


@pytest.mark.asyncio
async def test_teacher_changes_only_own_photos(client, seed) -> None:
    principal, teacher, _, _, _ = await _setup(client, seed)
    org_id = teacher.org_id
    colleague = await seed.user(await seed.get(Organization, org_id), "teacher", first_name="Cy")

    r = await client.post("/photos", json={"storage_path": "p/a.jpg"}, headers=seed.auth(teacher))
    assert r.status_code == 201
    photo = r.json()
    assert photo["author_id"] == str(teacher.id)

    r = await client.put(
        "/photos", json={"id": photo["id"], "caption": "Mine now"}, headers=seed.auth(colleague)
    )
    assert r.status_code == 403
    r = await client.delete("/photos", params={"id": photo["id"]}, headers=seed.auth(colleague))
    assert r.status_code == 403

    r = await client.put(
        "/photos", json={"id": photo["id"], "caption": "Sports day"}, headers=seed.auth(teacher)
    )
    assert r.status_code == 200
    assert r.json()["caption"] == "Sports day"

    # Managers may change any photo in their organization.
    r = await client.delete("/photos", params={"id": photo["id"]}, headers=seed.auth(principal))
    assert r.status_code == 200
    r = await client.get("/photos", headers=seed.auth(teacher))
    assert r.json()["totalCount"] == 0
