"""
tests.test_dashboard_audit

Per-role dashboard counters and the audit trail written by mutations.
"""

from __future__ import annotations

import pytest

from samvera.db.models import AuditEvent, SchoolClass, Student


async def _org_with_people(seed):
    org = await seed.org("alpha")
    people = {
        "admin": await seed.user(org, "admin"),
        "principal": await seed.user(org, "principal"),
        "teacher": await seed.user(org, "teacher"),
        "guardian": await seed.user(org, "guardian"),
    }
    await seed.user(org, "teacher")
    await seed.user(org, "guardian")
    await seed.add(SchoolClass(org_id=org.id, name="Owls"))
    await seed.add(Student(org_id=org.id, first_name="Ada"))
    await seed.add(Student(org_id=org.id, first_name="Ben"))
    # Other tenants never show up in counts.
    beta = await seed.org("beta")
    await seed.user(beta, "teacher")
    await seed.add(Student(org_id=beta.id, first_name="Cy"))
    return org, people


@pytest.mark.asyncio
async def test_dashboard_counts_depend_on_active_role(client, seed) -> None:
    _, people = await _org_with_people(seed)

    for role in ("admin", "principal"):
        r = await client.get("/dashboard/metrics", headers=seed.auth(people[role]))
        assert r.status_code == 200
        body = r.json()
        assert body["role"] == role
        assert (body["students"], body["staff"], body["guardians"], body["classes"]) == (2, 2, 2, 1)
        assert body["unreadMessages"] == 0

    r = await client.get("/dashboard/metrics", headers=seed.auth(people["teacher"]))
    body = r.json()
    assert (body["students"], body["classes"], body["myClasses"], body["attendanceToday"]) == (2, 1, 0, 0)
    assert "guardians" not in body

    r = await client.get("/dashboard/metrics", headers=seed.auth(people["guardian"]))
    body = r.json()
    assert body["children"] == 0
    assert body["announcements"] == 0
    assert "students" not in body


@pytest.mark.asyncio
async def test_audit_events_are_for_managers_only(client, seed) -> None:
    _, people = await _org_with_people(seed)
    for role in ("teacher", "guardian"):
        r = await client.get("/audit-events", headers=seed.auth(people[role]))
        assert r.status_code == 403
    for role in ("admin", "principal"):
        r = await client.get("/audit-events", headers=seed.auth(people[role]))
        assert r.status_code == 200
        assert r.json()["items"] == []


@pytest.mark.asyncio
async def test_writes_append_audit_rows(client, seed) -> None:
    org, people = await _org_with_people(seed)
    principal = people["principal"]

    r = await client.post("/classes", json={"name": "Bears"}, headers=seed.auth(principal))
    class_id = r.json()["id"]
    await client.put("/classes", json={"id": class_id, "name": "Big Bears"}, headers=seed.auth(principal))
    await client.delete("/classes", params={"id": class_id}, headers=seed.auth(principal))
    # Rejected writes leave no trace.
    await client.post("/classes", json={"name": ""}, headers=seed.auth(principal))

    r = await client.get("/audit-events", params={"resource": "classes"}, headers=seed.auth(principal))
    assert r.status_code == 200
    items = r.json()["items"]
    assert sorted(e["action"] for e in items) == ["create", "delete", "update"]
    assert {e["resource_id"] for e in items} == {class_id}
    assert {e["actor"] for e in items} == {str(principal.id)}
    update = next(e for e in items if e["action"] == "update")
    assert update["details"] == {"fields": ["name"]}

    r = await client.get("/audit-events", params={"resource": "staff"}, headers=seed.auth(principal))
    assert r.json()["totalCount"] == 0

    rows = await seed.all(AuditEvent)
    assert {row.org_id for row in rows} == {org.id}
