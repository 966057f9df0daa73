"""
tests.test_messages

Messaging flow: participants, unread flags, thread activity and deletion.
"""

from __future__ import annotations

from datetime import datetime

import pytest

from samvera.db.models import MessageParticipant


async def _open(client, seed, sender, *recipients, thread_type="group"):
    r = await client.post(
        "/messages",
        json={"thread_type": thread_type, "subject": "Hello", "recipient_ids": [str(u.id) for u in recipients]},
        headers=seed.auth(sender),
    )
    assert r.status_code in (200, 201), r.text
    return r


async def _threads(client, seed, user) -> dict[str, dict]:
    r = await client.get("/messages", headers=seed.auth(user))
    assert r.status_code == 200
    return {t["id"]: t for t in r.json()["items"]}


@pytest.mark.asyncio
async def test_post_marks_others_unread_and_bumps_thread(client, seed) -> None:
    org = await seed.org("alpha")
    teacher = await seed.user(org, "teacher")
    parent = await seed.user(org, "guardian")
    other_parent = await seed.user(org, "guardian")

    r = await _open(client, seed, teacher, parent, other_parent)
    assert r.status_code == 201
    thread = r.json()
    thread_id = thread["id"]
    assert set(thread["participant_ids"]) == {str(teacher.id), str(parent.id), str(other_parent.id)}

    assert (await _threads(client, seed, teacher))[thread_id]["unread"] is False
    assert (await _threads(client, seed, parent))[thread_id]["unread"] is True

    # Reading clears the reader's flag only.
    r = await client.get("/message-items", params={"messageId": thread_id}, headers=seed.auth(parent))
    assert r.status_code == 200
    assert (await _threads(client, seed, parent))[thread_id]["unread"] is False
    assert (await _threads(client, seed, other_parent))[thread_id]["unread"] is True

    before = (await _threads(client, seed, parent))[thread_id]["updated_at"]
    r = await client.post(
        "/message-items",
        json={"message_id": thread_id, "body": "  See you tomorrow  "},
        headers=seed.auth(parent),
    )
    assert r.status_code == 201
    assert r.json()["body"] == "See you tomorrow"
    assert r.json()["author_id"] == str(parent.id)

    assert (await _threads(client, seed, parent))[thread_id]["unread"] is False
    assert (await _threads(client, seed, teacher))[thread_id]["unread"] is True
    assert (await _threads(client, seed, other_parent))[thread_id]["unread"] is True
    after = (await _threads(client, seed, parent))[thread_id]["updated_at"]
    assert datetime.fromisoformat(after) > datetime.fromisoformat(before)

    r = await client.get("/message-items", params={"messageId": thread_id}, headers=seed.auth(teacher))
    assert [i["body"] for i in r.json()["items"]] == ["See you tomorrow"]


@pytest.mark.asyncio
async def test_non_participant_cannot_read_or_post(client, seed) -> None:
    org = await seed.org("alpha")
    teacher = await seed.user(org, "teacher")
    parent = await seed.user(org, "guardian")
    outsider = await seed.user(org, "guardian")
    thread_id = (await _open(client, seed, teacher, parent)).json()["id"]

    r = await client.get("/message-items", params={"messageId": thread_id}, headers=seed.auth(outsider))
    assert r.status_code == 403
    r = await client.post(
        "/message-items", json={"message_id": thread_id, "body": "hi"}, headers=seed.auth(outsider)
    )
    assert r.status_code == 403
    assert thread_id not in await _threads(client, seed, outsider)


@pytest.mark.asyncio
async def test_other_tenant_thread_is_not_found(client, seed) -> None:
    org_a = await seed.org("alpha")
    org_b = await seed.org("beta")
    teacher = await seed.user(org_a, "teacher")
    parent = await seed.user(org_a, "guardian")
    stranger = await seed.user(org_b, "teacher")
    thread_id = (await _open(client, seed, teacher, parent)).json()["id"]

    r = await client.post(
        "/message-items", json={"message_id": thread_id, "body": "hi"}, headers=seed.auth(stranger)
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_body_is_validated_before_thread_lookup(client, seed) -> None:
    org = await seed.org("alpha")
    teacher = await seed.user(org, "teacher")
    parent = await seed.user(org, "guardian")
    thread_id = (await _open(client, seed, teacher, parent)).json()["id"]

    for body in ("", "   ", "x" * 10_001):
        r = await client.post(
            "/message-items", json={"message_id": thread_id, "body": body}, headers=seed.auth(teacher)
        )
        assert r.status_code == 400
        assert "body" in r.json()["fields"]

    r = await client.post(
        "/message-items", json={"message_id": thread_id, "body": "x" * 10_000}, headers=seed.auth(teacher)
    )
    assert r.status_code == 201


@pytest.mark.asyncio
async def test_deleted_thread_is_not_found(client, seed) -> None:
    org = await seed.org("alpha")
    teacher = await seed.user(org, "teacher")
    parent = await seed.user(org, "guardian")
    thread_id = (await _open(client, seed, teacher, parent)).json()["id"]

    r = await client.delete("/messages", params={"id": thread_id}, headers=seed.auth(teacher))
    assert r.status_code == 200
    r = await client.delete("/messages", params={"id": thread_id}, headers=seed.auth(teacher))
    assert r.status_code == 404
    r = await client.post(
        "/message-items", json={"message_id": thread_id, "body": "hi"}, headers=seed.auth(parent)
    )
    assert r.status_code == 404
    assert thread_id not in await _threads(client, seed, parent)


@pytest.mark.asyncio
async def test_direct_message_threads_are_reused(client, seed) -> None:
    org = await seed.org("alpha")
    teacher = await seed.user(org, "teacher")
    parent = await seed.user(org, "guardian")

    first = await _open(client, seed, teacher, parent, thread_type="dm")
    assert first.status_code == 201
    again = await _open(client, seed, parent, teacher, thread_type="dm")
    assert again.status_code == 200
    assert again.json()["id"] == first.json()["id"]

    r = await client.post(
        "/messages",
        json={"thread_type": "dm", "recipient_ids": [str(teacher.id)]},
        headers=seed.auth(teacher),
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_recipients_must_be_in_callers_org(client, seed) -> None:
    org_a = await seed.org("alpha")
    org_b = await seed.org("beta")
    teacher = await seed.user(org_a, "teacher")
    foreign = await seed.user(org_b, "guardian")
    r = await client.post(
        "/messages", json={"recipient_ids": [str(foreign.id)]}, headers=seed.auth(teacher)
    )
    assert r.status_code == 400
    assert "recipient_ids" in r.json()["fields"]


@pytest.mark.asyncio
async def test_only_author_deletes_item(client, seed) -> None:
    org = await seed.org("alpha")
    teacher = await seed.user(org, "teacher")
    parent = await seed.user(org, "guardian")
    thread_id = (await _open(client, seed, teacher, parent)).json()["id"]
    r = await client.post(
        "/message-items", json={"message_id": thread_id, "body": "hi"}, headers=seed.auth(teacher)
    )
    item_id = r.json()["id"]

    r = await client.delete("/message-items", params={"id": item_id}, headers=seed.auth(parent))
    assert r.status_code == 403
    r = await client.delete("/message-items", params={"id": item_id}, headers=seed.auth(teacher))
    assert r.status_code == 200
    r = await client.get("/message-items", params={"messageId": thread_id}, headers=seed.auth(parent))
    assert r.json()["totalCount"] == 0


@pytest.mark.asyncio
async def test_participant_rows_carry_the_thread_org(seed, client) -> None:
    org = await seed.org("alpha")
    teacher = await seed.user(org, "teacher")
    parent = await seed.user(org, "guardian")
    await _open(client, seed, teacher, parent)
    rows = await seed.all(MessageParticipant)
    assert {r.org_id for r in rows} == {org.id}


@pytest.mark.asyncio
async def test_only_creator_or_manager_deletes_thread(client, seed) -> None:
    org = await seed.org("alpha")
    principal = await seed.user(org, "principal")
    teacher = await seed.user(org, "teacher")
    parent = await seed.user(org, "guardian")

    thread_id = (await _open(client, seed, teacher, parent)).json()["id"]
    r = await client.delete("/messages", params={"id": thread_id}, headers=seed.auth(parent))
    assert r.status_code == 403
    assert thread_id in await _threads(client, seed, parent)

    # A participating principal may remove a thread someone else opened.
    other_id = (await _open(client, seed, parent, principal, teacher)).json()["id"]
    r = await client.delete("/messages", params={"id": other_id}, headers=seed.auth(principal))
    assert r.status_code == 200
    assert other_id not in await _threads(client, seed, parent)
