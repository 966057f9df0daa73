"""
tests.test_session

Session resolution, both as a unit (`resolve_principal`) and through `/session`.
"""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest

from samvera.auth.jwt import JwtConfig, issue_token
from samvera.auth.models import Role
from samvera.auth.session import resolve_principal
from samvera.db.models import User
from samvera.db.repositories.users import SessionProfile
from samvera.errors import MissingOrganization, Unauthenticated

CFG = JwtConfig(alg="HS256", issuer="samvera-api", audience="samvera-web", secret="unit-secret")


class FakeUsers:
    def __init__(self, profiles: dict[uuid.UUID, SessionProfile] | None = None) -> None:
        self._profiles = profiles or {}

    async def session_profile(self, user_id: uuid.UUID) -> SessionProfile | None:
        return self._profiles.get(user_id)


def _stored(user_id: uuid.UUID, org_id: uuid.UUID, *roles: str) -> FakeUsers:
    return FakeUsers({user_id: SessionProfile(org_id=org_id, roles=roles)})


async def _resolve(token: str | None, users: FakeUsers | None = None):
    return await resolve_principal(token=token, cfg=CFG, users=users or FakeUsers())  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_missing_and_garbage_tokens_are_unauthenticated() -> None:
    with pytest.raises(Unauthenticated):
        await _resolve(None)
    with pytest.raises(Unauthenticated):
        await _resolve("not-a-jwt")


@pytest.mark.asyncio
async def test_wrong_secret_and_expired_tokens_are_rejected() -> None:
    user_id, org = uuid.uuid4(), uuid.uuid4()
    users = _stored(user_id, org, "admin")
    other = JwtConfig(alg="HS256", issuer=CFG.issuer, audience=CFG.audience, secret="other")
    token = issue_token(cfg=other, subject=user_id, roles=["admin"], org_id=org)
    with pytest.raises(Unauthenticated):
        await _resolve(token, users)

    expired = issue_token(
        cfg=CFG, subject=user_id, roles=["admin"], org_id=org, ttl=timedelta(seconds=-30)
    )
    with pytest.raises(Unauthenticated):
        await _resolve(expired, users)


@pytest.mark.asyncio
async def test_roles_are_required_and_active_role_must_be_held() -> None:
    user_id, org = uuid.uuid4(), uuid.uuid4()
    users = _stored(user_id, org, "teacher", "admin")
    with pytest.raises(Unauthenticated):
        await _resolve(issue_token(cfg=CFG, subject=user_id, roles=[], org_id=org), users)
    with pytest.raises(Unauthenticated):
        await _resolve(issue_token(cfg=CFG, subject=user_id, roles=["wizard"], org_id=org), users)
    with pytest.raises(Unauthenticated):
        await _resolve(
            issue_token(
                cfg=CFG, subject=user_id, roles=["teacher"], active_role="admin", org_id=org
            ),
            users,
        )


@pytest.mark.asyncio
async def test_active_role_defaults_to_first_listed_role() -> None:
    user_id, org = uuid.uuid4(), uuid.uuid4()
    p = await _resolve(
        issue_token(cfg=CFG, subject=user_id, roles=["parent", "teacher"], org_id=org),
        _stored(user_id, org, "guardian", "teacher"),
    )
    assert p.active_role == Role.guardian
    assert p.roles == {Role.guardian, Role.teacher}
    assert p.org_id == org


@pytest.mark.asyncio
async def test_org_falls_back_to_profile_then_fails() -> None:
    user_id, org = uuid.uuid4(), uuid.uuid4()
    token = issue_token(cfg=CFG, subject=user_id, roles=["teacher"])

    p = await _resolve(token, _stored(user_id, org, "teacher"))
    assert p.org_id == org

    with pytest.raises(MissingOrganization):
        await _resolve(token, FakeUsers())


@pytest.mark.asyncio
async def test_session_is_checked_against_the_stored_profile() -> None:
    user_id, org = uuid.uuid4(), uuid.uuid4()
    token = issue_token(
        cfg=CFG, subject=user_id, roles=["teacher", "principal"], active_role="principal", org_id=org
    )

    # Deleted or deactivated users (or orgs) have no stored profile.
    with pytest.raises(Unauthenticated):
        await _resolve(token, FakeUsers())

    # The claimed org must be the one on file.
    with pytest.raises(Unauthenticated):
        await _resolve(token, _stored(user_id, uuid.uuid4(), "teacher", "principal"))

    # A revoked active role ends the session; other revoked roles are dropped.
    with pytest.raises(Unauthenticated):
        await _resolve(token, _stored(user_id, org, "teacher"))
    p = await _resolve(
        issue_token(cfg=CFG, subject=user_id, roles=["teacher", "principal"], org_id=org),
        _stored(user_id, org, "teacher"),
    )
    assert p.roles == {Role.teacher}


@pytest.mark.asyncio
async def test_missing_organization_is_403(client, seed) -> None:
    org = await seed.org("north")
    user = await seed.user(org, "teacher")
    token = seed.token(user, with_org=False)
    # Claim-less token still resolves through the stored profile.
    r = await client.get("/session", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["org_id"] == str(org.id)

    # A subject with no stored profile has nowhere to take the org from.
    ghost = User(id=uuid.uuid4(), org_id=org.id, role="teacher", roles=["teacher"], first_name="G")
    r = await client.get("/session", headers=seed.auth(ghost, with_org=False))
    assert r.status_code == 403
    assert r.json()["code"] == "missing_organization"


@pytest.mark.asyncio
async def test_query_string_token_is_ignored(client, seed) -> None:
    org = await seed.org("north")
    user = await seed.user(org, "admin")
    r = await client.get("/session", params={"token": seed.token(user)})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_dev_sign_in_sets_cookie_and_switches_role(client, seed) -> None:
    org = await seed.org("north")
    user = await seed.user(org, "teacher", roles=["teacher", "principal"])

    r = await client.post("/session", json={"user_id": str(user.id), "role": "admin"})
    assert r.status_code == 200
    body = r.json()
    assert body["active_role"] == "teacher"
    assert body["home_path"] == "/dashboard/teacher"
    assert "samvera_session" in r.cookies

    # The cookie now authenticates follow-up requests.
    r = await client.get("/session")
    assert r.status_code == 200
    assert r.json()["user_id"] == str(user.id)

    r = await client.post("/session/active-role", json={"role": "admin"})
    assert r.status_code == 403

    r = await client.post("/session/active-role", json={"role": "principal"})
    assert r.status_code == 200
    assert r.json()["active_role"] == "principal"
    r = await client.get("/session")
    assert r.json()["active_role"] == "principal"

    r = await client.delete("/session")
    assert r.status_code == 200
    client.cookies.clear()
    r = await client.get("/session")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_deleted_user_or_org_ends_existing_sessions(client, seed) -> None:
    home = await seed.org("home")
    north = await seed.org("north")
    admin = await seed.user(home, "admin")
    principal = await seed.user(north, "principal")
    teacher = await seed.user(north, "teacher")
    teacher_auth = seed.auth(teacher)

    r = await client.get("/students", headers=teacher_auth)
    assert r.status_code == 200

    r = await client.delete("/staff", params={"id": str(teacher.id)}, headers=seed.auth(principal))
    assert r.status_code == 200
    r = await client.get("/students", headers=teacher_auth)
    assert r.status_code == 401
    assert r.json()["code"] == "unauthenticated"

    principal_auth = seed.auth(principal)
    assert (await client.get("/students", headers=principal_auth)).status_code == 200
    r = await client.delete("/orgs", params={"id": str(north.id)}, headers=seed.auth(admin))
    assert r.status_code == 200
    r = await client.get("/students", headers=principal_auth)
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_claimed_org_and_roles_must_match_the_profile(client, seed) -> None:
    north = await seed.org("north")
    south = await seed.org("south")
    teacher = await seed.user(north, "teacher")

    # Validly signed, but claims an organization the user does not belong to.
    token_user = User(id=teacher.id, org_id=south.id, role="teacher", roles=["teacher"], first_name="T")
    r = await client.get("/session", headers=seed.auth(token_user))
    assert r.status_code == 401

    # Roles not on file are never granted, even with a validly signed token.
    r = await client.get("/session", headers=seed.auth(teacher, roles=["principal"]))
    assert r.status_code == 401
    r = await client.get("/session", headers=seed.auth(teacher, roles=["teacher", "principal"]))
    assert r.status_code == 200
    assert r.json()["roles"] == ["teacher"]
