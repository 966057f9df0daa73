"""
samvera.auth.session

Session resolver: turn a session credential into a typed `Principal`.

Responsibilities:
- Validate the session token and normalize its identity claims.
- Resolve the tenant (claim first, stored profile second) and fail loudly if absent.
- Check every session against the live user and organization rows.
"""

from __future__ import annotations

import uuid
from typing import Any

from samvera.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate
from samvera.auth.models import Principal, Role, parse_role, parse_roles
from samvera.db.repositories.users import UserRepo
from samvera.errors import MissingOrganization, Unauthenticated
from samvera.observability.logging import get_logger

log = get_logger(__name__)


def _parse_uuid_claim(value: Any, *, claim: str) -> uuid.UUID | None:
    if value in (None, ""):
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError as e:
        raise Unauthenticated(f"Invalid session {claim}") from e


def _active_role(payload: dict[str, Any], roles: list[Role]) -> Role:
    raw = payload.get("active_role")
    if raw is None:
        return roles[0]
    active = parse_role(raw)
    if active is None or active not in roles:
        raise Unauthenticated("Active role is not held by this session")
    return active


async def resolve_principal(
    *,
    token: str | None,
    cfg: JwtConfig,
    users: UserRepo,
) -> Principal:
    """
    Resolve a session token into a `Principal`.

    The token is checked against the stored profile on every call: a deleted or
    deactivated user, a deactivated organization, a claimed organization that
    differs from the stored one and roles no longer held all end the session.
    """

    if not token:
        raise Unauthenticated()

    try:
        payload = decode_and_validate(cfg=cfg, token=token)
    except JwtValidationError as e:
        log.info("session.invalid_token", reason=str(e))
        raise Unauthenticated("Invalid session") from e

    subject = _parse_uuid_claim(payload.get("sub"), claim="subject")
    if subject is None:
        raise Unauthenticated("Invalid session subject")

    roles_raw = payload.get("roles", [])
    if not isinstance(roles_raw, list):
        raise Unauthenticated("Invalid session roles")
    claimed_roles = parse_roles(roles_raw)
    if not claimed_roles:
        raise Unauthenticated("Session carries no roles")

    claimed_org = _parse_uuid_claim(payload.get("org_id"), claim="organization")
    profile = await users.session_profile(subject)

    # Claim first, stored profile second; never a configured default.
    org_id = claimed_org if claimed_org is not None else (profile.org_id if profile else None)
    if org_id is None:
        log.warning("session.missing_organization", user_id=str(subject))
        raise MissingOrganization()

    if profile is None:
        log.info("session.revoked", user_id=str(subject))
        raise Unauthenticated("Session is no longer valid")
    if profile.org_id != org_id:
        log.warning(
            "session.organization_mismatch",
            user_id=str(subject),
            claimed_org_id=str(org_id),
        )
        raise Unauthenticated("Invalid session organization")

    held = set(parse_roles(profile.roles))
    roles = [r for r in claimed_roles if r in held]
    if not roles:
        log.info("session.roles_revoked", user_id=str(subject))
        raise Unauthenticated("Session carries no roles")

    active = _active_role(payload, roles)
    return Principal(id=subject, org_id=org_id, roles=frozenset(roles), active_role=active)


# --- Module Notes -----------------------------------------------------------
# FastAPI wiring (cookie/bearer extraction, DB session) lives in `auth.deps`; this
# module stays framework-free so it can be unit-tested directly.
