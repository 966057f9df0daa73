"""
samvera.api.routers.session

Session endpoints.

Responsibilities:
- Report the current principal and its landing page.
- Switch the active role among roles the principal already holds.
- Dev/test sign-in that sets the session cookie (hidden in prod).
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_404_NOT_FOUND

from samvera.api.deps import db_session, settings_dep
from samvera.auth.deps import get_principal
from samvera.auth.jwt import JwtConfig, issue_token
from samvera.auth.models import Principal, Role, parse_role, parse_roles
from samvera.db.repositories.users import UserRepo
from samvera.errors import Forbidden, Unauthenticated, ValidationFailed
from samvera.observability.logging import get_logger
from samvera.settings import Settings
from samvera.validation import RequestModel

log = get_logger(__name__)

router = APIRouter(prefix="/session", tags=["session"])


class SignInRequest(RequestModel):
    user_id: uuid.UUID
    active_role: str | None = None


class ActiveRoleRequest(RequestModel):
    role: str


def _describe(principal: Principal) -> dict[str, Any]:
    return {
        "user_id": str(principal.id),
        "org_id": str(principal.org_id),
        "roles": sorted(str(r) for r in principal.roles),
        "active_role": str(principal.active_role),
        "home_path": principal.home_path,
    }


def _set_session_cookie(
    response: Response,
    settings: Settings,
    *,
    subject: uuid.UUID,
    roles: list[Role],
    active_role: Role,
    org_id: uuid.UUID,
) -> None:
    ttl = timedelta(minutes=settings.session_ttl_minutes)
    token = issue_token(
        cfg=JwtConfig.from_settings(settings),
        subject=subject,
        roles=[str(r) for r in roles],
        active_role=str(active_role),
        org_id=org_id,
        ttl=ttl,
    )
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=int(ttl.total_seconds()),
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        path="/",
    )


@router.get("")
async def current_session(principal: Principal = Depends(get_principal)) -> dict[str, Any]:
    return _describe(principal)


@router.post("")
async def sign_in(
    body: SignInRequest,
    response: Response,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    if settings.env == "prod":
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Not Found")

    user = await UserRepo(session).get(body.user_id)
    if user is None or user.deleted_at is not None or not user.is_active:
        raise Unauthenticated("Unknown or inactive user")
    # Roles come from the stored profile; the request only picks among them.
    roles = parse_roles(user.roles or [user.role])
    if not roles:
        raise Unauthenticated("User holds no roles")

    active = roles[0]
    if body.active_role is not None:
        requested = parse_role(body.active_role)
        if requested is None or requested not in roles:
            raise ValidationFailed.single("active_role", "Role not held by this user")
        active = requested

    _set_session_cookie(
        response, settings, subject=user.id, roles=roles, active_role=active, org_id=user.org_id
    )
    log.info("session.signed_in", user_id=str(user.id), role=str(active))
    principal = Principal(
        id=user.id, org_id=user.org_id, roles=frozenset(roles), active_role=active
    )
    return _describe(principal)


@router.post("/active-role")
async def switch_active_role(
    body: ActiveRoleRequest,
    response: Response,
    principal: Principal = Depends(get_principal),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    role = parse_role(body.role)
    if role is None:
        raise ValidationFailed.single("role", "Unknown role")
    if not principal.holds(role):
        raise Forbidden("Role not held by this user", required=[role], actual=principal.active_role)

    _set_session_cookie(
        response,
        settings,
        subject=principal.id,
        roles=sorted(principal.roles, key=str),
        active_role=role,
        org_id=principal.org_id,
    )
    switched = Principal(
        id=principal.id, org_id=principal.org_id, roles=principal.roles, active_role=role
    )
    return _describe(switched)


@router.delete("")
async def sign_out(
    response: Response, settings: Settings = Depends(settings_dep)
) -> dict[str, bool]:
    response.delete_cookie(settings.session_cookie_name, path="/")
    return {"success": True}


# --- Module Notes -----------------------------------------------------------
# In production the cookie is minted by the identity provider with the same secret;
# only the role switch re-issues it here.
