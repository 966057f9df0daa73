"""
samvera.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Extract the session credential (cookie, then bearer header) and resolve a `Principal`.
- Enforce the role policy table and the per-principal rate limit via `guard(...)`.
- Hand handlers an explicit `RequestContext`.
"""

from __future__ import annotations

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from samvera.api.deps import db_session, settings_dep
from samvera.auth.context import RequestContext
from samvera.auth.jwt import JwtConfig
from samvera.auth.models import Principal
from samvera.auth.policy import Operation, check_role, policy_for
from samvera.auth.rate_limit import RateLimiter
from samvera.auth.session import resolve_principal
from samvera.db.repositories.users import UserRepo
from samvera.settings import Settings

_bearer = HTTPBearer(auto_error=False)


def session_token(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(settings_dep),
) -> str | None:
    # Query-string credentials are never consulted.
    cookie = request.cookies.get(settings.session_cookie_name)
    if cookie:
        return cookie
    if creds is not None and creds.credentials:
        return creds.credentials
    return None


async def get_principal(
    token: str | None = Depends(session_token),
    settings: Settings = Depends(settings_dep),
    session: AsyncSession = Depends(db_session),
) -> Principal:
    principal = await resolve_principal(
        token=token, cfg=JwtConfig.from_settings(settings), users=UserRepo(session)
    )
    structlog.contextvars.bind_contextvars(
        user_id=str(principal.id),
        org_id=str(principal.org_id),
        role=str(principal.active_role),
    )
    return principal


def rate_limiter_from_app(request: Request) -> RateLimiter:
    # Created on app startup in `samvera.api.app.create_app`.
    return request.app.state.rate_limiter  # type: ignore[attr-defined]


def guard(resource: str, operation: Operation):
    policy = policy_for(resource, operation)

    async def _dep(
        principal: Principal = Depends(get_principal),
        limiter: RateLimiter = Depends(rate_limiter_from_app),
    ) -> RequestContext:
        check_role(principal, policy)
        limiter.check(str(principal.id), f"{resource}:{operation}")
        return RequestContext.for_principal(principal, policy)

    return _dep


# --- Module Notes -----------------------------------------------------------
# Every data endpoint takes `ctx: RequestContext = Depends(guard(resource, op))`.
# Resource-level org checks happen after the row is fetched (`services.scoping`).
