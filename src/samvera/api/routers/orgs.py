"""
samvera.api.routers.orgs

Organization (tenant) management.

Responsibilities:
- Admin-only listing, creation, update and deactivation of organizations.
- `/orgs/mine`: the caller's own organization, for any role.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from samvera.api.deps import db_session
from samvera.api.schemas import DELETED, OutModel
from samvera.auth.context import RequestContext
from samvera.auth.deps import guard
from samvera.auth.policy import Operation
from samvera.db.models import Organization, utcnow
from samvera.db.repositories.base import apply_patch
from samvera.db.repositories.orgs import OrganizationRepo
from samvera.errors import Conflict, Forbidden, NotFound
from samvera.services import audit
from samvera.validation import (
    Email,
    Name,
    PageParams,
    RequestModel,
    ShortText,
    Slug,
    page_params,
    page_response,
    patch_of,
)

router = APIRouter(prefix="/orgs", tags=["orgs"])


class OrgOut(OutModel):
    id: uuid.UUID
    name: str
    slug: str
    email: str | None
    phone: str | None
    address: str | None
    timezone: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class OrgCreate(RequestModel):
    name: Name
    slug: Slug
    email: Email | None = None
    phone: ShortText | None = None
    address: ShortText | None = None
    timezone: ShortText = "UTC"


class OrgUpdate(RequestModel):
    id: uuid.UUID
    name: Name | None = None
    slug: Slug | None = None
    email: Email | None = None
    phone: ShortText | None = None
    address: ShortText | None = None
    timezone: ShortText | None = None


async def _live_org(repo: OrganizationRepo, org_id: uuid.UUID) -> Organization:
    org = await repo.get(org_id)
    if org is None or org.deleted_at is not None:
        raise NotFound("Organization")
    return org


@router.get("")
async def list_orgs(
    ctx: RequestContext = Depends(guard("orgs", Operation.list)),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    rows, total = await OrganizationRepo(session).list_page(
        offset=params.offset, limit=params.limit
    )
    return page_response([OrgOut.dump(r) for r in rows], total, params)


@router.get("/mine")
async def my_org(
    ctx: RequestContext = Depends(guard("org_self", Operation.read)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return OrgOut.dump(await _live_org(OrganizationRepo(session), ctx.org_id))


@router.post("", status_code=HTTP_201_CREATED)
async def create_org(
    body: OrgCreate,
    ctx: RequestContext = Depends(guard("orgs", Operation.create)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = OrganizationRepo(session)
    if await repo.get_by_slug(body.slug) is not None:
        raise Conflict("Organization slug already in use")
    org = await repo.create(**body.model_dump())
    await audit.record(session, ctx, resource="orgs", action="create", resource_id=org.id)
    await session.commit()
    return OrgOut.dump(org)


@router.put("")
async def update_org(
    body: OrgUpdate,
    ctx: RequestContext = Depends(guard("orgs", Operation.update)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = OrganizationRepo(session)
    org = await _live_org(repo, body.id)
    patch = patch_of(body, required=("name", "slug", "timezone"))
    if "slug" in patch and patch["slug"] != org.slug:
        if await repo.get_by_slug(patch["slug"]) is not None:
            raise Conflict("Organization slug already in use")
    apply_patch(org, patch)
    await audit.record(
        session, ctx, resource="orgs", action="update", resource_id=org.id,
        details={"fields": sorted(patch)},
    )
    await session.commit()
    return OrgOut.dump(org)


@router.delete("")
async def deactivate_org(
    org_id: uuid.UUID = Query(alias="id"),
    ctx: RequestContext = Depends(guard("orgs", Operation.delete)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, bool]:
    if org_id == ctx.org_id:
        raise Forbidden("Cannot deactivate your own organization")
    org = await _live_org(OrganizationRepo(session), org_id)
    now = utcnow()
    org.is_active = False
    org.deleted_at = now
    org.updated_at = now
    await audit.record(session, ctx, resource="orgs", action="delete", resource_id=org.id)
    await session.commit()
    return DELETED


# --- Module Notes -----------------------------------------------------------
# Organizations are never hard-deleted; their slug stays reserved after deactivation.
