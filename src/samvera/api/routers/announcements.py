"""
samvera.api.routers.announcements

Organization and class announcements. Teachers change only their own.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from pydantic import StringConstraints
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from samvera.api.deps import db_session
from samvera.api.schemas import DELETED, OutModel
from samvera.auth.context import RequestContext
from samvera.auth.deps import guard
from samvera.auth.models import Role
from samvera.auth.policy import Operation
from samvera.db.models import Announcement
from samvera.db.repositories.base import apply_patch
from samvera.db.repositories.classes import ClassRepo
from samvera.db.repositories.content import AnnouncementRepo
from samvera.services import audit
from samvera.services.scoping import ensure_author, ensure_in_scope, ensure_reference
from samvera.validation import (
    LongText,
    PageParams,
    RequestModel,
    page_params,
    page_response,
    patch_of,
)

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=300)]

router = APIRouter(prefix="/announcements", tags=["announcements"])


class AnnouncementOut(OutModel):
    id: uuid.UUID
    class_id: uuid.UUID | None
    author_id: uuid.UUID | None
    title: str
    body: str | None
    week_start: date | None
    is_public: bool
    created_at: datetime
    updated_at: datetime


class AnnouncementCreate(RequestModel):
    title: Title
    body: LongText | None = None
    class_id: uuid.UUID | None = None
    week_start: date | None = None
    is_public: bool = True


class AnnouncementUpdate(RequestModel):
    id: uuid.UUID
    title: Title | None = None
    body: LongText | None = None
    class_id: uuid.UUID | None = None
    week_start: date | None = None
    is_public: bool | None = None


@router.get("")
async def list_announcements(
    class_id: uuid.UUID | None = Query(default=None, alias="classId"),
    ctx: RequestContext = Depends(guard("announcements", Operation.list)),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = AnnouncementRepo(session)
    stmt = repo.live(ctx.org_id)
    if ctx.role == Role.guardian:
        stmt = stmt.where(Announcement.is_public.is_(True))
    if class_id is not None:
        stmt = stmt.where(Announcement.class_id == class_id)
    rows, total = await repo.page(stmt, offset=params.offset, limit=params.limit)
    return page_response([AnnouncementOut.dump(r) for r in rows], total, params)


@router.post("", status_code=HTTP_201_CREATED)
async def create_announcement(
    body: AnnouncementCreate,
    ctx: RequestContext = Depends(guard("announcements", Operation.create)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    if body.class_id is not None:
        await ensure_reference(ctx, ClassRepo(session), body.class_id, field="class_id")
    row = await AnnouncementRepo(session).add(
        Announcement(org_id=ctx.org_id, author_id=ctx.user_id, **body.model_dump())
    )
    await audit.record(session, ctx, resource="announcements", action="create", resource_id=row.id)
    await session.commit()
    return AnnouncementOut.dump(row)


@router.put("")
async def update_announcement(
    body: AnnouncementUpdate,
    ctx: RequestContext = Depends(guard("announcements", Operation.update)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    row = ensure_in_scope(ctx, await AnnouncementRepo(session).get(body.id), kind="Announcement")
    ensure_author(ctx, row)
    patch = patch_of(body, required=("title", "is_public"))
    if patch.get("class_id") is not None:
        await ensure_reference(ctx, ClassRepo(session), patch["class_id"], field="class_id")
    apply_patch(row, patch)
    await audit.record(
        session, ctx, resource="announcements", action="update", resource_id=row.id,
        details={"fields": sorted(patch)},
    )
    await session.commit()
    return AnnouncementOut.dump(row)


@router.delete("")
async def delete_announcement(
    announcement_id: uuid.UUID = Query(alias="id"),
    ctx: RequestContext = Depends(guard("announcements", Operation.delete)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, bool]:
    repo = AnnouncementRepo(session)
    row = ensure_in_scope(ctx, await repo.get(announcement_id), kind="Announcement")
    ensure_author(ctx, row)
    await repo.soft_delete(row)
    await audit.record(session, ctx, resource="announcements", action="delete", resource_id=row.id)
    await session.commit()
    return DELETED
