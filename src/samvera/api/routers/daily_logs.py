"""
samvera.api.routers.daily_logs

Classroom daily logs (arrivals, meals, naps, activities, free notes).

Responsibilities:
- Staff-only CRUD; teachers see logs of their assigned classes plus their own.
- A teacher may only file logs against a class they are assigned to, and may
  only change logs they wrote.
- The author's display name is stored with the log.
"""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from pydantic import StringConstraints, field_validator
from sqlalchemy import desc
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from samvera.api.deps import db_session
from samvera.api.schemas import DELETED, OutModel
from samvera.auth.context import RequestContext
from samvera.auth.deps import guard
from samvera.auth.models import Role
from samvera.auth.policy import Operation
from samvera.db.models import DailyLog, DailyLogKind
from samvera.db.repositories.base import apply_patch
from samvera.db.repositories.classes import ClassRepo
from samvera.db.repositories.daily_logs import DailyLogRepo
from samvera.db.repositories.users import UserRepo
from samvera.errors import Forbidden
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

ImageUrl = Annotated[str, StringConstraints(max_length=1024, pattern=r"^https?://")]

router = APIRouter(prefix="/daily-logs", tags=["daily-logs"])


class DailyLogOut(OutModel):
    id: uuid.UUID
    class_id: uuid.UUID | None
    kind: DailyLogKind
    recorded_at: datetime
    note: str | None
    image: str | None
    is_public: bool
    created_by: uuid.UUID | None
    creator_name: str | None
    created_at: datetime
    updated_at: datetime


class _LogFields(RequestModel):
    @field_validator("recorded_at", check_fields=False)
    @classmethod
    def _naive_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is not None:
            return value.astimezone(UTC).replace(tzinfo=None)
        return value


class DailyLogCreate(_LogFields):
    class_id: uuid.UUID | None = None
    kind: DailyLogKind = DailyLogKind.activity
    recorded_at: datetime | None = None
    note: LongText | None = None
    image: ImageUrl | None = None
    is_public: bool = False


class DailyLogUpdate(_LogFields):
    id: uuid.UUID
    class_id: uuid.UUID | None = None
    kind: DailyLogKind | None = None
    recorded_at: datetime | None = None
    note: LongText | None = None
    image: ImageUrl | None = None
    is_public: bool | None = None


async def _check_class(
    ctx: RequestContext, session: AsyncSession, class_id: uuid.UUID | None
) -> None:
    if class_id is None:
        return
    repo = ClassRepo(session)
    await ensure_reference(ctx, repo, class_id, field="class_id")
    if ctx.role == Role.teacher and class_id not in await repo.assigned_ids(ctx.org_id, ctx.user_id):
        raise Forbidden("Not assigned to this class")


async def _creator_name(session: AsyncSession, user_id: uuid.UUID) -> str:
    user = await UserRepo(session).get(user_id)
    if user is None:
        return "Unknown"
    full = " ".join(p for p in (user.first_name, user.last_name) if p)
    return full or user.email or "Unknown"


@router.get("")
async def list_daily_logs(
    class_id: uuid.UUID | None = Query(default=None, alias="classId"),
    day: date | None = Query(default=None, alias="date"),
    kind: DailyLogKind | None = Query(default=None),
    ctx: RequestContext = Depends(guard("daily_logs", Operation.list)),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = DailyLogRepo(session)
    stmt = repo.live(ctx.org_id)
    if ctx.role == Role.teacher:
        assigned = await ClassRepo(session).assigned_ids(ctx.org_id, ctx.user_id)
        stmt = repo.visible_to_teacher(stmt, ctx.user_id, assigned)
    if class_id is not None:
        stmt = stmt.where(DailyLog.class_id == class_id)
    if day is not None:
        stmt = repo.on_day(stmt, day)
    if kind is not None:
        stmt = stmt.where(DailyLog.kind == kind)
    rows, total = await repo.page(
        stmt,
        offset=params.offset,
        limit=params.limit,
        order_by=[desc(DailyLog.recorded_at), DailyLog.id],
    )
    return page_response([DailyLogOut.dump(r) for r in rows], total, params)


@router.post("", status_code=HTTP_201_CREATED)
async def create_daily_log(
    body: DailyLogCreate,
    ctx: RequestContext = Depends(guard("daily_logs", Operation.create)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    await _check_class(ctx, session, body.class_id)
    fields = body.model_dump(exclude_none=True)
    row = await DailyLogRepo(session).add(
        DailyLog(
            org_id=ctx.org_id,
            created_by=ctx.user_id,
            creator_name=await _creator_name(session, ctx.user_id),
            **fields,
        )
    )
    await audit.record(
        session, ctx, resource="daily_logs", action="create", resource_id=row.id,
        details={"kind": str(row.kind)},
    )
    await session.commit()
    return DailyLogOut.dump(row)


@router.put("")
async def update_daily_log(
    body: DailyLogUpdate,
    ctx: RequestContext = Depends(guard("daily_logs", Operation.update)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    row = ensure_in_scope(ctx, await DailyLogRepo(session).get(body.id), kind="Daily log")
    ensure_author(ctx, row, field="created_by")
    patch = patch_of(body, required=("kind", "recorded_at", "is_public"))
    if "class_id" in patch:
        await _check_class(ctx, session, patch["class_id"])
    apply_patch(row, patch)
    await audit.record(
        session, ctx, resource="daily_logs", action="update", resource_id=row.id,
        details={"fields": sorted(patch)},
    )
    await session.commit()
    return DailyLogOut.dump(row)


@router.delete("")
async def delete_daily_log(
    log_id: uuid.UUID = Query(alias="id"),
    ctx: RequestContext = Depends(guard("daily_logs", Operation.delete)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, bool]:
    repo = DailyLogRepo(session)
    row = ensure_in_scope(ctx, await repo.get(log_id), kind="Daily log")
    ensure_author(ctx, row, field="created_by")
    await repo.soft_delete(row)
    await audit.record(session, ctx, resource="daily_logs", action="delete", resource_id=row.id)
    await session.commit()
    return DELETED
