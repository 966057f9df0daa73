"""
samvera.api.routers.menus

Daily menus, optionally per class.

Responsibilities:
- At most one live menu per (day, class); a clash is a 409.
- Guardians only see menus marked public.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlalchemy import desc
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from samvera.api.deps import db_session
from samvera.api.schemas import DELETED, OutModel
from samvera.auth.context import RequestContext
from samvera.auth.deps import guard
from samvera.auth.models import Role
from samvera.auth.policy import Operation
from samvera.db.models import Menu
from samvera.db.repositories.base import apply_patch
from samvera.db.repositories.classes import ClassRepo
from samvera.db.repositories.content import MenuRepo
from samvera.errors import Conflict
from samvera.services import audit
from samvera.services.scoping import ensure_in_scope, ensure_reference
from samvera.validation import (
    LongText,
    PageParams,
    RequestModel,
    page_params,
    page_response,
    patch_of,
)

router = APIRouter(prefix="/menus", tags=["menus"])


class MenuOut(OutModel):
    id: uuid.UUID
    class_id: uuid.UUID | None
    day: date = Field(serialization_alias="date")
    breakfast: str | None
    lunch: str | None
    snack: str | None
    notes: str | None
    is_public: bool
    created_by: uuid.UUID | None
    updated_at: datetime


class MenuCreate(RequestModel):
    day: date = Field(alias="date")
    class_id: uuid.UUID | None = None
    breakfast: LongText | None = None
    lunch: LongText | None = None
    snack: LongText | None = None
    notes: LongText | None = None
    is_public: bool = True


class MenuUpdate(RequestModel):
    id: uuid.UUID
    day: date | None = Field(default=None, alias="date")
    class_id: uuid.UUID | None = None
    breakfast: LongText | None = None
    lunch: LongText | None = None
    snack: LongText | None = None
    notes: LongText | None = None
    is_public: bool | None = None


@router.get("")
async def list_menus(
    day: date | None = Query(default=None, alias="date"),
    class_id: uuid.UUID | None = Query(default=None, alias="classId"),
    ctx: RequestContext = Depends(guard("menus", Operation.list)),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = MenuRepo(session)
    stmt = repo.live(ctx.org_id)
    if ctx.role == Role.guardian:
        stmt = stmt.where(Menu.is_public.is_(True))
    if day is not None:
        stmt = stmt.where(Menu.day == day)
    if class_id is not None:
        stmt = stmt.where(Menu.class_id == class_id)
    rows, total = await repo.page(
        stmt, offset=params.offset, limit=params.limit, order_by=[desc(Menu.day), Menu.id]
    )
    return page_response([MenuOut.dump(r) for r in rows], total, params)


@router.post("", status_code=HTTP_201_CREATED)
async def create_menu(
    body: MenuCreate,
    ctx: RequestContext = Depends(guard("menus", Operation.create)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    if body.class_id is not None:
        await ensure_reference(ctx, ClassRepo(session), body.class_id, field="class_id")
    repo = MenuRepo(session)
    if await repo.for_day(ctx.org_id, day=body.day, class_id=body.class_id) is not None:
        raise Conflict("A menu already exists for this day")
    menu = await repo.add(Menu(org_id=ctx.org_id, created_by=ctx.user_id, **body.model_dump()))
    await audit.record(session, ctx, resource="menus", action="create", resource_id=menu.id)
    await session.commit()
    return MenuOut.dump(menu)


@router.put("")
async def update_menu(
    body: MenuUpdate,
    ctx: RequestContext = Depends(guard("menus", Operation.update)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = MenuRepo(session)
    menu = ensure_in_scope(ctx, await repo.get(body.id), kind="Menu")
    patch = patch_of(body, required=("day", "is_public"))
    if patch.get("class_id") is not None:
        await ensure_reference(ctx, ClassRepo(session), patch["class_id"], field="class_id")
    day = patch.get("day", menu.day)
    class_id = patch.get("class_id", menu.class_id)
    if await repo.for_day(ctx.org_id, day=day, class_id=class_id, exclude_id=menu.id) is not None:
        raise Conflict("A menu already exists for this day")
    apply_patch(menu, patch)
    await audit.record(
        session, ctx, resource="menus", action="update", resource_id=menu.id,
        details={"fields": sorted(patch)},
    )
    await session.commit()
    return MenuOut.dump(menu)


@router.delete("")
async def delete_menu(
    menu_id: uuid.UUID = Query(alias="id"),
    ctx: RequestContext = Depends(guard("menus", Operation.delete)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, bool]:
    repo = MenuRepo(session)
    menu = ensure_in_scope(ctx, await repo.get(menu_id), kind="Menu")
    await repo.soft_delete(menu)
    await audit.record(session, ctx, resource="menus", action="delete", resource_id=menu.id)
    await session.commit()
    return DELETED
