"""
samvera.api.routers.classes

Classes of an organization.

Responsibilities:
- CRUD over classes for managers; every staff member can list them.
- `GET /classes/mine` returns the classes the caller is assigned to teach.
- Deleting a class drops its teacher assignments.
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
from samvera.db.models import SchoolClass
from samvera.db.repositories.base import apply_patch
from samvera.db.repositories.classes import ClassRepo, ClassTeacherRepo
from samvera.services import audit
from samvera.services.scoping import ensure_in_scope
from samvera.validation import (
    LongText,
    Name,
    PageParams,
    RequestModel,
    page_params,
    page_response,
    patch_of,
)

router = APIRouter(prefix="/classes", tags=["classes"])


class ClassOut(OutModel):
    id: uuid.UUID
    name: str
    description: str | None
    created_at: datetime
    updated_at: datetime


class ClassCreate(RequestModel):
    name: Name
    description: LongText | None = None


class ClassUpdate(RequestModel):
    id: uuid.UUID
    name: Name | None = None
    description: LongText | None = None


@router.get("")
async def list_classes(
    ctx: RequestContext = Depends(guard("classes", Operation.list)),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = ClassRepo(session)
    rows, total = await repo.page(
        repo.live(ctx.org_id),
        offset=params.offset,
        limit=params.limit,
        order_by=[SchoolClass.name, SchoolClass.id],
    )
    return page_response([ClassOut.dump(r) for r in rows], total, params)


@router.get("/mine")
async def my_classes(
    ctx: RequestContext = Depends(guard("classes", Operation.list)),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = ClassRepo(session)
    rows, total = await repo.page(
        repo.assigned_to(ctx.org_id, ctx.user_id),
        offset=params.offset,
        limit=params.limit,
        order_by=[SchoolClass.name, SchoolClass.id],
    )
    return page_response([ClassOut.dump(r) for r in rows], total, params)


@router.post("", status_code=HTTP_201_CREATED)
async def create_class(
    body: ClassCreate,
    ctx: RequestContext = Depends(guard("classes", Operation.create)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    row = await ClassRepo(session).add(SchoolClass(org_id=ctx.org_id, **body.model_dump()))
    await audit.record(session, ctx, resource="classes", action="create", resource_id=row.id)
    await session.commit()
    return ClassOut.dump(row)


@router.put("")
async def update_class(
    body: ClassUpdate,
    ctx: RequestContext = Depends(guard("classes", Operation.update)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    row = ensure_in_scope(ctx, await ClassRepo(session).get(body.id), kind="Class")
    patch = patch_of(body, required=("name",))
    apply_patch(row, patch)
    await audit.record(
        session, ctx, resource="classes", action="update", resource_id=row.id,
        details={"fields": sorted(patch)},
    )
    await session.commit()
    return ClassOut.dump(row)


@router.delete("")
async def delete_class(
    class_id: uuid.UUID = Query(alias="id"),
    ctx: RequestContext = Depends(guard("classes", Operation.delete)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, bool]:
    repo = ClassRepo(session)
    row = ensure_in_scope(ctx, await repo.get(class_id), kind="Class")
    await repo.soft_delete(row)
    await ClassTeacherRepo(session).delete_for_class(row.id)
    await audit.record(session, ctx, resource="classes", action="delete", resource_id=row.id)
    await session.commit()
    return DELETED
