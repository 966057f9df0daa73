"""
samvera.api.routers.guardian_students

Links between guardians and students (what a guardian may see).
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
from samvera.auth.models import Role
from samvera.auth.policy import Operation
from samvera.db.models import GuardianStudent
from samvera.db.repositories.students import GuardianLinkRepo, StudentRepo
from samvera.db.repositories.users import UserRepo
from samvera.errors import Conflict, ValidationFailed
from samvera.services import audit
from samvera.services.scoping import ensure_in_scope, ensure_reference
from samvera.validation import (
    PageParams,
    RequestModel,
    ShortText,
    page_params,
    page_response,
)

router = APIRouter(prefix="/guardian-students", tags=["guardian_students"])


class LinkOut(OutModel):
    id: uuid.UUID
    guardian_id: uuid.UUID
    student_id: uuid.UUID
    relation: str | None
    created_at: datetime


class LinkCreate(RequestModel):
    guardian_id: uuid.UUID
    student_id: uuid.UUID
    relation: ShortText | None = None


@router.get("")
async def list_links(
    guardian_id: uuid.UUID | None = Query(default=None, alias="guardianId"),
    student_id: uuid.UUID | None = Query(default=None, alias="studentId"),
    ctx: RequestContext = Depends(guard("guardian_students", Operation.list)),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = GuardianLinkRepo(session)
    stmt = repo.live(ctx.org_id)
    if guardian_id is not None:
        stmt = stmt.where(GuardianStudent.guardian_id == guardian_id)
    if student_id is not None:
        stmt = stmt.where(GuardianStudent.student_id == student_id)
    rows, total = await repo.page(stmt, offset=params.offset, limit=params.limit)
    return page_response([LinkOut.dump(r) for r in rows], total, params)


@router.post("", status_code=HTTP_201_CREATED)
async def create_link(
    body: LinkCreate,
    ctx: RequestContext = Depends(guard("guardian_students", Operation.create)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    guardian = await ensure_reference(ctx, UserRepo(session), body.guardian_id, field="guardian_id")
    if guardian.role != Role.guardian:
        raise ValidationFailed.single("guardian_id", "User is not a guardian")
    await ensure_reference(ctx, StudentRepo(session), body.student_id, field="student_id")

    repo = GuardianLinkRepo(session)
    if await repo.find(body.guardian_id, body.student_id) is not None:
        raise Conflict("Guardian is already linked to this student")
    link = await repo.add(GuardianStudent(org_id=ctx.org_id, **body.model_dump()))
    await audit.record(
        session, ctx, resource="guardian_students", action="create", resource_id=link.id
    )
    await session.commit()
    return LinkOut.dump(link)


@router.delete("")
async def delete_link(
    link_id: uuid.UUID = Query(alias="id"),
    ctx: RequestContext = Depends(guard("guardian_students", Operation.delete)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, bool]:
    repo = GuardianLinkRepo(session)
    link = ensure_in_scope(ctx, await repo.get(link_id), kind="Guardian link")
    await audit.record(
        session, ctx, resource="guardian_students", action="delete", resource_id=link.id,
        details={"guardian_id": str(link.guardian_id), "student_id": str(link.student_id)},
    )
    await repo.delete(link)
    await session.commit()
    return DELETED
