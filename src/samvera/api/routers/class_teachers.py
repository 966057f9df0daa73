"""
samvera.api.routers.class_teachers

Teacher-to-class assignments.

Responsibilities:
- Managers assign active teachers of their organization to classes and remove them.
- Staff list assignments; a teacher only sees their own.
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
from samvera.db.models import ClassTeacher
from samvera.db.repositories.classes import ClassRepo, ClassTeacherRepo
from samvera.db.repositories.users import UserRepo
from samvera.errors import Conflict, ValidationFailed
from samvera.services import audit
from samvera.services.scoping import ensure_in_scope, ensure_reference
from samvera.validation import PageParams, RequestModel, page_params, page_response

router = APIRouter(prefix="/class-teachers", tags=["classes"])


class AssignmentOut(OutModel):
    id: uuid.UUID
    class_id: uuid.UUID
    teacher_id: uuid.UUID
    created_at: datetime


class AssignmentCreate(RequestModel):
    class_id: uuid.UUID
    teacher_id: uuid.UUID


@router.get("")
async def list_assignments(
    class_id: uuid.UUID | None = Query(default=None, alias="classId"),
    teacher_id: uuid.UUID | None = Query(default=None, alias="teacherId"),
    ctx: RequestContext = Depends(guard("class_teachers", Operation.list)),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = ClassTeacherRepo(session)
    stmt = repo.live(ctx.org_id)
    if ctx.role == Role.teacher:
        teacher_id = ctx.user_id
    if class_id is not None:
        stmt = stmt.where(ClassTeacher.class_id == class_id)
    if teacher_id is not None:
        stmt = stmt.where(ClassTeacher.teacher_id == teacher_id)
    rows, total = await repo.page(stmt, offset=params.offset, limit=params.limit)
    return page_response([AssignmentOut.dump(r) for r in rows], total, params)


@router.post("", status_code=HTTP_201_CREATED)
async def assign_teacher(
    body: AssignmentCreate,
    ctx: RequestContext = Depends(guard("class_teachers", Operation.create)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    await ensure_reference(ctx, ClassRepo(session), body.class_id, field="class_id")
    teacher = await ensure_reference(ctx, UserRepo(session), body.teacher_id, field="teacher_id")
    if teacher.role != Role.teacher or not teacher.is_active:
        raise ValidationFailed.single("teacher_id", "Not an active teacher")

    repo = ClassTeacherRepo(session)
    if await repo.find(body.class_id, body.teacher_id) is not None:
        raise Conflict("Teacher is already assigned to this class")
    row = await repo.add(ClassTeacher(org_id=ctx.org_id, **body.model_dump()))
    await audit.record(
        session, ctx, resource="class_teachers", action="create", resource_id=row.id,
        details={"class_id": str(row.class_id), "teacher_id": str(row.teacher_id)},
    )
    await session.commit()
    return AssignmentOut.dump(row)


@router.delete("")
async def remove_assignment(
    assignment_id: uuid.UUID = Query(alias="id"),
    ctx: RequestContext = Depends(guard("class_teachers", Operation.delete)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, bool]:
    repo = ClassTeacherRepo(session)
    row = ensure_in_scope(ctx, await repo.get(assignment_id), kind="Assignment")
    await audit.record(
        session, ctx, resource="class_teachers", action="delete", resource_id=row.id,
        details={"class_id": str(row.class_id), "teacher_id": str(row.teacher_id)},
    )
    await repo.delete(row)
    await session.commit()
    return DELETED
