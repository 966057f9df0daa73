"""
samvera.api.routers.students

Student records.

Responsibilities:
- Staff see every live student in their organization; guardians see only the
  children linked to them through `guardian_students`.
- Validate `class_id` references against the caller's organization.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
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
from samvera.db.models import Student
from samvera.db.repositories.base import apply_patch
from samvera.db.repositories.classes import ClassRepo
from samvera.db.repositories.students import StudentRepo
from samvera.errors import NotFound
from samvera.services import audit
from samvera.services.scoping import ensure_in_scope, ensure_reference
from samvera.validation import (
    LongText,
    Name,
    PageParams,
    RequestModel,
    ShortText,
    page_params,
    page_response,
    patch_of,
)

router = APIRouter(prefix="/students", tags=["students"])


class StudentOut(OutModel):
    id: uuid.UUID
    class_id: uuid.UUID | None
    first_name: str
    last_name: str | None
    dob: date | None
    language: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


class StudentCreate(RequestModel):
    first_name: Name
    last_name: ShortText | None = None
    class_id: uuid.UUID | None = None
    dob: date | None = None
    language: ShortText | None = None
    notes: LongText | None = None


class StudentUpdate(RequestModel):
    id: uuid.UUID
    first_name: Name | None = None
    last_name: ShortText | None = None
    class_id: uuid.UUID | None = None
    dob: date | None = None
    language: ShortText | None = None
    notes: LongText | None = None


@router.get("")
async def list_students(
    class_id: uuid.UUID | None = Query(default=None, alias="classId"),
    ctx: RequestContext = Depends(guard("students", Operation.list)),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = StudentRepo(session)
    if ctx.role == Role.guardian:
        stmt = repo.linked_to(ctx.org_id, ctx.user_id)
    else:
        stmt = repo.live(ctx.org_id)
    if class_id is not None:
        stmt = stmt.where(Student.class_id == class_id)
    rows, total = await repo.page(
        stmt,
        offset=params.offset,
        limit=params.limit,
        order_by=[Student.last_name, Student.first_name, Student.id],
    )
    return page_response([StudentOut.dump(r) for r in rows], total, params)


@router.get("/{student_id}")
async def read_student(
    student_id: uuid.UUID,
    ctx: RequestContext = Depends(guard("students", Operation.read)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = StudentRepo(session)
    student = ensure_in_scope(ctx, await repo.get(student_id), kind="Student")
    if ctx.role == Role.guardian and student.id not in await repo.linked_ids(
        ctx.org_id, ctx.user_id
    ):
        raise NotFound("Student")
    return StudentOut.dump(student)


@router.post("", status_code=HTTP_201_CREATED)
async def create_student(
    body: StudentCreate,
    ctx: RequestContext = Depends(guard("students", Operation.create)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    if body.class_id is not None:
        await ensure_reference(ctx, ClassRepo(session), body.class_id, field="class_id")
    student = await StudentRepo(session).add(Student(org_id=ctx.org_id, **body.model_dump()))
    await audit.record(session, ctx, resource="students", action="create", resource_id=student.id)
    await session.commit()
    return StudentOut.dump(student)


@router.put("")
async def update_student(
    body: StudentUpdate,
    ctx: RequestContext = Depends(guard("students", Operation.update)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    student = ensure_in_scope(ctx, await StudentRepo(session).get(body.id), kind="Student")
    patch = patch_of(body, required=("first_name",))
    if patch.get("class_id") is not None:
        await ensure_reference(ctx, ClassRepo(session), patch["class_id"], field="class_id")
    apply_patch(student, patch)
    await audit.record(
        session, ctx, resource="students", action="update", resource_id=student.id,
        details={"fields": sorted(patch)},
    )
    await session.commit()
    return StudentOut.dump(student)


@router.delete("")
async def delete_student(
    student_id: uuid.UUID = Query(alias="id"),
    ctx: RequestContext = Depends(guard("students", Operation.delete)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, bool]:
    repo = StudentRepo(session)
    student = ensure_in_scope(ctx, await repo.get(student_id), kind="Student")
    await repo.soft_delete(student)
    await audit.record(session, ctx, resource="students", action="delete", resource_id=student.id)
    await session.commit()
    return DELETED
