"""
samvera.api.routers.attendance

Daily attendance.

Responsibilities:
- List attendance with date/class/student filters; guardians see only their children.
- Record attendance as an upsert on (student, day), singly or in batches.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from fastapi import APIRouter, Depends, Query, Response
from pydantic import Field
from sqlalchemy import desc
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_200_OK, HTTP_201_CREATED

from samvera.api.deps import db_session
from samvera.api.schemas import OutModel
from samvera.auth.context import RequestContext
from samvera.auth.deps import guard
from samvera.auth.models import Role
from samvera.auth.policy import Operation
from samvera.db.models import Attendance, AttendanceStatus, Student, utcnow
from samvera.db.repositories.attendance import AttendanceRepo
from samvera.db.repositories.students import StudentRepo
from samvera.errors import ValidationFailed
from samvera.services import audit
from samvera.services.scoping import ensure_reference
from samvera.validation import LongText, PageParams, RequestModel, page_params, page_response

router = APIRouter(prefix="/attendance", tags=["attendance"])

MAX_BATCH = 200


class AttendanceOut(OutModel):
    id: uuid.UUID
    student_id: uuid.UUID
    class_id: uuid.UUID | None
    day: date = Field(serialization_alias="date")
    status: AttendanceStatus
    notes: str | None
    recorded_by: uuid.UUID | None
    updated_at: datetime


class AttendanceIn(RequestModel):
    student_id: uuid.UUID
    day: date = Field(alias="date")
    status: AttendanceStatus
    notes: LongText | None = None


class AttendanceBatch(RequestModel):
    records: list[AttendanceIn] = Field(min_length=1, max_length=MAX_BATCH)


async def _upsert(
    ctx: RequestContext, repo: AttendanceRepo, student: Student, record: AttendanceIn
) -> tuple[Attendance, bool]:
    row = await repo.for_student_day(student.id, record.day)
    if row is None:
        row = await repo.add(
            Attendance(
                org_id=ctx.org_id,
                class_id=student.class_id,
                student_id=student.id,
                day=record.day,
                status=record.status,
                notes=record.notes,
                recorded_by=ctx.user_id,
            )
        )
        return row, True
    row.status = record.status
    row.notes = record.notes
    row.class_id = student.class_id
    row.recorded_by = ctx.user_id
    row.updated_at = utcnow()
    return row, False


@router.get("")
async def list_attendance(
    day: date | None = Query(default=None, alias="date"),
    class_id: uuid.UUID | None = Query(default=None, alias="classId"),
    student_id: uuid.UUID | None = Query(default=None, alias="studentId"),
    ctx: RequestContext = Depends(guard("attendance", Operation.list)),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = AttendanceRepo(session)
    stmt = repo.live(ctx.org_id)
    if ctx.role == Role.guardian:
        linked = await StudentRepo(session).linked_ids(ctx.org_id, ctx.user_id)
        stmt = stmt.where(Attendance.student_id.in_(list(linked)))
    if day is not None:
        stmt = stmt.where(Attendance.day == day)
    if class_id is not None:
        stmt = stmt.where(Attendance.class_id == class_id)
    if student_id is not None:
        stmt = stmt.where(Attendance.student_id == student_id)
    rows, total = await repo.page(
        stmt,
        offset=params.offset,
        limit=params.limit,
        order_by=[desc(Attendance.day), Attendance.student_id],
    )
    return page_response([AttendanceOut.dump(r) for r in rows], total, params)


@router.post("", status_code=HTTP_201_CREATED)
async def record_attendance(
    body: AttendanceIn,
    response: Response,
    ctx: RequestContext = Depends(guard("attendance", Operation.create)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    student = await ensure_reference(ctx, StudentRepo(session), body.student_id, field="student_id")
    row, created = await _upsert(ctx, AttendanceRepo(session), student, body)
    await audit.record(
        session, ctx, resource="attendance", action="create" if created else "update",
        resource_id=row.id, details={"date": body.day.isoformat(), "status": str(body.status)},
    )
    await session.commit()
    if not created:
        response.status_code = HTTP_200_OK
    return AttendanceOut.dump(row)


@router.post("/batch")
async def record_attendance_batch(
    body: AttendanceBatch,
    ctx: RequestContext = Depends(guard("attendance", Operation.create)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    students = StudentRepo(session)
    wanted = {r.student_id for r in body.records}
    stmt = students.live(ctx.org_id, Student.id.in_(list(wanted)))
    found = {s.id: s for s in (await session.execute(stmt)).scalars().all()}

    unknown = {
        f"records.{i}.student_id": ["Unknown identifier"]
        for i, r in enumerate(body.records)
        if r.student_id not in found
    }
    if unknown:
        raise ValidationFailed(unknown)

    repo = AttendanceRepo(session)
    items: list[dict[str, Any]] = []
    created_count = 0
    for record in body.records:
        row, created = await _upsert(ctx, repo, found[record.student_id], record)
        created_count += int(created)
        items.append(AttendanceOut.dump(row))

    await audit.record(
        session, ctx, resource="attendance", action="batch", resource_id=None,
        details={"records": len(items), "created": created_count},
    )
    await session.commit()
    return {"items": items, "created": created_count, "updated": len(items) - created_count}


# --- Module Notes -----------------------------------------------------------
# A batch repeating the same (student, day) applies the records in order; the
# last one wins.
