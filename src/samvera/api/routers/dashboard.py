"""
samvera.api.routers.dashboard

Per-role dashboard counters for the caller's organization.

Responsibilities:
- Managers: directory sizes (students, staff, guardians, classes).
- Teachers: students, classes, the classes assigned to them and today's attendance records.
- Guardians: linked children and visible announcements.
- Everyone: unread message threads.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from samvera.api.deps import db_session
from samvera.auth.context import RequestContext
from samvera.auth.deps import guard
from samvera.auth.models import Role
from samvera.auth.policy import Operation
from samvera.db.models import Announcement, Attendance, utcnow
from samvera.db.repositories.attendance import AttendanceRepo
from samvera.db.repositories.classes import ClassRepo
from samvera.db.repositories.content import AnnouncementRepo
from samvera.db.repositories.messages import ParticipantRepo
from samvera.db.repositories.students import StudentRepo
from samvera.db.repositories.users import UserRepo

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/metrics")
async def metrics(
    ctx: RequestContext = Depends(guard("dashboard", Operation.read)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    students = StudentRepo(session)
    classes = ClassRepo(session)
    out: dict[str, Any] = {
        "role": str(ctx.role),
        "unreadMessages": await ParticipantRepo(session).unread_count(ctx.org_id, ctx.user_id),
    }

    if ctx.role in (Role.admin, Role.principal):
        users = UserRepo(session)
        out["students"] = await students.count_of(students.live(ctx.org_id))
        out["staff"] = await users.count_role(ctx.org_id, Role.teacher)
        out["guardians"] = await users.count_role(ctx.org_id, Role.guardian)
        out["classes"] = await classes.count_of(classes.live(ctx.org_id))
    elif ctx.role == Role.teacher:
        attendance = AttendanceRepo(session)
        today = utcnow().date()
        out["students"] = await students.count_of(students.live(ctx.org_id))
        out["classes"] = await classes.count_of(classes.live(ctx.org_id))
        out["myClasses"] = await classes.count_of(classes.assigned_to(ctx.org_id, ctx.user_id))
        out["attendanceToday"] = await attendance.count_of(
            attendance.live(ctx.org_id, Attendance.day == today)
        )
    else:
        announcements = AnnouncementRepo(session)
        out["children"] = await students.count_of(students.linked_to(ctx.org_id, ctx.user_id))
        out["announcements"] = await announcements.count_of(
            announcements.live(ctx.org_id, Announcement.is_public.is_(True))
        )
    return out


# --- Module Notes -----------------------------------------------------------
# "Today" is the UTC date; organizations' own timezones are not applied yet.
