"""
samvera.db.repositories.attendance

Repository for daily `Attendance` records.

Attendance has no soft delete; one row exists per (student, day) and is updated
in place when attendance is recorded again.
"""

from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import select

from samvera.db.models import Attendance
from samvera.db.repositories.base import TenantRepo


class AttendanceRepo(TenantRepo[Attendance]):
    model = Attendance

    async def for_student_day(self, student_id: uuid.UUID, day: date) -> Attendance | None:
        stmt = select(Attendance).where(Attendance.student_id == student_id, Attendance.day == day)
        return (await self._session.execute(stmt)).scalar_one_or_none()
