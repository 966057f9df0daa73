"""
samvera.db.repositories.daily_logs

Repository for `DailyLog` entries (classroom activity notes).
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta

from sqlalchemy import Select, or_

from samvera.db.models import DailyLog
from samvera.db.repositories.base import TenantRepo


class DailyLogRepo(TenantRepo[DailyLog]):
    model = DailyLog

    def on_day(self, stmt: Select[tuple[DailyLog]], day: date) -> Select[tuple[DailyLog]]:
        start = datetime.combine(day, time.min)
        end = start + timedelta(days=1)
        return stmt.where(DailyLog.recorded_at >= start, DailyLog.recorded_at < end)

    def visible_to_teacher(
        self,
        stmt: Select[tuple[DailyLog]],
        teacher_id: uuid.UUID,
        class_ids: Iterable[uuid.UUID],
    ) -> Select[tuple[DailyLog]]:
        # Logs of the teacher's classes, plus anything they wrote themselves.
        return stmt.where(
            or_(DailyLog.class_id.in_(list(class_ids)), DailyLog.created_by == teacher_id)
        )
