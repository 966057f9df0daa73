"""
samvera.db.repositories.students

Repository for `Student` rows and guardian links.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Select, exists, select

from samvera.db.models import GuardianStudent, Student
from samvera.db.repositories.base import TenantRepo


class StudentRepo(TenantRepo[Student]):
    model = Student

    def linked_to(self, org_id: uuid.UUID, guardian_id: uuid.UUID) -> Select[tuple[Student]]:
        link = exists().where(
            GuardianStudent.student_id == Student.id,
            GuardianStudent.guardian_id == guardian_id,
        )
        return self.live(org_id, link)

    async def linked_ids(self, org_id: uuid.UUID, guardian_id: uuid.UUID) -> set[uuid.UUID]:
        stmt = self.linked_to(org_id, guardian_id).with_only_columns(Student.id)
        return set((await self._session.execute(stmt)).scalars().all())


class GuardianLinkRepo(TenantRepo[GuardianStudent]):
    model = GuardianStudent

    async def find(self, guardian_id: uuid.UUID, student_id: uuid.UUID) -> GuardianStudent | None:
        stmt = select(GuardianStudent).where(
            GuardianStudent.guardian_id == guardian_id,
            GuardianStudent.student_id == student_id,
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def delete(self, link: GuardianStudent) -> None:
        # Links have no soft-delete column; removal is physical.
        await self._session.delete(link)
        await self._session.flush()
