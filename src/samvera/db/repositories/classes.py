"""
samvera.db.repositories.classes

Repositories for classes and teacher assignments.

Responsibilities:
- Live classes of an organization, and the classes one teacher is assigned to.
- Create and remove (class, teacher) assignments; removal is physical.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Select, delete, exists, select

from samvera.db.models import ClassTeacher, SchoolClass
from samvera.db.repositories.base import TenantRepo


class ClassRepo(TenantRepo[SchoolClass]):
    model = SchoolClass

    def assigned_to(self, org_id: uuid.UUID, teacher_id: uuid.UUID) -> Select[tuple[SchoolClass]]:
        assigned = exists().where(
            ClassTeacher.class_id == SchoolClass.id,
            ClassTeacher.teacher_id == teacher_id,
        )
        return self.live(org_id, assigned)

    async def assigned_ids(self, org_id: uuid.UUID, teacher_id: uuid.UUID) -> set[uuid.UUID]:
        stmt = self.assigned_to(org_id, teacher_id).with_only_columns(SchoolClass.id)
        return set((await self._session.execute(stmt)).scalars().all())


class ClassTeacherRepo(TenantRepo[ClassTeacher]):
    model = ClassTeacher

    async def find(self, class_id: uuid.UUID, teacher_id: uuid.UUID) -> ClassTeacher | None:
        stmt = select(ClassTeacher).where(
            ClassTeacher.class_id == class_id,
            ClassTeacher.teacher_id == teacher_id,
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def delete(self, row: ClassTeacher) -> None:
        await self._session.delete(row)
        await self._session.flush()

    async def delete_for_class(self, class_id: uuid.UUID) -> None:
        await self._session.execute(delete(ClassTeacher).where(ClassTeacher.class_id == class_id))

    async def delete_for_teacher(self, teacher_id: uuid.UUID) -> None:
        await self._session.execute(
            delete(ClassTeacher).where(ClassTeacher.teacher_id == teacher_id)
        )
