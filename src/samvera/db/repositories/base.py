"""
samvera.db.repositories.base

Shared data access for tenant-scoped, soft-deletable tables.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import ColumnElement, Select, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from samvera.db.base import Base
from samvera.db.models import utcnow

M = TypeVar("M", bound=Base)


class TenantRepo(Generic[M]):
    model: ClassVar[type[Any]]

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, row_id: uuid.UUID) -> M | None:
        # Unfiltered primary-key fetch: callers run the scope check on the result.
        return await self._session.get(self.model, row_id)

    def live(self, org_id: uuid.UUID, *criteria: ColumnElement[bool]) -> Select[tuple[M]]:
        stmt = select(self.model).where(self.model.org_id == org_id, *criteria)
        if hasattr(self.model, "deleted_at"):
            stmt = stmt.where(self.model.deleted_at.is_(None))
        return stmt

    async def page(
        self,
        stmt: Select[tuple[M]],
        *,
        offset: int,
        limit: int,
        order_by: Sequence[Any] | None = None,
    ) -> tuple[list[M], int]:
        total = (
            await self._session.execute(
                select(func.count()).select_from(stmt.order_by(None).subquery())
            )
        ).scalar_one()
        ordering = order_by if order_by is not None else [desc(self.model.created_at)]
        rows = (
            await self._session.execute(stmt.order_by(*ordering).offset(offset).limit(limit))
        ).scalars()
        return list(rows.all()), int(total)

    async def count_of(self, stmt: Select[Any]) -> int:
        total = await self._session.execute(select(func.count()).select_from(stmt.subquery()))
        return int(total.scalar_one())

    async def add(self, row: M) -> M:
        self._session.add(row)
        await self._session.flush()
        return row

    async def soft_delete(self, row: M) -> None:
        now = utcnow()
        row.deleted_at = now  # type: ignore[attr-defined]
        row.updated_at = now  # type: ignore[attr-defined]
        await self._session.flush()


def apply_patch(row: Any, patch: dict[str, Any]) -> None:
    # `patch` comes from `model_dump(exclude_unset=True)`; explicit nulls clear fields.
    for key, value in patch.items():
        setattr(row, key, value)
    if hasattr(row, "updated_at"):
        row.updated_at = utcnow()


# --- Module Notes -----------------------------------------------------------
# `page` counts over the same filtered statement it pages, so totals never include
# soft-deleted or other-tenant rows.
