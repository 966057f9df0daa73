"""
samvera.db.repositories.orgs

Repository for `Organization` (the tenant boundary itself, so not org-filtered).
"""

from __future__ import annotations

import uuid

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from samvera.db.models import Organization


class OrganizationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, org_id: uuid.UUID) -> Organization | None:
        return await self._session.get(Organization, org_id)

    async def get_by_slug(self, slug: str) -> Organization | None:
        # Includes deactivated orgs: slugs stay reserved after deactivation.
        stmt = select(Organization).where(Organization.slug == slug)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_page(self, *, offset: int, limit: int) -> tuple[list[Organization], int]:
        live = select(Organization).where(Organization.deleted_at.is_(None))
        total = (
            await self._session.execute(select(func.count()).select_from(live.subquery()))
        ).scalar_one()
        stmt = live.order_by(desc(Organization.created_at)).offset(offset).limit(limit)
        return list((await self._session.execute(stmt)).scalars().all()), int(total)

    async def create(self, **fields: object) -> Organization:
        org = Organization(**fields)
        self._session.add(org)
        await self._session.flush()
        return org
