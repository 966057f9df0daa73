"""
samvera.db.repositories.users

Repository for `User` rows (staff, guardians, principals, admins).

Responsibilities:
- Load the stored profile that every session is checked against.
- Directory listings by role and e-mail uniqueness checks within an org.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import Select, func, select

from samvera.db.models import Organization, User
from samvera.db.repositories.base import TenantRepo


@dataclass(frozen=True, slots=True)
class SessionProfile:
    org_id: uuid.UUID
    roles: tuple[str, ...]


class UserRepo(TenantRepo[User]):
    model = User

    async def session_profile(self, user_id: uuid.UUID) -> SessionProfile | None:
        # Only live, active users of live, active organizations may hold a session.
        stmt = (
            select(User.org_id, User.roles, User.role)
            .join(Organization, Organization.id == User.org_id)
            .where(
                User.id == user_id,
                User.deleted_at.is_(None),
                User.is_active.is_(True),
                Organization.deleted_at.is_(None),
                Organization.is_active.is_(True),
            )
        )
        row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return SessionProfile(org_id=row.org_id, roles=tuple(row.roles or [row.role]))

    def directory(self, org_id: uuid.UUID, role: str) -> Select[tuple[User]]:
        return self.live(org_id, User.role == str(role))

    def across_orgs(self, role: str, org_id: uuid.UUID | None = None) -> Select[tuple[User]]:
        # Admin views span tenants; `org_id` narrows to one.
        stmt = select(User).where(User.role == str(role), User.deleted_at.is_(None))
        if org_id is not None:
            stmt = stmt.where(User.org_id == org_id)
        return stmt

    async def find_by_email(
        self, org_id: uuid.UUID, email: str, *, exclude_id: uuid.UUID | None = None
    ) -> User | None:
        stmt = self.live(org_id, func.lower(User.email) == email.lower())
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        return (await self._session.execute(stmt.limit(1))).scalar_one_or_none()

    async def active_members(self, org_id: uuid.UUID, user_ids: Iterable[uuid.UUID]) -> list[User]:
        ids = list(set(user_ids))
        if not ids:
            return []
        stmt = self.live(org_id, User.id.in_(ids), User.is_active.is_(True))
        return list((await self._session.execute(stmt)).scalars().all())

    async def count_role(self, org_id: uuid.UUID, role: str) -> int:
        return await self.count_of(self.directory(org_id, role))


# --- Module Notes -----------------------------------------------------------
# `session_profile` is read on every request, so deleting or deactivating a user
# (or their organization) ends their sessions immediately rather than at expiry.
