"""
samvera.db.repositories.content

Repositories for published content: menus, photos and announcements.
"""

from __future__ import annotations

import uuid
from datetime import date

from samvera.db.models import Announcement, Menu, Photo
from samvera.db.repositories.base import TenantRepo


class MenuRepo(TenantRepo[Menu]):
    model = Menu

    async def for_day(
        self,
        org_id: uuid.UUID,
        *,
        day: date,
        class_id: uuid.UUID | None,
        exclude_id: uuid.UUID | None = None,
    ) -> Menu | None:
        # One live menu per (org, class-or-whole-school, day).
        class_match = Menu.class_id.is_(None) if class_id is None else Menu.class_id == class_id
        stmt = self.live(org_id, Menu.day == day, class_match)
        if exclude_id is not None:
            stmt = stmt.where(Menu.id != exclude_id)
        return (await self._session.execute(stmt.limit(1))).scalar_one_or_none()


class PhotoRepo(TenantRepo[Photo]):
    model = Photo


class AnnouncementRepo(TenantRepo[Announcement]):
    model = Announcement
