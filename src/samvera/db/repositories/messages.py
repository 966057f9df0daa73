"""
samvera.db.repositories.messages

Repository for message threads, their participants and items.

Responsibilities:
- Participant lookups (the finer-grained scope for messaging).
- Unread flag maintenance and direct-message thread de-duplication.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable

from sqlalchemy import Select, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from samvera.db.models import (
    MessageItem,
    MessageParticipant,
    MessageThread,
    ThreadType,
    utcnow,
)
from samvera.db.repositories.base import TenantRepo


class ThreadRepo(TenantRepo[MessageThread]):
    model = MessageThread

    def for_participant(
        self, org_id: uuid.UUID, user_id: uuid.UUID
    ) -> Select[tuple[MessageThread, bool]]:
        return (
            select(MessageThread, MessageParticipant.unread)
            .join(MessageParticipant, MessageParticipant.message_id == MessageThread.id)
            .where(
                MessageThread.org_id == org_id,
                MessageThread.deleted_at.is_(None),
                MessageParticipant.user_id == user_id,
            )
        )

    async def page_for_participant(
        self, org_id: uuid.UUID, user_id: uuid.UUID, *, offset: int, limit: int
    ) -> tuple[list[tuple[MessageThread, bool]], int]:
        stmt = self.for_participant(org_id, user_id)
        total = (
            await self._session.execute(select(func.count()).select_from(stmt.subquery()))
        ).scalar_one()
        ordered = stmt.order_by(desc(MessageThread.updated_at)).offset(offset).limit(limit)
        rows = (await self._session.execute(ordered)).all()
        return [(thread, bool(unread)) for thread, unread in rows], int(total)

    async def find_dm(
        self, org_id: uuid.UUID, user_a: uuid.UUID, user_b: uuid.UUID
    ) -> MessageThread | None:
        both = (
            select(MessageParticipant.message_id)
            .where(MessageParticipant.user_id.in_([user_a, user_b]))
            .group_by(MessageParticipant.message_id)
            .having(func.count(MessageParticipant.user_id) == 2)
        )
        stmt = self.live(
            org_id,
            MessageThread.thread_type == ThreadType.dm,
            MessageThread.id.in_(both),
        ).order_by(desc(MessageThread.updated_at))
        return (await self._session.execute(stmt.limit(1))).scalars().first()


class ParticipantRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, message_id: uuid.UUID, user_id: uuid.UUID) -> MessageParticipant | None:
        stmt = select(MessageParticipant).where(
            MessageParticipant.message_id == message_id,
            MessageParticipant.user_id == user_id,
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def user_ids(self, message_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, list[uuid.UUID]]:
        ids = list(message_ids)
        out: dict[uuid.UUID, list[uuid.UUID]] = {i: [] for i in ids}
        if not ids:
            return out
        stmt = (
            select(MessageParticipant.message_id, MessageParticipant.user_id)
            .where(MessageParticipant.message_id.in_(ids))
            .order_by(MessageParticipant.created_at)
        )
        for message_id, user_id in (await self._session.execute(stmt)).all():
            out[message_id].append(user_id)
        return out

    async def add_all(
        self,
        *,
        org_id: uuid.UUID,
        message_id: uuid.UUID,
        user_ids: Iterable[uuid.UUID],
        sender_id: uuid.UUID,
    ) -> None:
        for user_id in user_ids:
            self._session.add(
                MessageParticipant(
                    org_id=org_id,
                    message_id=message_id,
                    user_id=user_id,
                    unread=user_id != sender_id,
                )
            )
        await self._session.flush()

    async def mark_others_unread(self, message_id: uuid.UUID, sender_id: uuid.UUID) -> None:
        stmt = (
            update(MessageParticipant)
            .where(
                MessageParticipant.message_id == message_id,
                MessageParticipant.user_id != sender_id,
            )
            .values(unread=True, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        await self._session.execute(stmt)

    async def mark_read(self, participant: MessageParticipant) -> None:
        if participant.unread:
            participant.unread = False
            participant.updated_at = utcnow()
            await self._session.flush()

    async def unread_count(self, org_id: uuid.UUID, user_id: uuid.UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(MessageParticipant)
            .join(MessageThread, MessageThread.id == MessageParticipant.message_id)
            .where(
                MessageParticipant.org_id == org_id,
                MessageParticipant.user_id == user_id,
                MessageParticipant.unread.is_(True),
                MessageThread.deleted_at.is_(None),
            )
        )
        return int((await self._session.execute(stmt)).scalar_one())


class ItemRepo(TenantRepo[MessageItem]):
    model = MessageItem

    def in_thread(self, org_id: uuid.UUID, message_id: uuid.UUID) -> Select[tuple[MessageItem]]:
        return self.live(org_id, MessageItem.message_id == message_id)
