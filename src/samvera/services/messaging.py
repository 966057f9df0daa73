"""
samvera.services.messaging

Messaging flows (transaction owner).

Responsibilities:
- Open threads (with direct-message de-duplication) and seed participant rows.
- Enforce participant membership as a finer-grained scope than the organization.
- Post items: insert, flag every other participant unread, bump the thread.
- Thread deletion is limited to the creator or a manager taking part in it.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from samvera.auth.context import RequestContext
from samvera.auth.policy import MANAGERS
from samvera.db.models import (
    MessageItem,
    MessageParticipant,
    MessageThread,
    ThreadType,
    utcnow,
)
from samvera.db.repositories.messages import ItemRepo, ParticipantRepo, ThreadRepo
from samvera.db.repositories.users import UserRepo
from samvera.errors import Forbidden, ValidationFailed
from samvera.observability.logging import get_logger
from samvera.services import audit
from samvera.services.scoping import ensure_in_scope
from samvera.validation import PageParams

log = get_logger(__name__)


class MessagingService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._threads = ThreadRepo(session)
        self._participants = ParticipantRepo(session)
        self._items = ItemRepo(session)
        self._users = UserRepo(session)

    async def _thread_for(
        self, ctx: RequestContext, message_id: uuid.UUID
    ) -> tuple[MessageThread, MessageParticipant]:
        # Existence/tenant first (404), then membership (403).
        thread = ensure_in_scope(ctx, await self._threads.get(message_id), kind="Message thread")
        participant = await self._participants.get(thread.id, ctx.user_id)
        if participant is None:
            raise Forbidden("Not a participant in this thread")
        return thread, participant

    async def list_threads(
        self, ctx: RequestContext, params: PageParams
    ) -> tuple[list[tuple[MessageThread, bool]], int, dict[uuid.UUID, list[uuid.UUID]]]:
        rows, total = await self._threads.page_for_participant(
            ctx.org_id, ctx.user_id, offset=params.offset, limit=params.limit
        )
        members = await self._participants.user_ids(thread.id for thread, _ in rows)
        return rows, total, members

    async def open_thread(
        self,
        ctx: RequestContext,
        *,
        thread_type: ThreadType,
        subject: str | None,
        recipient_ids: list[uuid.UUID],
    ) -> tuple[MessageThread, list[uuid.UUID], bool]:
        others = [r for r in dict.fromkeys(recipient_ids) if r != ctx.user_id]
        if not others:
            raise ValidationFailed.single("recipient_ids", "At least one other recipient is required")
        if thread_type == ThreadType.dm and len(others) != 1:
            raise ValidationFailed.single("recipient_ids", "Direct messages take exactly one recipient")

        # Same message whether the id is unknown, inactive or in another org.
        members = await self._users.active_members(ctx.org_id, others)
        if len(members) != len(others):
            raise ValidationFailed.single("recipient_ids", "Unknown recipient")

        if thread_type == ThreadType.dm:
            existing = await self._threads.find_dm(ctx.org_id, ctx.user_id, others[0])
            if existing is not None:
                return existing, [ctx.user_id, others[0]], False

        thread = await self._threads.add(
            MessageThread(
                org_id=ctx.org_id,
                thread_type=thread_type,
                subject=subject,
                created_by=ctx.user_id,
            )
        )
        participant_ids = [ctx.user_id, *others]
        await self._participants.add_all(
            org_id=ctx.org_id,
            message_id=thread.id,
            user_ids=participant_ids,
            sender_id=ctx.user_id,
        )
        await audit.record(
            self._session,
            ctx,
            resource="messages",
            action="create",
            resource_id=thread.id,
            details={"participants": len(participant_ids)},
        )
        await self._session.commit()
        return thread, participant_ids, True

    async def rename(
        self, ctx: RequestContext, message_id: uuid.UUID, *, subject: str | None
    ) -> MessageThread:
        thread, _ = await self._thread_for(ctx, message_id)
        thread.subject = subject
        thread.updated_at = utcnow()
        await audit.record(
            self._session, ctx, resource="messages", action="update", resource_id=thread.id
        )
        await self._session.commit()
        return thread

    async def delete_thread(self, ctx: RequestContext, message_id: uuid.UUID) -> None:
        thread, _ = await self._thread_for(ctx, message_id)
        # Deletion hides the thread from every participant.
        if thread.created_by != ctx.user_id and ctx.role not in MANAGERS:
            raise Forbidden("Only the thread creator can delete this thread")
        await self._threads.soft_delete(thread)
        await audit.record(
            self._session, ctx, resource="messages", action="delete", resource_id=thread.id
        )
        await self._session.commit()

    async def list_items(
        self, ctx: RequestContext, message_id: uuid.UUID, params: PageParams
    ) -> tuple[list[MessageItem], int]:
        thread, participant = await self._thread_for(ctx, message_id)
        items, total = await self._items.page(
            self._items.in_thread(ctx.org_id, thread.id),
            offset=params.offset,
            limit=params.limit,
            order_by=[MessageItem.created_at, MessageItem.id],
        )
        # Reading a thread clears the reader's unread flag.
        await self._participants.mark_read(participant)
        await self._session.commit()
        return items, total

    async def post_item(
        self,
        ctx: RequestContext,
        message_id: uuid.UUID,
        *,
        body: str,
        attachments: list[Any],
    ) -> MessageItem:
        thread, _ = await self._thread_for(ctx, message_id)
        item = await self._items.add(
            MessageItem(
                org_id=ctx.org_id,
                message_id=thread.id,
                author_id=ctx.user_id,
                body=body,
                attachments=attachments,
            )
        )
        await self._participants.mark_others_unread(thread.id, ctx.user_id)
        thread.updated_at = utcnow()
        await audit.record(
            self._session,
            ctx,
            resource="message_items",
            action="create",
            resource_id=item.id,
            details={"message_id": str(thread.id)},
        )
        await self._session.commit()
        log.info("messages.item_posted", message_id=str(thread.id), item_id=str(item.id))
        return item

    async def delete_item(self, ctx: RequestContext, item_id: uuid.UUID) -> None:
        item = ensure_in_scope(ctx, await self._items.get(item_id), kind="Message")
        await self._thread_for(ctx, item.message_id)
        if item.author_id != ctx.user_id:
            raise Forbidden("Only the author can delete this message")
        await self._items.soft_delete(item)
        await audit.record(
            self._session, ctx, resource="message_items", action="delete", resource_id=item.id
        )
        await self._session.commit()


# --- Module Notes -----------------------------------------------------------
# Each flow commits once at the end; a failure mid-way leaves nothing behind
# because nothing was committed yet.
