"""
samvera.api.routers.messages

Message threads (`/messages`) and their items (`/message-items`).

Responsibilities:
- Validate requests and delegate to `MessagingService`, which owns the transaction.
- Serialize threads with the caller's own `unread` flag and the participant list.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Response
from pydantic import Field, StringConstraints
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_200_OK, HTTP_201_CREATED

from samvera.api.deps import db_session
from samvera.api.schemas import DELETED, OutModel
from samvera.auth.context import RequestContext
from samvera.auth.deps import guard
from samvera.auth.policy import Operation
from samvera.db.models import MessageThread, ThreadType
from samvera.services.messaging import MessagingService
from samvera.validation import PageParams, RequestModel, ShortText, page_params, page_response

MessageBody = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=10_000)
]

threads_router = APIRouter(prefix="/messages", tags=["messages"])
items_router = APIRouter(prefix="/message-items", tags=["messages"])


class ThreadOut(OutModel):
    id: uuid.UUID
    thread_type: ThreadType
    subject: str | None
    created_by: uuid.UUID | None
    created_at: datetime
    updated_at: datetime


class ItemOut(OutModel):
    id: uuid.UUID
    message_id: uuid.UUID
    author_id: uuid.UUID | None
    body: str
    attachments: list[Any]
    created_at: datetime


class ThreadCreate(RequestModel):
    thread_type: ThreadType = ThreadType.group
    subject: ShortText | None = None
    recipient_ids: list[uuid.UUID] = Field(min_length=1, max_length=500)


class ThreadUpdate(RequestModel):
    id: uuid.UUID
    subject: ShortText | None = None


class ItemCreate(RequestModel):
    message_id: uuid.UUID
    body: MessageBody
    attachments: list[Any] = Field(default_factory=list, max_length=20)


def _thread(thread: MessageThread, *, unread: bool, participants: list[uuid.UUID]) -> dict[str, Any]:
    out = ThreadOut.dump(thread)
    out["unread"] = unread
    out["participant_ids"] = [str(p) for p in participants]
    return out


@threads_router.get("")
async def list_threads(
    ctx: RequestContext = Depends(guard("messages", Operation.list)),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    rows, total, members = await MessagingService(session).list_threads(ctx, params)
    items = [
        _thread(thread, unread=unread, participants=members.get(thread.id, []))
        for thread, unread in rows
    ]
    return page_response(items, total, params)


@threads_router.post("", status_code=HTTP_201_CREATED)
async def open_thread(
    body: ThreadCreate,
    response: Response,
    ctx: RequestContext = Depends(guard("messages", Operation.create)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    thread, participants, created = await MessagingService(session).open_thread(
        ctx, thread_type=body.thread_type, subject=body.subject, recipient_ids=body.recipient_ids
    )
    if not created:
        # Existing direct-message thread between the same two users.
        response.status_code = HTTP_200_OK
    return _thread(thread, unread=False, participants=participants)


@threads_router.put("")
async def rename_thread(
    body: ThreadUpdate,
    ctx: RequestContext = Depends(guard("messages", Operation.update)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    thread = await MessagingService(session).rename(ctx, body.id, subject=body.subject)
    return ThreadOut.dump(thread)


@threads_router.delete("")
async def delete_thread(
    message_id: uuid.UUID = Query(alias="id"),
    ctx: RequestContext = Depends(guard("messages", Operation.delete)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, bool]:
    await MessagingService(session).delete_thread(ctx, message_id)
    return DELETED


@items_router.get("")
async def list_items(
    message_id: uuid.UUID = Query(alias="messageId"),
    ctx: RequestContext = Depends(guard("message_items", Operation.list)),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    items, total = await MessagingService(session).list_items(ctx, message_id, params)
    return page_response([ItemOut.dump(i) for i in items], total, params)


@items_router.post("", status_code=HTTP_201_CREATED)
async def post_item(
    body: ItemCreate,
    ctx: RequestContext = Depends(guard("message_items", Operation.create)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    item = await MessagingService(session).post_item(
        ctx, body.message_id, body=body.body, attachments=body.attachments
    )
    return ItemOut.dump(item)


@items_router.delete("")
async def delete_item(
    item_id: uuid.UUID = Query(alias="id"),
    ctx: RequestContext = Depends(guard("message_items", Operation.delete)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, bool]:
    await MessagingService(session).delete_item(ctx, item_id)
    return DELETED
