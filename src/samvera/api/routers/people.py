"""
samvera.api.routers.people

Staff and guardian directories.

Responsibilities:
- CRUD over `users` rows of one directory kind (`teacher` for staff, `guardian`).
- Keep e-mail unique among an organization's live users.
- Redact contact PII for roles outside the policy's `visible_to` set.

Both directories share one router factory; they differ only in prefix, policy
resource and the `role` stamped on created rows.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from samvera.api.deps import db_session
from samvera.api.schemas import DELETED, OutModel
from samvera.auth.context import RequestContext
from samvera.auth.deps import guard
from samvera.auth.models import Role
from samvera.auth.policy import Operation
from samvera.db.models import User
from samvera.db.repositories.base import apply_patch
from samvera.db.repositories.classes import ClassTeacherRepo
from samvera.db.repositories.users import UserRepo
from samvera.errors import Conflict, NotFound
from samvera.services import audit
from samvera.services.scoping import ensure_in_scope
from samvera.validation import (
    Email,
    Name,
    PageParams,
    RequestModel,
    ShortText,
    page_params,
    page_response,
    patch_of,
)


class PersonOut(OutModel):
    id: uuid.UUID
    org_id: uuid.UUID
    email: str | None
    first_name: str
    last_name: str | None
    phone: str | None
    ssn: str | None
    address: str | None
    job_title: str | None
    role: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PersonCreate(RequestModel):
    email: Email | None = None
    first_name: Name
    last_name: ShortText | None = None
    phone: ShortText | None = None
    ssn: ShortText | None = None
    address: ShortText | None = None
    job_title: ShortText | None = None


class PersonUpdate(RequestModel):
    id: uuid.UUID
    email: Email | None = None
    first_name: Name | None = None
    last_name: ShortText | None = None
    phone: ShortText | None = None
    ssn: ShortText | None = None
    address: ShortText | None = None
    job_title: ShortText | None = None
    is_active: bool | None = None


def _directory_router(*, prefix: str, resource: str, role: Role, kind: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[resource])

    async def _load(ctx: RequestContext, repo: UserRepo, user_id: uuid.UUID) -> User:
        user = ensure_in_scope(ctx, await repo.get(user_id), kind=kind)
        if user.role != role:
            raise NotFound(kind)
        return user

    async def _check_email(
        repo: UserRepo, org_id: uuid.UUID, email: str | None, exclude_id: uuid.UUID | None = None
    ) -> None:
        if email and await repo.find_by_email(org_id, email, exclude_id=exclude_id) is not None:
            raise Conflict("Email already in use")

    @router.get("")
    async def list_people(
        ctx: RequestContext = Depends(guard(resource, Operation.list)),
        params: PageParams = Depends(page_params),
        session: AsyncSession = Depends(db_session),
    ) -> dict[str, Any]:
        repo = UserRepo(session)
        rows, total = await repo.page(
            repo.directory(ctx.org_id, role), offset=params.offset, limit=params.limit
        )
        return page_response([ctx.project(PersonOut.dump(r)) for r in rows], total, params)

    @router.get("/{user_id}")
    async def read_person(
        user_id: uuid.UUID,
        ctx: RequestContext = Depends(guard(resource, Operation.read)),
        session: AsyncSession = Depends(db_session),
    ) -> dict[str, Any]:
        user = await _load(ctx, UserRepo(session), user_id)
        return ctx.project(PersonOut.dump(user))

    @router.post("", status_code=HTTP_201_CREATED)
    async def create_person(
        body: PersonCreate,
        ctx: RequestContext = Depends(guard(resource, Operation.create)),
        session: AsyncSession = Depends(db_session),
    ) -> dict[str, Any]:
        repo = UserRepo(session)
        await _check_email(repo, ctx.org_id, body.email)
        user = await repo.add(
            User(org_id=ctx.org_id, role=str(role), roles=[str(role)], **body.model_dump())
        )
        await audit.record(session, ctx, resource=resource, action="create", resource_id=user.id)
        await session.commit()
        return ctx.project(PersonOut.dump(user))

    @router.put("")
    async def update_person(
        body: PersonUpdate,
        ctx: RequestContext = Depends(guard(resource, Operation.update)),
        session: AsyncSession = Depends(db_session),
    ) -> dict[str, Any]:
        repo = UserRepo(session)
        user = await _load(ctx, repo, body.id)
        patch = patch_of(body, required=("first_name", "is_active"))
        if "email" in patch:
            await _check_email(repo, ctx.org_id, patch["email"], exclude_id=user.id)
        apply_patch(user, patch)
        await audit.record(
            session, ctx, resource=resource, action="update", resource_id=user.id,
            details={"fields": sorted(patch)},
        )
        await session.commit()
        return ctx.project(PersonOut.dump(user))

    @router.delete("")
    async def delete_person(
        user_id: uuid.UUID = Query(alias="id"),
        ctx: RequestContext = Depends(guard(resource, Operation.delete)),
        session: AsyncSession = Depends(db_session),
    ) -> dict[str, bool]:
        repo = UserRepo(session)
        user = await _load(ctx, repo, user_id)
        user.is_active = False
        await repo.soft_delete(user)
        if role == Role.teacher:
            await ClassTeacherRepo(session).delete_for_teacher(user.id)
        await audit.record(session, ctx, resource=resource, action="delete", resource_id=user.id)
        await session.commit()
        return DELETED

    return router


staff_router = _directory_router(
    prefix="/staff", resource="staff", role=Role.teacher, kind="Staff member"
)
guardians_router = _directory_router(
    prefix="/guardians", resource="guardians", role=Role.guardian, kind="Guardian"
)


# --- Module Notes -----------------------------------------------------------
# `role`/`roles`/`org_id` in request bodies are ignored (`RequestModel` drops
# unknown fields); created rows always take them from the directory and context.
