"""
samvera.api.routers.photos

Photo records (metadata only; the binary lives in external storage).

Guardians see public photos plus photos of their own linked children.
Teachers may change only photos they authored.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from samvera.api.deps import db_session
from samvera.api.schemas import DELETED, OutModel
from samvera.auth.context import RequestContext
from samvera.auth.deps import guard
from samvera.auth.models import Role
from samvera.auth.policy import Operation
from samvera.db.models import Photo
from samvera.db.repositories.base import apply_patch
from samvera.db.repositories.classes import ClassRepo
from samvera.db.repositories.content import PhotoRepo
from samvera.db.repositories.students import StudentRepo
from samvera.services import audit
from samvera.services.scoping import ensure_author, ensure_in_scope, ensure_reference
from samvera.validation import (
    LongText,
    PageParams,
    RequestModel,
    page_params,
    page_response,
    patch_of,
)

router = APIRouter(prefix="/photos", tags=["photos"])


class PhotoOut(OutModel):
    id: uuid.UUID
    class_id: uuid.UUID | None
    student_id: uuid.UUID | None
    storage_path: str
    caption: str | None
    is_public: bool
    author_id: uuid.UUID | None
    created_at: datetime


class PhotoCreate(RequestModel):
    storage_path: str = Field(min_length=1, max_length=1024)
    caption: LongText | None = None
    class_id: uuid.UUID | None = None
    student_id: uuid.UUID | None = None
    is_public: bool = False


class PhotoUpdate(RequestModel):
    id: uuid.UUID
    caption: LongText | None = None
    class_id: uuid.UUID | None = None
    student_id: uuid.UUID | None = None
    is_public: bool | None = None


async def _check_refs(ctx: RequestContext, session: AsyncSession, fields: dict[str, Any]) -> None:
    if fields.get("class_id") is not None:
        await ensure_reference(ctx, ClassRepo(session), fields["class_id"], field="class_id")
    if fields.get("student_id") is not None:
        await ensure_reference(ctx, StudentRepo(session), fields["student_id"], field="student_id")


@router.get("")
async def list_photos(
    class_id: uuid.UUID | None = Query(default=None, alias="classId"),
    student_id: uuid.UUID | None = Query(default=None, alias="studentId"),
    ctx: RequestContext = Depends(guard("photos", Operation.list)),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = PhotoRepo(session)
    stmt = repo.live(ctx.org_id)
    if ctx.role == Role.guardian:
        linked = await StudentRepo(session).linked_ids(ctx.org_id, ctx.user_id)
        stmt = stmt.where(or_(Photo.is_public.is_(True), Photo.student_id.in_(list(linked))))
    if class_id is not None:
        stmt = stmt.where(Photo.class_id == class_id)
    if student_id is not None:
        stmt = stmt.where(Photo.student_id == student_id)
    rows, total = await repo.page(stmt, offset=params.offset, limit=params.limit)
    return page_response([PhotoOut.dump(r) for r in rows], total, params)


@router.post("", status_code=HTTP_201_CREATED)
async def create_photo(
    body: PhotoCreate,
    ctx: RequestContext = Depends(guard("photos", Operation.create)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    fields = body.model_dump()
    await _check_refs(ctx, session, fields)
    photo = await PhotoRepo(session).add(Photo(org_id=ctx.org_id, author_id=ctx.user_id, **fields))
    await audit.record(session, ctx, resource="photos", action="create", resource_id=photo.id)
    await session.commit()
    return PhotoOut.dump(photo)


@router.put("")
async def update_photo(
    body: PhotoUpdate,
    ctx: RequestContext = Depends(guard("photos", Operation.update)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    photo = ensure_in_scope(ctx, await PhotoRepo(session).get(body.id), kind="Photo")
    ensure_author(ctx, photo)
    patch = patch_of(body, required=("is_public",))
    await _check_refs(ctx, session, patch)
    apply_patch(photo, patch)
    await audit.record(
        session, ctx, resource="photos", action="update", resource_id=photo.id,
        details={"fields": sorted(patch)},
    )
    await session.commit()
    return PhotoOut.dump(photo)


@router.delete("")
async def delete_photo(
    photo_id: uuid.UUID = Query(alias="id"),
    ctx: RequestContext = Depends(guard("photos", Operation.delete)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, bool]:
    repo = PhotoRepo(session)
    photo = ensure_in_scope(ctx, await repo.get(photo_id), kind="Photo")
    ensure_author(ctx, photo)
    await repo.soft_delete(photo)
    await audit.record(session, ctx, resource="photos", action="delete", resource_id=photo.id)
    await session.commit()
    return DELETED
