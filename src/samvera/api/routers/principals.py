"""
samvera.api.routers.principals

Principal provisioning.

Responsibilities:
- Admin-only CRUD over principal accounts, across organizations.
- Create a principal in the admin's own organization or in a named, active one.

Principals are managed like organizations: admins act across tenants here, so
rows are checked for existence and kind rather than against the caller's org.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from samvera.api.deps import db_session
from samvera.api.routers.people import PersonCreate, PersonOut, PersonUpdate
from samvera.api.schemas import DELETED
from samvera.auth.context import RequestContext
from samvera.auth.deps import guard
from samvera.auth.models import Role
from samvera.auth.policy import Operation
from samvera.db.models import User
from samvera.db.repositories.base import apply_patch
from samvera.db.repositories.orgs import OrganizationRepo
from samvera.db.repositories.users import UserRepo
from samvera.errors import Conflict, NotFound, ValidationFailed
from samvera.services import audit
from samvera.validation import PageParams, page_params, page_response, patch_of

router = APIRouter(prefix="/principals", tags=["principals"])


class PrincipalCreate(PersonCreate):
    org_id: uuid.UUID | None = None


async def _load(repo: UserRepo, user_id: uuid.UUID) -> User:
    user = await repo.get(user_id)
    if user is None or user.deleted_at is not None or user.role != Role.principal:
        raise NotFound("Principal")
    return user


async def _check_email(
    repo: UserRepo, org_id: uuid.UUID, email: str | None, exclude_id: uuid.UUID | None = None
) -> None:
    if email and await repo.find_by_email(org_id, email, exclude_id=exclude_id) is not None:
        raise Conflict("Email already in use")


@router.get("")
async def list_principals(
    org_id: uuid.UUID | None = Query(default=None, alias="orgId"),
    ctx: RequestContext = Depends(guard("principals", Operation.list)),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = UserRepo(session)
    rows, total = await repo.page(
        repo.across_orgs(Role.principal, org_id), offset=params.offset, limit=params.limit
    )
    return page_response([PersonOut.dump(r) for r in rows], total, params)


@router.get("/{user_id}")
async def read_principal(
    user_id: uuid.UUID,
    ctx: RequestContext = Depends(guard("principals", Operation.read)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return PersonOut.dump(await _load(UserRepo(session), user_id))


@router.post("", status_code=HTTP_201_CREATED)
async def create_principal(
    body: PrincipalCreate,
    ctx: RequestContext = Depends(guard("principals", Operation.create)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    target = body.org_id or ctx.org_id
    org = await OrganizationRepo(session).get(target)
    if org is None or org.deleted_at is not None or not org.is_active:
        raise ValidationFailed.single("org_id", "Unknown identifier")

    repo = UserRepo(session)
    await _check_email(repo, org.id, body.email)
    user = await repo.add(
        User(
            org_id=org.id,
            role=str(Role.principal),
            roles=[str(Role.principal)],
            **body.model_dump(exclude={"org_id"}),
        )
    )
    await audit.record(
        session, ctx, resource="principals", action="create", resource_id=user.id,
        details={"org_id": str(org.id)},
    )
    await session.commit()
    return PersonOut.dump(user)


@router.put("")
async def update_principal(
    body: PersonUpdate,
    ctx: RequestContext = Depends(guard("principals", Operation.update)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = UserRepo(session)
    user = await _load(repo, body.id)
    patch = patch_of(body, required=("first_name", "is_active"))
    if "email" in patch:
        await _check_email(repo, user.org_id, patch["email"], exclude_id=user.id)
    apply_patch(user, patch)
    await audit.record(
        session, ctx, resource="principals", action="update", resource_id=user.id,
        details={"fields": sorted(patch)},
    )
    await session.commit()
    return PersonOut.dump(user)


@router.delete("")
async def delete_principal(
    user_id: uuid.UUID = Query(alias="id"),
    ctx: RequestContext = Depends(guard("principals", Operation.delete)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, bool]:
    repo = UserRepo(session)
    user = await _load(repo, user_id)
    user.is_active = False
    await repo.soft_delete(user)
    await audit.record(session, ctx, resource="principals", action="delete", resource_id=user.id)
    await session.commit()
    return DELETED


# --- Module Notes -----------------------------------------------------------
# Admin accounts are not provisioned through the API; they come from the identity
# provider together with their first session.
