"""
samvera.api.routers.audit_events

Read-only view of the organization's audit trail, newest first.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from samvera.api.deps import db_session
from samvera.api.schemas import OutModel
from samvera.auth.context import RequestContext
from samvera.auth.deps import guard
from samvera.auth.policy import Operation
from samvera.db.repositories.audit import AuditRepo
from samvera.validation import PageParams, page_params, page_response

router = APIRouter(prefix="/audit-events", tags=["audit"])


class AuditEventOut(OutModel):
    id: uuid.UUID
    actor: uuid.UUID
    resource: str
    action: str
    resource_id: uuid.UUID | None
    details: dict[str, Any]
    created_at: datetime


@router.get("")
async def list_audit_events(
    resource: str | None = Query(default=None, max_length=64),
    ctx: RequestContext = Depends(guard("audit_events", Operation.list)),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    rows, total = await AuditRepo(session).page_for_org(
        ctx.org_id, resource=resource, offset=params.offset, limit=params.limit
    )
    return page_response([AuditEventOut.dump(r) for r in rows], total, params)
