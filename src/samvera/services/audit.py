"""
samvera.services.audit

Audit trail for writes. Every mutating handler calls `record` before it commits,
so the audit row and the change land in the same transaction.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from samvera.auth.context import RequestContext
from samvera.db.repositories.audit import AuditRepo
from samvera.observability.logging import get_logger

log = get_logger(__name__)


async def record(
    session: AsyncSession,
    ctx: RequestContext,
    *,
    resource: str,
    action: str,
    resource_id: uuid.UUID | None,
    details: dict[str, Any] | None = None,
) -> None:
    """Append an audit row in the caller's transaction (committed with the write)."""

    await AuditRepo(session).append(
        org_id=ctx.org_id,
        actor=ctx.user_id,
        resource=resource,
        action=action,
        resource_id=resource_id,
        details=details or {},
    )
    log.info("audit", resource=resource, action=action, resource_id=str(resource_id))
