"""
samvera.db.repositories.audit

Repository for `AuditEvent` entities.

Responsibilities:
- Append audit events for every write made through the API.
- Page through an organization's audit trail, newest first.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import desc, select

from samvera.db.models import AuditEvent
from samvera.db.repositories.base import TenantRepo


class AuditRepo(TenantRepo[AuditEvent]):
    model = AuditEvent

    async def append(
        self,
        *,
        org_id: uuid.UUID,
        actor: uuid.UUID,
        resource: str,
        action: str,
        resource_id: uuid.UUID | None,
        details: dict[str, Any],
    ) -> AuditEvent:
        # Audit events are append-only (no update/delete) in normal operation.
        return await self.add(
            AuditEvent(
                org_id=org_id,
                actor=actor,
                resource=resource,
                action=action,
                resource_id=resource_id,
                details=details,
            )
        )

    async def page_for_org(
        self, org_id: uuid.UUID, *, resource: str | None, offset: int, limit: int
    ) -> tuple[list[AuditEvent], int]:
        stmt = select(AuditEvent).where(AuditEvent.org_id == org_id)
        if resource is not None:
            stmt = stmt.where(AuditEvent.resource == resource)
        return await self.page(
            stmt, offset=offset, limit=limit, order_by=[desc(AuditEvent.created_at)]
        )


# --- Module Notes -----------------------------------------------------------
# Indexed on (org_id, created_at); keep list queries on that prefix.
