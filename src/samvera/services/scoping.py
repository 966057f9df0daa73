"""
samvera.services.scoping

Organization-scope checks for rows fetched by primary key.

Responsibilities:
- Turn "absent", "soft-deleted" and "other tenant" into failures, in that order.
- Validate identifiers that a request body points at (class, student, guardian).
- Log cross-tenant attempts without revealing them to the caller.
"""

from __future__ import annotations

import uuid
from typing import Any, TypeVar

from samvera.auth.context import RequestContext
from samvera.auth.models import Role
from samvera.db.repositories.base import TenantRepo
from samvera.errors import CrossTenantAccessDenied, Forbidden, NotFound, ValidationFailed
from samvera.observability.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


def ensure_in_scope(ctx: RequestContext, row: T | None, *, kind: str) -> T:
    if row is None or getattr(row, "deleted_at", None) is not None:
        raise NotFound(kind)
    row_org: Any = getattr(row, "org_id")
    if row_org != ctx.org_id:
        log.warning(
            "scope.cross_tenant_denied",
            kind=kind,
            resource_id=str(getattr(row, "id", "")),
            target_org_id=str(row_org),
        )
        raise CrossTenantAccessDenied(kind)
    return row


async def ensure_reference(
    ctx: RequestContext, repo: TenantRepo[Any], row_id: uuid.UUID, *, field: str
) -> Any:
    """
    Resolve an id carried in a request body.

    A missing, deleted or foreign row is a field error on the body, not a 404.
    """

    try:
        return ensure_in_scope(ctx, await repo.get(row_id), kind=field)
    except (NotFound, CrossTenantAccessDenied):
        raise ValidationFailed.single(field, "Unknown identifier") from None


def ensure_author(ctx: RequestContext, row: Any, *, field: str = "author_id") -> None:
    # Teachers manage only what they authored; managers manage everything.
    if ctx.role == Role.teacher and getattr(row, field, None) != ctx.user_id:
        raise Forbidden("Only the author can change this record")


# --- Module Notes -----------------------------------------------------------
# Always fetch first, then call `ensure_in_scope`, then mutate. Both failure kinds
# render as the same 404 body (see `samvera.errors.CrossTenantAccessDenied`).
