"""
samvera.auth.policy

Declarative role policy table.

Responsibilities:
- Declare, per (resource, operation), which active roles may invoke it.
- Declare whether the operation is tenant-scoped and which redaction applies.
- Provide the single role check used by the request guard.

Read access is intentionally broader than write access on several resources
(e.g. teachers and guardians can list staff for messaging directories but only
admins/principals can change staff records).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from samvera.auth.models import Principal, Role
from samvera.auth.redaction import CONTACT_PII, RedactionRule
from samvera.errors import Forbidden


class Operation(enum.StrEnum):
    list = "list"
    read = "read"
    create = "create"
    update = "update"
    delete = "delete"


@dataclass(frozen=True, slots=True)
class OperationPolicy:
    allowed_roles: frozenset[Role]
    requires_org_scope: bool = True
    redaction: RedactionRule | None = None


ALL_ROLES = frozenset(Role)
STAFF_ROLES = frozenset({Role.admin, Role.principal, Role.teacher})
MANAGERS = frozenset({Role.admin, Role.principal})
ADMINS = frozenset({Role.admin})


def _crud(
    *,
    read: frozenset[Role],
    write: frozenset[Role],
    redaction: RedactionRule | None = None,
) -> dict[Operation, OperationPolicy]:
    return {
        Operation.list: OperationPolicy(read, redaction=redaction),
        Operation.read: OperationPolicy(read, redaction=redaction),
        Operation.create: OperationPolicy(write, redaction=redaction),
        Operation.update: OperationPolicy(write, redaction=redaction),
        Operation.delete: OperationPolicy(write),
    }


_TABLE: dict[str, dict[Operation, OperationPolicy]] = {
    # Organizations are the tenant boundary itself; only admins manage them.
    "orgs": {
        op: OperationPolicy(ADMINS, requires_org_scope=False) for op in Operation
    },
    "org_self": {Operation.read: OperationPolicy(ALL_ROLES)},
    # Principals are provisioned per organization by admins, like the orgs themselves.
    "principals": {
        op: OperationPolicy(ADMINS, requires_org_scope=False) for op in Operation
    },
    "staff": _crud(read=ALL_ROLES, write=MANAGERS, redaction=CONTACT_PII),
    "guardians": _crud(read=STAFF_ROLES, write=MANAGERS, redaction=CONTACT_PII),
    "classes": _crud(read=STAFF_ROLES, write=MANAGERS),
    "students": _crud(read=ALL_ROLES, write=MANAGERS),
    "guardian_students": _crud(read=STAFF_ROLES, write=MANAGERS),
    "class_teachers": {
        Operation.list: OperationPolicy(STAFF_ROLES),
        Operation.create: OperationPolicy(MANAGERS),
        Operation.delete: OperationPolicy(MANAGERS),
    },
    "daily_logs": _crud(read=STAFF_ROLES, write=STAFF_ROLES),
    "attendance": {
        Operation.list: OperationPolicy(ALL_ROLES),
        Operation.create: OperationPolicy(STAFF_ROLES),
    },
    "messages": _crud(read=ALL_ROLES, write=ALL_ROLES),
    "message_items": _crud(read=ALL_ROLES, write=ALL_ROLES),
    "menus": _crud(read=ALL_ROLES, write=STAFF_ROLES),
    "photos": _crud(read=ALL_ROLES, write=STAFF_ROLES),
    "announcements": _crud(read=ALL_ROLES, write=STAFF_ROLES),
    "dashboard": {Operation.read: OperationPolicy(ALL_ROLES)},
    "audit_events": {Operation.list: OperationPolicy(MANAGERS)},
}

POLICIES: dict[tuple[str, Operation], OperationPolicy] = {
    (resource, op): policy for resource, ops in _TABLE.items() for op, policy in ops.items()
}


def policy_for(resource: str, operation: Operation) -> OperationPolicy:
    try:
        return POLICIES[(resource, operation)]
    except KeyError:
        # Programming error: every routed operation must be declared above.
        raise LookupError(f"no policy declared for {resource}:{operation}") from None


def check_role(principal: Principal, policy: OperationPolicy) -> None:
    # Only the active role counts; other held roles grant nothing.
    if principal.active_role not in policy.allowed_roles:
        raise Forbidden(
            f"Role '{principal.active_role}' is not permitted for this operation",
            required=policy.allowed_roles,
            actual=principal.active_role,
        )


# --- Module Notes -----------------------------------------------------------
# `policy_for` is called when routers are imported (inside `auth.deps.guard`), so a
# missing table entry fails at startup rather than on the first request.
