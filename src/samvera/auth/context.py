"""
samvera.auth.context

Explicit per-request authorization context.

Responsibilities:
- Bundle the resolved principal, its tenant and the operation policy that admitted it.
- Apply the policy's redaction rule to outgoing payloads.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from samvera.auth.models import Principal, Role
from samvera.auth.policy import OperationPolicy


@dataclass(frozen=True, slots=True)
class RequestContext:
    principal: Principal
    org_id: uuid.UUID
    policy: OperationPolicy

    @classmethod
    def for_principal(cls, principal: Principal, policy: OperationPolicy) -> RequestContext:
        return cls(principal=principal, org_id=principal.org_id, policy=policy)

    @property
    def user_id(self) -> uuid.UUID:
        return self.principal.id

    @property
    def role(self) -> Role:
        return self.principal.active_role

    def project(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        if self.policy.redaction is None:
            return dict(payload)
        return self.policy.redaction.apply(payload, self.role)


# --- Module Notes -----------------------------------------------------------
# Handlers take tenant context only from here, never from request bodies or queries.
