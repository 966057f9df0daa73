"""
samvera.auth.redaction

Server-side projection of sensitive fields, keyed on the caller's active role.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from samvera.auth.models import Role


@dataclass(frozen=True, slots=True)
class RedactionRule:
    fields: frozenset[str]
    visible_to: frozenset[Role]

    def hidden_for(self, role: Role) -> frozenset[str]:
        if role in self.visible_to:
            return frozenset()
        return self.fields

    def apply(self, payload: Mapping[str, Any], role: Role) -> dict[str, Any]:
        # Hidden keys are dropped entirely, not nulled.
        hidden = self.hidden_for(role)
        return {k: v for k, v in payload.items() if k not in hidden}


CONTACT_PII = RedactionRule(
    fields=frozenset({"ssn", "phone", "address"}),
    visible_to=frozenset({Role.admin, Role.principal}),
)
