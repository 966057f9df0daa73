"""
samvera.auth.models

Auth domain models.

Responsibilities:
- Define the closed role set and its privilege ordering.
- Define the authenticated identity type (`Principal`) injected into endpoints.
"""

from __future__ import annotations

import enum
import uuid
from collections.abc import Iterable
from dataclasses import dataclass


class Role(enum.StrEnum):
    admin = "admin"
    principal = "principal"
    teacher = "teacher"
    guardian = "guardian"


# Older sessions and UI code call guardians "parents".
ROLE_ALIASES: dict[str, Role] = {"parent": Role.guardian}

# Only used to pick a landing page; authorization is allow-list based.
ROLE_RANK: dict[Role, int] = {
    Role.admin: 4,
    Role.principal: 3,
    Role.teacher: 2,
    Role.guardian: 1,
}

HOME_PATHS: dict[Role, str] = {
    Role.admin: "/dashboard/admin",
    Role.principal: "/dashboard/principal",
    Role.teacher: "/dashboard/teacher",
    Role.guardian: "/dashboard/guardian",
}


def parse_role(raw: object) -> Role | None:
    if not isinstance(raw, str):
        return None
    value = raw.strip().lower()
    if value in ROLE_ALIASES:
        return ROLE_ALIASES[value]
    try:
        return Role(value)
    except ValueError:
        return None


def parse_roles(raw: Iterable[object]) -> list[Role]:
    # Keeps first-seen order (the first role is the default active role).
    roles: list[Role] = []
    for item in raw:
        role = parse_role(item)
        if role is not None and role not in roles:
            roles.append(role)
    return roles


def highest_role(roles: Iterable[Role]) -> Role:
    return max(roles, key=lambda r: ROLE_RANK[r])


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity, materialized per request from the session.
    """

    id: uuid.UUID
    org_id: uuid.UUID
    roles: frozenset[Role]
    active_role: Role

    def holds(self, role: Role) -> bool:
        return role in self.roles

    @property
    def home_path(self) -> str:
        return HOME_PATHS.get(self.active_role) or HOME_PATHS[highest_role(self.roles)]


# --- Module Notes -----------------------------------------------------------
# Keep this model minimal; it is used across API, services, and repositories.
