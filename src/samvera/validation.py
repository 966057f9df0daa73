"""
samvera.validation

Request validation helpers shared by all routers.

Responsibilities:
- Base model for request bodies (unknown fields such as `org_id`/`role` are ignored).
- Forgiving pagination: clamp `page`/`pageSize` into a safe range instead of rejecting.
- Convert pydantic error lists into per-field messages for `ValidationFailed`.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Annotated, Any

from fastapi import Depends, Query
from pydantic import BaseModel, ConfigDict, StringConstraints

from samvera.api.deps import settings_dep
from samvera.errors import ValidationFailed
from samvera.settings import Settings

_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}

# Largest row offset a list query may use; fits a signed 32-bit integer.
MAX_OFFSET = 2**31 - 1

Slug = Annotated[str, StringConstraints(min_length=1, max_length=100, pattern=r"^[a-z0-9-]+$")]
Email = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True, to_lower=True, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
    ),
]
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
ShortText = Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)]
LongText = Annotated[str, StringConstraints(max_length=10_000)]


class RequestModel(BaseModel):
    # extra="ignore": tenant/role fields sent by clients are dropped, never trusted.
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


@dataclass(frozen=True, slots=True)
class PageParams:
    page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


def _as_int(raw: object) -> int | None:
    if raw is None:
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


def clamp_page(
    page_raw: object, size_raw: object, *, default_size: int, max_size: int
) -> PageParams:
    page = _as_int(page_raw)
    size = _as_int(size_raw)
    if page is None or page < 1:
        page = 1
    if size is None or size <= 0:
        size = default_size
    size = min(size, max_size)
    # Past the last addressable row the page is empty anyway; keep the offset bounded.
    page = min(page, MAX_OFFSET // size + 1)
    return PageParams(page=page, page_size=size)


def page_params(
    page: str | None = Query(default=None),
    page_size: str | None = Query(default=None, alias="pageSize"),
    settings: Settings = Depends(settings_dep),
) -> PageParams:
    return clamp_page(
        page, page_size, default_size=settings.default_page_size, max_size=settings.max_page_size
    )


def page_response(items: Sequence[Any], total: int, params: PageParams) -> dict[str, Any]:
    return {
        "items": list(items),
        "totalCount": total,
        "totalPages": math.ceil(total / params.page_size) if total else 0,
        "currentPage": params.page,
    }


def patch_of(body: BaseModel, *, required: Iterable[str] = ()) -> dict[str, Any]:
    """
    Fields the client actually sent on an update, minus `id`.

    An explicit null for a column listed in `required` is a validation failure
    rather than an attempt to clear it.
    """
    patch = body.model_dump(exclude_unset=True, exclude={"id"})
    nulls = [key for key in required if key in patch and patch[key] is None]
    if nulls:
        raise ValidationFailed({key: ["Field cannot be null"] for key in nulls})
    return patch


def field_errors(errors: Sequence[Mapping[str, Any]]) -> dict[str, list[str]]:
    out: dict[str, list[str]] = {}
    for err in errors:
        loc = [str(p) for p in err.get("loc", ())]
        if loc and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        key = ".".join(loc) or "request"
        out.setdefault(key, []).append(str(err.get("msg", "Invalid value")))
    return out


# --- Module Notes -----------------------------------------------------------
# Identifiers are declared as `uuid.UUID` on models and query params, so malformed
# ids are rejected here and never reach a query.
