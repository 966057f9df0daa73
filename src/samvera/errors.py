"""
samvera.errors

Error taxonomy shared by every layer.

Responsibilities:
- Define one exception type per failure kind the API distinguishes.
- Carry a stable machine-readable `code` and HTTP status on each type.

Handlers that turn these into responses live in `samvera.api.errors`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping


class AppError(Exception):
    status_code: int = 500
    code: str = "unexpected"
    message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_body(self) -> dict[str, object]:
        return {"error": self.message, "code": self.code}


class Unauthenticated(AppError):
    status_code = 401
    code = "unauthenticated"
    message = "Authentication required"


class MissingOrganization(AppError):
    # Session resolved, but no tenant context could be determined for it.
    status_code = 403
    code = "missing_organization"
    message = "User organization not found. Please contact support."


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"
    message = "Access denied"

    def __init__(
        self,
        message: str | None = None,
        *,
        required: Iterable[str] | None = None,
        actual: str | None = None,
    ) -> None:
        super().__init__(message)
        self.required = frozenset(required or ())
        self.actual = actual


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    message = "Resource not found"

    def __init__(self, kind: str = "Resource") -> None:
        super().__init__(f"{kind} not found")
        self.kind = kind


class CrossTenantAccessDenied(AppError):
    """
    Target exists but belongs to another organization.

    Rendered exactly like `NotFound` so callers cannot discover other tenants;
    only the server-side logs tell the two apart.
    """

    status_code = NotFound.status_code
    code = NotFound.code

    def __init__(self, kind: str = "Resource") -> None:
        super().__init__(f"{kind} not found")
        self.kind = kind


class ValidationFailed(AppError):
    status_code = 400
    code = "validation_failed"
    message = "Validation failed"

    def __init__(
        self, field_errors: Mapping[str, list[str]] | None = None, message: str | None = None
    ) -> None:
        super().__init__(message)
        self.field_errors = {k: list(v) for k, v in (field_errors or {}).items()}

    @classmethod
    def single(cls, field: str, problem: str) -> ValidationFailed:
        return cls({field: [problem]})

    def to_body(self) -> dict[str, object]:
        body = super().to_body()
        body["fields"] = self.field_errors
        return body


class Conflict(AppError):
    status_code = 409
    code = "conflict"
    message = "Resource already exists"


class RateLimited(AppError):
    status_code = 429
    code = "rate_limited"
    message = "Too many requests"

    def __init__(self, retry_after: float) -> None:
        super().__init__()
        self.retry_after = retry_after


class Unexpected(AppError):
    pass


# --- Module Notes -----------------------------------------------------------
# Statuses here are the public contract. Never put internal detail (SQL, stack
# traces, other tenants' identifiers) into `message`.
