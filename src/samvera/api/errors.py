"""
samvera.api.errors

Exception handlers that map the error taxonomy onto HTTP responses.

Responsibilities:
- Render every `AppError` as `{"error", "code"}` with its status.
- Fold FastAPI request validation into `ValidationFailed` (400, per-field messages).
- Keep storage failures opaque: unique violations become 409, anything else 500.
"""

from __future__ import annotations

import math

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from samvera.errors import (
    AppError,
    Conflict,
    CrossTenantAccessDenied,
    Forbidden,
    RateLimited,
    Unexpected,
    ValidationFailed,
)
from samvera.observability.logging import get_logger
from samvera.validation import field_errors

log = get_logger(__name__)


def _render(exc: AppError) -> JSONResponse:
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimited):
        headers["Retry-After"] = str(max(1, math.ceil(exc.retry_after)))
    return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    fields: dict[str, object] = {"code": exc.code, "status": exc.status_code}
    if isinstance(exc, CrossTenantAccessDenied):
        fields["cross_tenant"] = True
    if isinstance(exc, Forbidden) and exc.required:
        fields["required_roles"] = sorted(exc.required)
        fields["actual_role"] = exc.actual
    if exc.status_code >= 500:
        log.error("request.failed", **fields)
    else:
        log.warning("request.rejected", **fields)
    return _render(exc)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return await app_error_handler(request, ValidationFailed(field_errors(exc.errors())))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Routing-level errors (unknown path, wrong method) keep the same body shape.
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "code": "http_error"},
        headers=getattr(exc, "headers", None),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    log.warning("db.integrity_error", error_type=type(exc.orig).__name__)
    return await app_error_handler(request, Conflict())


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    log.error("db.error", error_type=type(exc).__name__, exc_info=exc)
    return _render(Unexpected())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.error("request.unhandled", error_type=type(exc).__name__, exc_info=exc)
    return _render(Unexpected())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, database_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)


# --- Module Notes -----------------------------------------------------------
# Handlers registered for `Exception` run in Starlette's outermost middleware and
# re-raise after responding; keep expected failures on the specific handlers above.
