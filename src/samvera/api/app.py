"""
samvera.api.app

FastAPI app factory for the school-management API.

Responsibilities:
- Build the FastAPI application and register routers, middleware and error handlers.
- Own shared infrastructure for the app's lifetime (DB engine, session factory, rate limiter).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from samvera.api.errors import register_error_handlers
from samvera.api.routers import (
    announcements,
    attendance,
    audit_events,
    class_teachers,
    classes,
    daily_logs,
    dashboard,
    guardian_students,
    health,
    menus,
    messages,
    orgs,
    people,
    photos,
    principals,
    session,
    students,
)
from samvera.auth.rate_limit import RateLimiter
from samvera.db.session import create_engine, create_sessionmaker, init_db
from samvera.observability.logging import configure_logging, get_logger
from samvera.observability.middleware import RequestContextMiddleware
from samvera.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    configure_logging(service_name=settings.service_name, level=settings.log_level, env=settings.env)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        app.state.rate_limiter = RateLimiter(
            requests_per_minute=settings.rate_limit_requests_per_minute,
            burst=settings.rate_limit_burst,
        )
        if settings.env in ("dev", "test"):
            # Prod schemas are managed by Alembic migrations.
            await init_db(engine)
        try:
            yield
        finally:
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Samvera School API",
        version="0.1.0",
        docs_url="/docs" if settings.env != "prod" else None,
        openapi_url="/openapi.json" if settings.env != "prod" else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    register_error_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(session.router)
    app.include_router(orgs.router)
    app.include_router(people.staff_router)
    app.include_router(people.guardians_router)
    app.include_router(principals.router)
    app.include_router(classes.router)
    app.include_router(class_teachers.router)
    app.include_router(students.router)
    app.include_router(guardian_students.router)
    app.include_router(attendance.router)
    app.include_router(daily_logs.router)
    app.include_router(messages.threads_router)
    app.include_router(messages.items_router)
    app.include_router(menus.router)
    app.include_router(photos.router)
    app.include_router(announcements.router)
    app.include_router(dashboard.router)
    app.include_router(audit_events.router)
    return app


# --- Module Notes -----------------------------------------------------------
# Everything request handlers need is reached through `app.state` via the
# dependencies in `api.deps` and `auth.deps`; there are no module-level singletons.
