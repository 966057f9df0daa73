"""
tests.conftest

Shared fixtures: an app per test on its own SQLite file, an HTTP client bound to
it over ASGI, and helpers to seed tenants/users and mint session tokens.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from sqlalchemy import select

from samvera.api.app import create_app
from samvera.auth.jwt import JwtConfig, issue_token
from samvera.db.models import Organization, User
from samvera.settings import Settings


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'samvera-test.db'}",
        jwt_secret="test-secret",
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings)
    # httpx's ASGITransport does not run lifespan events; drive them explicitly.
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class Seeder:
    def __init__(self, app: FastAPI, settings: Settings) -> None:
        self._sessionmaker = app.state.sessionmaker
        self._settings = settings

    async def add(self, row: Any) -> Any:
        async with self._sessionmaker() as session:
            session.add(row)
            await session.commit()
        return row

    async def add_all(self, rows: list[Any]) -> list[Any]:
        async with self._sessionmaker() as session:
            session.add_all(rows)
            await session.commit()
        return rows

    async def get(self, model: type[Any], row_id: Any) -> Any:
        async with self._sessionmaker() as session:
            return await session.get(model, row_id)

    async def all(self, model: type[Any]) -> list[Any]:
        async with self._sessionmaker() as session:
            return list((await session.execute(select(model))).scalars().all())

    async def org(self, slug: str, name: str | None = None) -> Organization:
        return await self.add(Organization(name=name or slug.title(), slug=slug))

    async def user(
        self,
        org: Organization,
        role: str,
        *,
        roles: list[str] | None = None,
        first_name: str = "Test",
        **fields: Any,
    ) -> User:
        return await self.add(
            User(
                org_id=org.id,
                role=role,
                roles=roles if roles is not None else [role],
                first_name=first_name,
                **fields,
            )
        )

    def token(
        self,
        user: User,
        *,
        roles: list[str] | None = None,
        active_role: str | None = None,
        with_org: bool = True,
    ) -> str:
        return issue_token(
            cfg=JwtConfig.from_settings(self._settings),
            subject=user.id,
            roles=roles if roles is not None else list(user.roles),
            active_role=active_role,
            org_id=user.org_id if with_org else None,
        )

    def auth(self, user: User, **kwargs: Any) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token(user, **kwargs)}"}


@pytest_asyncio.fixture
async def seed(app: FastAPI, settings: Settings) -> Seeder:
    return Seeder(app, settings)
