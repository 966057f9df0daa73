"""
tests.test_smoke

Minimal smoke tests to validate the service can boot and serve core endpoints.

Responsibilities:
- Ensure the FastAPI app starts and the DB readiness check works in test mode.
- Ensure error responses keep the `{error, code}` shape.
"""

from __future__ import annotations

import pytest


@pytest.mark.asyncio
async def test_health_endpoints(client) -> None:
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"

    r = await client.get("/readyz")
    assert r.status_code == 200
    assert r.json()["status"] == "ready"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client) -> None:
    r = await client.get("/healthz", headers={"x-request-id": "req-123"})
    assert r.headers["x-request-id"] == "req-123"

    r = await client.get("/healthz")
    assert r.headers["x-request-id"]


@pytest.mark.asyncio
async def test_unknown_route_uses_error_shape(client) -> None:
    r = await client.get("/no-such-thing")
    assert r.status_code == 404
    assert set(r.json()) == {"error", "code"}


@pytest.mark.asyncio
async def test_data_endpoint_without_session_is_401(client) -> None:
    r = await client.get("/staff")
    assert r.status_code == 401
    assert r.json()["code"] == "unauthenticated"
