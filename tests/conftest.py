from collections.abc import AsyncGenerator, Callable
from typing import Annotated, Any

import httpx
import pytest
from fastapi import Header
from httpx import ASGITransport, AsyncClient

from snf_admin.core.auth import UserRole
from snf_admin.core.auth.jwt import bearer_token, create_access_token
from snf_admin.core.backend import BackendClient, get_backend_client
from snf_admin.main import app

BACKEND_URL = "http://backend.test"


class FakeBackend:
    """
    Route table standing in for the commerce backend.

    Bodies may be a JSON-able value or a callable taking the httpx.Request.
    Unknown routes answer 404 so a missing stub fails loudly.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], tuple[int, Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, body: Any = None, status_code: int = 200) -> None:
        self.routes[(method.upper(), path)] = (status_code, body)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": f"No stub for {request.method} {request.url.path}"})
        status_code, body = route
        if isinstance(body, Callable):
            body = body(request)
        if body is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self, token: str | None = None) -> BackendClient:
        return BackendClient(token=token, base_url=BACKEND_URL, transport=self.transport())


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
async def client(backend: FakeBackend) -> AsyncGenerator[AsyncClient, None]:
    """Test HTTP client with the backend client routed to the fake backend."""

    async def override_get_backend_client(
        authorization: Annotated[str | None, Header()] = None,
    ) -> AsyncGenerator[BackendClient, None]:
        token = bearer_token(authorization) if authorization else None
        async with backend.client(token) as backend_client:
            yield backend_client

    app.dependency_overrides[get_backend_client] = override_get_backend_client

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


def auth_headers(role: UserRole, **claims: Any) -> dict[str, str]:
    token = create_access_token({"sub": "1", "role": role.value, **claims})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return auth_headers(UserRole.ADMIN)


@pytest.fixture
def vendor_headers() -> dict[str, str]:
    return auth_headers(UserRole.VENDOR, vendorId=7)


@pytest.fixture
def agency_headers() -> dict[str, str]:
    return auth_headers(UserRole.AGENCY, agencyId=3)


@pytest.fixture
def depot_headers() -> dict[str, str]:
    return auth_headers(UserRole.DEPOT_ADMIN, depotId=2)


@pytest.fixture
def member_headers() -> dict[str, str]:
    return auth_headers(UserRole.MEMBER)
