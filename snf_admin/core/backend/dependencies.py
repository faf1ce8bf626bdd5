from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header

from snf_admin.core.auth.jwt import bearer_token
from snf_admin.core.backend.client import BackendClient


async def get_backend_client(
    authorization: Annotated[str | None, Header()] = None,
) -> AsyncGenerator[BackendClient, None]:
    """
    Backend client bound to the caller's bearer token for one request.

    Usage:
        @router.get("/x")
        async def x(client: Backend):
            ...
    """
    token = bearer_token(authorization) if authorization else None
    async with BackendClient(token=token) as client:
        yield client


Backend = Annotated[BackendClient, Depends(get_backend_client)]
