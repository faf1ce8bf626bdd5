"""HTTP client for the commerce backend (JSON over HTTP, bearer token auth)."""

import logging
from typing import Any

import httpx

from snf_admin.core.config import settings
from snf_admin.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_PREFIXES = {
    400: "Bad Request: ",
    401: "Unauthorized: ",
    403: "Forbidden: ",
    404: "Not Found: ",
    409: "Conflict: ",
    422: "Validation Error: ",
    500: "Server Error: ",
}


def ensure_api_prefix(path: str) -> str:
    """'/subscriptions/x' -> '/api/subscriptions/x'; '/api/...' is left alone."""
    if path.startswith("/api"):
        return path
    return f"/api{'' if path.startswith('/') else '/'}{path}"


def clean_params(params: dict[str, Any] | None) -> dict[str, Any]:
    """Drop None/empty query values; the backend treats absent and empty differently."""
    if not params:
        return {}
    cleaned: dict[str, Any] = {}
    for key, value in params.items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned


def unwrap_envelope(payload: Any) -> Any:
    """Return payload['data'] for {success, data} envelopes, else the payload itself."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def extract_error_message(response: httpx.Response) -> str:
    """Most meaningful error message from a backend error response, prefixed by status."""
    message = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        errors = body.get("errors")
        message = body.get("message")
        if not message and isinstance(error, dict):
            message = error.get("message")
        if not message and isinstance(errors, dict):
            message = errors.get("message")
        if not message and isinstance(errors, list) and errors and isinstance(errors[0], dict):
            message = errors[0].get("message")
    if not message:
        message = response.reason_phrase or "Request failed"
    prefix = _STATUS_PREFIXES.get(response.status_code, f"Error {response.status_code}: ")
    return f"{prefix}{message}"


def _error_for_response(response: httpx.Response) -> AppException:
    message = extract_error_message(response)
    status = response.status_code
    if status == 401:
        return AuthenticationError(message)
    if status == 403:
        return AuthorizationError(message)
    if status == 404:
        return AppException(message, status_code=404)
    if status in (400, 422):
        return ValidationError(message)
    return UpstreamError(message, upstream_status=status)


class BackendClient:
    """
    Thin async wrapper over httpx for the commerce backend.

    Every request carries the caller's bearer token. Non-2xx responses become
    AppException subclasses; there is no retry or backoff.
    """

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.backend_url,
            headers=headers,
            timeout=timeout if timeout is not None else settings.backend_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
    ) -> Any:
        url = ensure_api_prefix(path)
        try:
            response = await self._client.request(
                method,
                url,
                params=clean_params(params),
                json=json,
                data=data,
                files=files,
            )
        except httpx.RequestError as e:
            logger.warning("Backend request %s %s failed: %s", method, url, e)
            raise UpstreamError(f"Backend unavailable: {e!s}") from e

        if response.is_error:
            logger.warning(
                "Backend %s %s returned %s", method, url, response.status_code
            )
            raise _error_for_response(response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"Backend returned invalid JSON for {url}") from e

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    async def post_multipart(
        self, path: str, data: dict[str, Any], files: dict[str, Any] | None = None
    ) -> Any:
        return await self.request("POST", path, data=data, files=files)

    async def put_multipart(
        self, path: str, data: dict[str, Any], files: dict[str, Any] | None = None
    ) -> Any:
        return await self.request("PUT", path, data=data, files=files)
