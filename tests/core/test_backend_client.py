import httpx
import pytest

from snf_admin.core.backend import BackendClient, ensure_api_prefix, unwrap_envelope
from snf_admin.core.backend.client import clean_params
from snf_admin.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    UpstreamError,
    ValidationError,
)


class TestHelpers:
    def test_api_prefix(self):
        assert ensure_api_prefix("/subscriptions/x") == "/api/subscriptions/x"
        assert ensure_api_prefix("agencies") == "/api/agencies"
        assert ensure_api_prefix("/api/reports/filters") == "/api/reports/filters"

    def test_clean_params_drops_empty(self):
        assert clean_params({"a": None, "b": "", "c": 0, "d": True}) == {"c": 0, "d": "true"}

    def test_unwrap_envelope(self):
        assert unwrap_envelope({"success": True, "data": [1]}) == [1]
        assert unwrap_envelope({"orders": []}) == {"orders": []}
        assert unwrap_envelope([1, 2]) == [1, 2]


class TestBackendClient:
    async def test_sends_bearer_token_and_params(self, backend):
        backend.add("GET", "/api/reports/filters", {"data": {"farmers": []}})
        async with backend.client("tok") as client:
            payload = await client.get("/reports/filters", params={"startDate": "2024-01-01", "farmerId": None})
        assert payload == {"data": {"farmers": []}}
        request = backend.requests[0]
        assert request.headers["Authorization"] == "Bearer tok"
        assert dict(request.url.params) == {"startDate": "2024-01-01"}

    async def test_empty_body_is_none(self, backend):
        backend.add("DELETE", "/api/admin/banners/1", None, status_code=204)
        async with backend.client("tok") as client:
            assert await client.delete("/api/admin/banners/1") is None

    @pytest.mark.parametrize(
        "status_code, exc_type, prefix",
        [
            (400, ValidationError, "Bad Request: "),
            (401, AuthenticationError, "Unauthorized: "),
            (403, AuthorizationError, "Forbidden: "),
            (409, UpstreamError, "Conflict: "),
            (500, UpstreamError, "Server Error: "),
            (418, UpstreamError, "Error 418: "),
        ],
    )
    async def test_error_mapping(self, backend, status_code, exc_type, prefix):
        backend.add("GET", "/api/x", {"message": "boom"}, status_code=status_code)
        async with backend.client() as client:
            with pytest.raises(exc_type) as exc_info:
                await client.get("/api/x")
        assert exc_info.value.message == f"{prefix}boom"

    async def test_not_found_keeps_backend_message(self, backend):
        async with backend.client() as client:
            with pytest.raises(AppException) as exc_info:
                await client.get("/api/missing")
        assert exc_info.value.status_code == 404
        assert exc_info.value.message.startswith("Not Found: No stub")

    async def test_nested_error_messages(self, backend):
        backend.add("GET", "/api/a", {"error": {"message": "nested"}}, status_code=422)
        backend.add("GET", "/api/b", {"errors": [{"message": "first"}]}, status_code=422)
        async with backend.client() as client:
            with pytest.raises(ValidationError, match="Validation Error: nested"):
                await client.get("/api/a")
            with pytest.raises(ValidationError, match="Validation Error: first"):
                await client.get("/api/b")

    async def test_transport_error_becomes_upstream_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with BackendClient(base_url="http://backend.test", transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(UpstreamError, match="Backend unavailable"):
                await client.get("/api/x")


class TestSettings:
    def test_backend_url_trailing_slash_stripped(self):
        from snf_admin.core.config import Settings

        assert Settings(backend_url=" http://backend.test/ ").backend_url == "http://backend.test"
