from snf_admin.core.backend.client import (
    BackendClient,
    ensure_api_prefix,
    extract_error_message,
    unwrap_envelope,
)
from snf_admin.core.backend.dependencies import Backend, get_backend_client

__all__ = [
    "Backend",
    "BackendClient",
    "ensure_api_prefix",
    "extract_error_message",
    "get_backend_client",
    "unwrap_envelope",
]
