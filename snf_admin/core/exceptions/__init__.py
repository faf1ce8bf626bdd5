from snf_admin.core.exceptions.base import (
    AppException,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    UpstreamError,
    NoDataToExportError,
    PdfGenerationUnavailableError,
)

__all__ = [
    "AppException",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "UpstreamError",
    "NoDataToExportError",
    "PdfGenerationUnavailableError",
]
