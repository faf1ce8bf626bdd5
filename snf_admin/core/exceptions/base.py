from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppException):
    """Validation error."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message=message, status_code=422, details=details)


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message=message, status_code=401)


class AuthorizationError(AppException):
    """Not authorized to perform action."""

    def __init__(self, message: str = "You don't have permission to view this report."):
        super().__init__(message=message, status_code=403)


class UpstreamError(AppException):
    """Commerce backend failed or answered with an unexpected status."""

    def __init__(self, message: str, upstream_status: int | None = None, status_code: int = 502):
        details = {"upstream_status": upstream_status} if upstream_status else {}
        super().__init__(message=message, status_code=status_code, details=details)


class NoDataToExportError(AppException):
    """Export requested for a report with no rows."""

    def __init__(self, message: str = "No data to export"):
        super().__init__(message=message, status_code=400)


class PdfGenerationUnavailableError(AppException):
    """WeasyPrint/system libraries not available (e.g. pango on macOS)."""

    def __init__(self, message: str | None = None):
        msg = message or (
            "PDF generation is not available on this system. "
            "On macOS install: brew install pango glib."
        )
        super().__init__(message=msg, status_code=503)
