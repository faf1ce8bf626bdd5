"""SNF admin and reporting FastAPI application."""
import logging
import os
from contextlib import asynccontextmanager

# macOS: so WeasyPrint finds pango/glib when generating PDFs (only if not already set)
if os.name == "posix" and os.environ.get("DYLD_LIBRARY_PATH") in (None, ""):
    _brew_lib = "/opt/homebrew/opt/glib/lib:/opt/homebrew/opt/pango/lib:/opt/homebrew/lib"
    if os.path.exists("/opt/homebrew/opt/glib/lib"):
        os.environ["DYLD_LIBRARY_PATH"] = _brew_lib

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from snf_admin.core.config import settings
from snf_admin.core.exceptions import AppException
from snf_admin.core.exceptions.handlers import (
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from snf_admin.core.logging import configure_logging
from snf_admin.modules.banners.router import router as banners_router
from snf_admin.modules.purchase_payments.router import router as purchase_payments_router
from snf_admin.modules.reports.router import router as reports_router
from snf_admin.modules.subscriptions.router import router as subscriptions_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting SNF admin (backend %s, env %s)", settings.backend_url, settings.app_env)
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    configure_logging()
    app = FastAPI(
        title="SNF Admin",
        description="Reports, exports and admin tools for the SNF dairy subscription platform",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    # Exception handlers
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    # Routers
    app.include_router(reports_router, prefix="/api/v1")
    app.include_router(banners_router, prefix="/api/v1")
    app.include_router(purchase_payments_router, prefix="/api/v1")
    app.include_router(subscriptions_router, prefix="/api/v1")

    return app


app = create_app()
