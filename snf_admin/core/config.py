from typing import Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Commerce backend (all report data and CRUD submissions go through it)
    backend_url: str = "http://localhost:3000"
    backend_timeout_seconds: float = 30.0

    # JWT issued by the backend; shared secret used to read the role claim
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"

    # App
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    # Can be a comma-separated string or list
    cors_allowed_origins: Union[str, list[str]] = "http://localhost:3000,http://localhost:5173"

    # Reports
    report_currency_symbol: str = "₹"
    # Upper bound used when a report pulls "everything" in one page (SNF orders, sale register)
    max_report_rows: int = 1000

    # Banner uploads
    banner_max_image_bytes: int = 5_000_000

    @field_validator("backend_url", mode="before")
    @classmethod
    def strip_backend_url(cls, v):
        """Backend base URL without trailing slash; paths are always absolute."""
        if not v:
            raise ValueError("BACKEND_URL is required")
        if isinstance(v, str):
            return v.strip().rstrip("/")
        return v

    @field_validator("cors_allowed_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v


settings = Settings()
