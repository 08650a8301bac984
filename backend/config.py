"""Configuration and settings for the SharePoint knowledge proxy.

Uses Pydantic Settings for fail-fast validation on startup.
Required deployment variables (tenant, client credentials, site and drive)
are validated when settings are first loaded.
"""

import logging
import sys
from functools import lru_cache
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Raises ValidationError on startup if required variables are missing.
    """

    model_config = SettingsConfigDict(
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Azure AD app registration (required)
    tenant_id: str = Field(..., description="Azure AD tenant identifier")
    client_id: str = Field(..., description="App registration client id")
    client_secret: str = Field(..., description="App registration client secret")

    # Document library scope (required)
    site_id: str = Field(..., description="SharePoint site identifier")
    drive_id: str = Field(..., description="Document library (drive) identifier")

    # Proxy protection
    api_key: str | None = Field(
        default=None, description="x-api-key expected from callers (unset disables)"
    )

    # Server
    service_name: str = Field(
        default="sp-knowledge-proxy", description="Name reported by GET /"
    )
    host: str = Field(default="0.0.0.0", description="Listen address")
    port: int = Field(default=3000, description="Listen port")
    log_level: str = Field(default="INFO", description="Root log level")

    # Remote endpoints
    graph_base_url: str = Field(
        default="https://graph.microsoft.com/v1.0", description="Graph API base URL"
    )
    login_base_url: str = Field(
        default="https://login.microsoftonline.com",
        description="Identity provider base URL",
    )
    graph_scope: str = Field(
        default="https://graph.microsoft.com/.default",
        description="Scope requested in the client-credentials exchange",
    )
    token_refresh_margin_seconds: int = Field(
        default=300, description="Refresh the token this long before it expires"
    )
    http_timeout_seconds: float = Field(
        default=30.0, description="Timeout for a single remote HTTP call"
    )

    # Retrieval limits
    retrieve_timeout_seconds: float = Field(
        default=60.0, description="Deadline for a whole /retrieve request"
    )
    max_concurrent_downloads: int = Field(
        default=4, description="Candidates downloaded and scored in parallel"
    )
    max_chunks_per_document: int = Field(
        default=50, description="Safety cap on chunks scored per document"
    )
    walk_page_size: int = Field(
        default=200, description="$top used when listing folders during a walk"
    )
    follow_next_link: bool = Field(
        default=False, description="Follow @odata.nextLink while walking folders"
    )
    dedupe_candidates: bool = Field(
        default=True, description="Drop repeated item ids from the candidate list"
    )

    # Rate limiting (expensive routes only)
    rate_limit_enabled: bool = Field(default=True, description="Enable rate limiting")
    rate_limit_per_minute: int = Field(default=30, description="Requests per minute")
    rate_limit_per_hour: int = Field(default=600, description="Requests per hour")
    rate_limit_burst: int = Field(default=10, description="Requests per 10 seconds")

    @field_validator("tenant_id", "client_id", "client_secret", "site_id", "drive_id")
    @classmethod
    def validate_not_empty(cls, v: str, info) -> str:
        """Ensure required identifiers are not empty strings."""
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} cannot be empty")
        return v.strip()

    @field_validator("api_key")
    @classmethod
    def blank_api_key_disables_gate(cls, v: str | None) -> str | None:
        """Treat an empty API_KEY as unset."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def drive_path(self) -> str:
        """Graph path prefix of the configured document library."""
        return f"/sites/{self.site_id}/drives/{self.drive_id}"

    @property
    def token_url(self) -> str:
        """Client-credentials token endpoint for the tenant."""
        return f"{self.login_base_url.rstrip('/')}/{self.tenant_id}/oauth2/v2.0/token"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# FastAPI App Configuration
APP_CONFIG: dict[str, Any] = {
    "title": "SP Knowledge Proxy",
    "description": (
        "Retrieval proxy in front of a SharePoint document library. "
        "Lists folders, relays downloads and returns ranked text snippets "
        "for natural-language queries."
    ),
    "version": "0.1.0",
    "docs_url": "/docs",
    "redoc_url": "/redoc",
    "openapi_url": "/openapi.json",
    "openapi_tags": [
        {
            "name": "Health",
            "description": "Service liveness",
        },
        {
            "name": "Drive",
            "description": "Pass-through listing and download",
        },
        {
            "name": "Retrieval",
            "description": "Ranked snippet retrieval",
        },
    ],
}


def get_app_config() -> dict[str, Any]:
    """Get FastAPI application configuration."""
    return APP_CONFIG.copy()
