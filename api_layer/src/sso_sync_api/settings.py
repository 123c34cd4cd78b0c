"""Settings for the SSO site sync API."""

from typing import Optional

from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the SSO site sync API.

    [pydantic.BaseSettings](https://docs.pydantic.dev/latest/concepts/pydantic_settings/) is a popular
    framework for organizing, validating, and reading configuration values from a variety of sources
    including environment variables.

    This class automatically reads from:
    1. Environment variables (production)
    2. .env file (local development)

    Environment variable names are treated case-insensitively.
    """

    # Central registry database (tenants, canonical users, sync log)
    registry_db_connection_string: str
    """PostgreSQL connection string for the central registry database (required)."""

    registry_db_schema: str = "sso_sync"
    """Schema holding the registry tables."""

    registry_db_min_pool_size: int = 1
    """Minimum number of pooled registry connections."""

    registry_db_max_pool_size: int = 10
    """Maximum number of pooled registry connections."""

    # Tenant store access
    tenant_http_timeout_seconds: float = 10.0
    """Timeout applied to every call made to a tenant store."""

    identity_page_size: int = 1000
    """Page size used when scanning a tenant's identity provider users."""

    # Sync engine
    sync_max_concurrency: int = 5
    """Maximum number of tenants synced in parallel during a fan-out."""

    read_row_limit: int = 1000
    """Maximum rows read from a single candidate table when listing tenant users."""

    # Logging
    log_level: str = "INFO"
    """Minimum level for the stdout log sink."""

    environment: Optional[str] = None
    """Deployment environment name, attached to startup logs."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",  # Load from .env file if it exists (local development)
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra environment variables not defined in the model
        validate_default=True,
    )
