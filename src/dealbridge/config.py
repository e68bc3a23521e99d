"""Application configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class ProjectsSource(str, Enum):
    """Where GET /projects reads from."""

    store = "store"
    hubspot = "hubspot"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"
    DEBUG_LOG_SIZE: int = 20

    # Background reconciliation
    QUEUE_DRAIN_TIMEOUT: float = 30.0  # Seconds stop() waits for queued batches

    # HTTP server
    PORT: int = 3000
    CORS_ALLOWED_ORIGINS: str = "*"

    # Project store
    PROJECTS_FILE: str = "/tmp/projects.json"
    PROJECTS_SOURCE: ProjectsSource = ProjectsSource.store

    # HubSpot CRM
    HUBSPOT_ACCESS_TOKEN: str = ""  # Private app token; empty disables enrichment
    HUBSPOT_API_BASE_URL: str = "https://api.hubapi.com"

    # Basecamp project host
    BASECAMP_ACCESS_TOKEN: str = ""
    BASECAMP_ACCOUNT_ID: str = ""
    BASECAMP_API_BASE_URL: str = "https://3.basecampapi.com"
    BASECAMP_USER_AGENT: str = "dealbridge (ops@example.com)"

    # Basecamp OAuth app (only used by the /auth helper endpoints)
    BASECAMP_CLIENT_ID: str = ""
    BASECAMP_CLIENT_SECRET: str = ""
    BASECAMP_REDIRECT_URI: str = ""
    BASECAMP_LAUNCHPAD_URL: str = "https://launchpad.37signals.com"

    # Monitoring
    SENTRY_DSN: str = ""

    @property
    def hubspot_configured(self) -> bool:
        return bool(self.HUBSPOT_ACCESS_TOKEN)

    @property
    def basecamp_configured(self) -> bool:
        """Both a bearer token and an account id are needed to create projects."""
        return bool(self.BASECAMP_ACCESS_TOKEN and self.BASECAMP_ACCOUNT_ID)


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
