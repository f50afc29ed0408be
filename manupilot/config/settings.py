"""
Configuration settings for the ManuPilot sourcing API.

Every value can be overridden from the environment or a .env file; each
section reads its own prefix (DB_, AUTH_, AI_, SOURCING_).
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Data store configuration."""

    model_config = SettingsConfigDict(env_prefix="DB_")

    backend: Literal["sql", "memory"] = "sql"
    host: str = "localhost"
    port: int = 5432
    name: str = "manupilot"
    user: str = "postgres"
    password: SecretStr = SecretStr("postgres")
    pool_size: int = 10
    max_overflow: int = 10
    create_tables: bool = True

    @property
    def async_url(self) -> str:
        """Construct async database URL."""
        return (
            f"postgresql+asyncpg://{self.user}:"
            f"{self.password.get_secret_value()}@"
            f"{self.host}:{self.port}/{self.name}"
        )


class AuthSettings(BaseSettings):
    """
    Bearer token verification.

    Tokens are issued by the external identity provider and signed with
    a shared secret; this service only verifies them.
    """

    model_config = SettingsConfigDict(env_prefix="AUTH_")

    secret_key: SecretStr = SecretStr("change-me-in-production")
    algorithm: str = "HS256"
    audience: str | None = None
    access_token_expire_minutes: int = 60


class AISettings(BaseSettings):
    """Completion service configuration."""

    model_config = SettingsConfigDict(env_prefix="AI_")

    api_key: SecretStr | None = None
    base_url: str = "https://api.openai.com/v1"
    default_model: str = "gpt-4o"
    qc_model: str = "gpt-4o-mini"
    photo_analysis_max_tokens: int = 500
    temperature: float | None = None
    max_tokens: int | None = None
    request_timeout_seconds: float = 60.0
    max_attempts: int = 1


class SourcingSettings(BaseSettings):
    """RFQ, quote and account workflow settings."""

    model_config = SettingsConfigDict(env_prefix="SOURCING_")

    min_title_token_length: int = 4
    quote_analyzer: Literal["llm", "rules"] = "llm"
    nda_version: str = "1.0"
    notifications_page_size: int = 50
    default_quote_validity_days: int = 30
    qc_min_items: int = 6
    qc_max_items: int = 10


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "ManuPilot Sourcing API"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    api_prefix: str = "/api/v1"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Sub-configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    ai: AISettings = Field(default_factory=AISettings)
    sourcing: SourcingSettings = Field(default_factory=SourcingSettings)


@lru_cache()
def get_settings() -> Settings:
    """Settings loaded once per process; call cache_clear() to reload."""
    return Settings()


settings = get_settings()
