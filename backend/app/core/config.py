"""
Core configuration for the revenue tracker.
Uses Pydantic Settings for environment variable management.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from pydantic import model_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_empty_env_values(cls, data):
        if not isinstance(data, dict):
            return data
        # Hosting platforms sometimes inject empty-string env vars.
        # Treat them as "unset" so typed fields (bool/int/float) don't crash on startup.
        return {key: value for key, value in data.items() if value != ""}

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "info"

    # Database (only used when REVENUE_STORE_BACKEND=sql)
    DATABASE_URL: str = "sqlite:///./revenue_tracker.db"

    # Event log backend: "memory" keeps events for the process lifetime,
    # "sql" appends them to the revenue_events table.
    REVENUE_STORE_BACKEND: str = "memory"
    # Create the revenue_events table on startup when using the sql backend.
    # Turn off once alembic owns the schema.
    REVENUE_AUTO_CREATE_TABLES: bool = True
    REVENUE_INGEST_ENABLED: bool = True

    # Reporting
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 200

    # CORS
    FRONTEND_URL: str = "http://localhost:3000"
    CORS_ALLOW_ALL: bool = True

    # Emitter (client side)
    REVENUE_TRACK_URL: str = "http://localhost:8180/api/track/revenue"
    EMITTER_TIMEOUT_SECONDS: float = 5.0


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
