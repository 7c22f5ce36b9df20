"""
Application settings loaded from environment variables.
Uses pydantic-settings for type-safe configuration.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with defaults for development."""

    # Environment
    environment: str = "development"
    debug: bool = True

    # Signed workstation scope tokens
    jwt_secret: str = "dev-secret-change-me-in-production"
    jwt_issuer: str = "workstation-api"
    jwt_audience: str = "workstations"
    scope_token_expire_minutes: int = Field(default=16 * 60, gt=0)

    # Session store persistence: "memory", "sql" or "redis"
    store_backend: str = "sql"
    # Used by the "sql" backend (one key/value table)
    database_url: str = "sqlite:///./workstation_store.db"
    # Maximum serialized size of a single key, mirrors a browser storage quota
    store_quota_bytes: int = 5 * 1024 * 1024

    # Redis (store backend "redis" and change bus backend "redis")
    redis_url: str = "redis://localhost:6379"
    redis_socket_timeout: int = 5
    redis_key_prefix: str = "ops:store:"

    # Change bus: "local" (single process) or "redis" (cross-process pub/sub)
    change_bus_backend: str = "local"
    change_bus_channel_prefix: str = "ops:changes:"
    # Seconds a Redis listener thread waits for a message before re-checking shutdown
    change_bus_poll_timeout: float = 1.0

    # Workstation refresh fallback intervals (seconds)
    kitchen_refresh_seconds: float = Field(default=4.0, gt=0)
    cashier_refresh_seconds: float = Field(default=10.0, gt=0)
    service_refresh_seconds: float = Field(default=10.0, gt=0)
    reception_refresh_seconds: float = Field(default=10.0, gt=0)

    # Restaurant roster seed (JSON file); empty uses the built-in demo roster
    roster_seed_path: str = ""

    # Rate limiting for employee login (slowapi limit string)
    login_rate_limit: str = "5/minute"

    # Server
    api_port: int = 8000
    # Comma-separated list of allowed origins (empty uses default localhost list)
    allowed_origins: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    def refresh_interval_for(self, workstation: str) -> float:
        """Polling fallback interval for a workstation kind."""
        intervals = {
            "kitchen": self.kitchen_refresh_seconds,
            "cashier": self.cashier_refresh_seconds,
            "service": self.service_refresh_seconds,
            "reception": self.reception_refresh_seconds,
        }
        return intervals.get(workstation, self.cashier_refresh_seconds)

    def validate_production_settings(self) -> list[str]:
        """
        Validate that the configuration is fit for production.
        Returns a list of validation errors. Empty list means all checks pass.
        """
        errors = []

        WEAK_SECRETS = {
            "dev-secret-change-me-in-production",
            "secret",
            "password",
            "changeme",
            "default",
        }

        if self.environment == "production":
            if self.jwt_secret in WEAK_SECRETS or len(self.jwt_secret) < 32:
                errors.append(
                    "JWT_SECRET must be at least 32 characters and not a default value in production"
                )

            if self.store_backend == "memory":
                errors.append(
                    "STORE_BACKEND=memory loses every cash session on restart; use sql or redis in production"
                )

            if self.debug:
                errors.append("DEBUG must be False in production")

            if not self.allowed_origins:
                errors.append(
                    "ALLOWED_ORIGINS must be set in production (comma-separated list of allowed domains)"
                )

        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience exports
settings = get_settings()

DATABASE_URL = settings.database_url
REDIS_URL = settings.redis_url
JWT_SECRET = settings.jwt_secret
JWT_ISSUER = settings.jwt_issuer
JWT_AUDIENCE = settings.jwt_audience
