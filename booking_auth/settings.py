"""Application settings and configuration."""

from datetime import timedelta
from functools import lru_cache

from pydantic import Field

from pydantic_settings import BaseSettings, SettingsConfigDict

from booking_auth.core.auth.config import AuthConfig

INSECURE_DEFAULTS = {
    "jwt_secret_key": "default-jwt-secret-change-in-production",
    "csrf_secret": "csrf-token-secret",
}


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    All settings can be overridden via environment variables.
    Example: DATABASE_URL, JWT_SECRET_KEY, MAX_LOGIN_ATTEMPTS
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    debug: bool = Field(False)
    environment: str = Field("development")
    host: str = Field("0.0.0.0")
    port: int = Field(8000)

    # API settings
    api_title: str = Field("Booking Auth API")
    api_version: str = Field("1.0.0")
    api_description: str = Field(
        "Authentication and authorization for the shared resource booking backend"
    )
    api_v1_prefix: str = Field("/api/v1")

    # Database settings
    database_url: str = Field(
        default="sqlite+aiosqlite:///./booking_auth.db",
        description="Database connection URL",
    )
    auto_create_tables: bool = Field(
        default=True,
        description="Create missing tables on startup instead of relying on Alembic",
    )

    # JWT settings
    jwt_secret_key: str = Field(INSECURE_DEFAULTS["jwt_secret_key"])
    jwt_algorithm: str = Field("HS256")
    access_token_expire_minutes: int = Field(15)
    refresh_token_expire_days: int = Field(7)

    # Lockout policy
    max_login_attempts: int = Field(5, ge=1)
    lockout_duration_minutes: int = Field(15, ge=1)

    # Security settings
    bcrypt_rounds: int = Field(12, ge=4, le=31)
    csrf_secret: str = Field(INSECURE_DEFAULTS["csrf_secret"])

    # RBAC settings
    default_role_name: str = Field("user")
    rbac_config_path: str = Field("config/rbac.yaml")

    # CORS settings
    allowed_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Celery settings
    celery_broker_url: str = Field("redis://localhost:6379/0")
    celery_result_backend: str = Field("redis://localhost:6379/0")
    token_cleanup_interval_seconds: float = Field(3600.0)

    # Logging settings
    log_level: str = Field("INFO")
    log_format: str = Field("json", description="Log format (json or text)")
    log_dir: str = Field("logs")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def database_is_sqlite(self) -> bool:
        """Check if using SQLite database."""
        return self.database_url.startswith("sqlite")

    def insecure_settings(self) -> list[str]:
        """Return the names of secrets still set to their shipped defaults."""
        return [
            name
            for name, default in INSECURE_DEFAULTS.items()
            if getattr(self, name) == default
        ]

    def validate_production(self) -> None:
        """
        Refuse to run in production with default secrets.

        Raises:
            RuntimeError: If a secret still holds its insecure default
        """
        insecure = self.insecure_settings()
        if self.is_production and insecure:
            raise RuntimeError(
                f"Insecure default values for: {', '.join(insecure)}"
            )

    def auth_config(self) -> AuthConfig:
        """Build the immutable auth policy handed to the auth services."""
        return AuthConfig(
            jwt_secret_key=self.jwt_secret_key,
            jwt_algorithm=self.jwt_algorithm,
            access_token_ttl=timedelta(minutes=self.access_token_expire_minutes),
            refresh_token_ttl=timedelta(days=self.refresh_token_expire_days),
            max_login_attempts=self.max_login_attempts,
            lockout_duration=timedelta(minutes=self.lockout_duration_minutes),
            default_role_name=self.default_role_name,
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
