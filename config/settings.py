"""Application configuration using Pydantic Settings."""

from typing import List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# NOTE: logfire.configure() is not called here. Logfire is configured once at
# application startup (main.py via observability/logfire_config.py), in Celery
# worker processes (celery_config.py), or in pytest hooks (conftest.py).


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are validated at startup to ensure the application
    has the required configuration before it starts.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application Settings
    environment: str = Field(default="development", description="Environment: development, staging, production")
    debug: bool = Field(default=False, description="Debug mode")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # CORS Settings
    allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins"
    )

    # Database Configuration
    db_user: str = Field(default="postgres", description="Database user")
    db_password: str = Field(default="", description="Database password")
    db_host: str = Field(default="localhost", description="Database host")
    db_port: int = Field(default=5432, description="Database port")
    db_name: str = Field(default="bookingops", description="Database name")
    db_sslmode: str = Field(default="prefer", description="PostgreSQL sslmode")
    database_dsn: str = Field(
        default="",
        description="Full SQLAlchemy URL; overrides the db_* settings when set (e.g. sqlite:// for tests)"
    )

    # Email delivery
    email_transport: str = Field(default="console", description="Email transport: sendgrid or console")
    sendgrid_api_key: str = Field(default="", description="SendGrid API key")
    sendgrid_from_email: str = Field(default="notifications@example.com", description="Sender address")
    sendgrid_api_base_url: str = Field(default="https://api.sendgrid.com", description="SendGrid API base URL")

    # Timeouts (seconds) for blocking operations inside the rule pipeline
    db_query_timeout_seconds: float = Field(default=3.0, description="Timeout for submission/lead lookups")
    rule_fetch_timeout_seconds: float = Field(default=15.0, description="Timeout for loading rules and form fields")
    email_send_timeout_seconds: float = Field(default=10.0, description="Timeout for a single transport call")

    # Pagination
    pagination_default_limit: int = Field(default=20, description="Default page size")
    pagination_max_limit: int = Field(default=100, description="Maximum page size")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # Observability
    logfire_token: str = Field(default="", description="Logfire observability token")

    @field_validator("allowed_origins")
    @classmethod
    def parse_origins(cls, v: str) -> List[str]:
        """Parse comma-separated origins into a list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("email_transport")
    @classmethod
    def validate_email_transport(cls, v: str) -> str:
        """Only the transports implemented in services.email_transport are accepted."""
        normalized = v.strip().lower()
        if normalized not in {"sendgrid", "console"}:
            raise ValueError(f"Unsupported email transport: {v}")
        return normalized

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() == "production"

    @property
    def is_sqlite(self) -> bool:
        """True when the configured database is SQLite (local runs and tests)."""
        return self.database_url.startswith("sqlite")

    @property
    def database_url(self) -> str:
        """
        Construct the SQLAlchemy database URL.
        Uses the psycopg2 driver unless DATABASE_DSN overrides the whole URL.
        """
        if self.database_dsn:
            return self.database_dsn
        return (
            f"postgresql+psycopg2://{self.db_user}:{self.db_password}@"
            f"{self.db_host}:{self.db_port}/{self.db_name}?sslmode={self.db_sslmode}"
        )


# Create a singleton instance
settings = Settings()


def get_settings() -> "Settings":
    """Return the singleton settings instance."""
    return settings
