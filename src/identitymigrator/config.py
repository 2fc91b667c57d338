"""
Environment configuration for the command-line entry point.

The library itself is configured with MigrationSettings; this module
only maps environment variables (prefix ``IDENTITY_MIGRATOR_``) onto it
and onto the two database URLs the entry point needs.

Environment:
    IDENTITY_MIGRATOR_SOURCE_URL        SQLAlchemy async URL of the origin store
    IDENTITY_MIGRATOR_DESTINATION_URL   SQLAlchemy async URL of the destination
    IDENTITY_MIGRATOR_USER_BATCH_SIZE   Page size for users (default 500)
    IDENTITY_MIGRATOR_BATCH_SIZE        Page size for other tables (default 2000)
    IDENTITY_MIGRATOR_EMAIL_DOMAIN      Domain of generated emails
    IDENTITY_MIGRATOR_LOG_LEVEL         Logging level (default INFO)
    IDENTITY_MIGRATOR_ENABLE_TRACING    Emit OpenTelemetry spans (default true)
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from identitymigrator.models import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_EMAIL_DOMAIN,
    DEFAULT_USER_BATCH_SIZE,
    MigrationSettings,
)


class MigratorEnvironment(BaseSettings):
    """
    Settings read from the process environment (and an optional .env file).

    Example:
        >>> env = MigratorEnvironment(
        ...     source_url="mssql+aioodbc://...",
        ...     destination_url="postgresql+asyncpg://...",
        ... )
        >>> env.to_settings().user_batch_size
        500
    """

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_MIGRATOR_",
        env_file=".env",
        extra="ignore",
    )

    source_url: str | None = None
    destination_url: str | None = None
    user_batch_size: int = Field(default=DEFAULT_USER_BATCH_SIZE, gt=0)
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, gt=0)
    email_domain: str = Field(default=DEFAULT_EMAIL_DOMAIN, min_length=1)
    log_level: str = "INFO"
    enable_tracing: bool = True

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"):
            raise ValueError(f"Unknown log level: {value}")
        return level

    def to_settings(self) -> MigrationSettings:
        """Build the run tunables."""
        return MigrationSettings(
            user_batch_size=self.user_batch_size,
            batch_size=self.batch_size,
            email_domain=self.email_domain,
        )


__all__ = ["MigratorEnvironment"]
