"""
Shared configuration management for the License Provider services.
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings.

    Instances are frozen: a config is built once at startup and handed to the
    components that need it.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # Environment
    env: str = Field(default="local", validation_alias=AliasChoices("LICENSES_ENV", "ACCESS_ENV", "env"))
    log_level: str = Field(
        default="info",
        validation_alias=AliasChoices("LICENSES_LOG_LEVEL", "ACCESS_LOG_LEVEL", "log_level"),
    )

    # Observability
    enable_tracing: bool = Field(
        default=False,
        validation_alias=AliasChoices("LICENSES_ENABLE_TRACING", "enable_tracing"),
    )
    otel_exporter: str = Field(
        default="http://localhost:4317",
        validation_alias=AliasChoices("LICENSES_OTEL_EXPORTER", "otel_exporter"),
    )
    enable_console_tracing: bool = Field(
        default=False,
        validation_alias=AliasChoices("LICENSES_ENABLE_CONSOLE_TRACING", "enable_console_tracing"),
    )


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str = "service"
    host: str = Field(default="0.0.0.0", validation_alias=AliasChoices("LICENSES_HOST", "host"))
    port: int = Field(default=8080, validation_alias=AliasChoices("LICENSES_PORT", "PORT", "port"))
