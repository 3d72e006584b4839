"""Configuration management using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SBGATEWAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ShopBack upstream
    shopback_access_key: str = Field(
        default="",
        description="ShopBack access key (sent in the Authorization header)",
    )
    shopback_access_key_secret: SecretStr = Field(
        default=SecretStr(""),
        description="ShopBack access key secret used as the HMAC key",
    )
    shopback_base_url: str = Field(
        default="https://integrations-sandbox.shopback.com/posi-sandbox",
        description="Base URL of the ShopBack in-store API",
    )
    shopback_sign_full_url: bool = Field(
        default=True,
        description="Sign the full upstream URL instead of the bare path",
    )

    # Timeouts
    http_timeout: float = Field(
        default=30.0,
        description="Upstream HTTP request timeout in seconds",
    )

    # Gateway server
    gateway_host: str = Field(
        default="0.0.0.0",
        description="Host for the gateway HTTP server",
    )
    gateway_port: int = Field(
        default=8000,
        description="Port for the gateway HTTP server",
    )
    request_id_header: str = Field(
        default="X-Request-ID",
        description="Header used to propagate request ids",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum log level",
    )
    log_json: bool = Field(
        default=False,
        description="Render logs as JSON lines instead of console output",
    )
    log_signing_material: bool = Field(
        default=False,
        description=(
            "Log signing strings and signatures at DEBUG; requires log_level DEBUG "
            "(never enable in production)"
        ),
    )

    # Tracing
    tracing_enabled: bool = Field(
        default=False,
        description="Enable OpenTelemetry tracing",
    )
    tracing_otlp_endpoint: str | None = Field(
        default=None,
        description="OTLP collector endpoint (e.g. http://localhost:4317)",
    )
    tracing_console: bool = Field(
        default=False,
        description="Emit traces to console (debug only)",
    )
    tracing_service_name: str | None = Field(
        default=None,
        description="Service name for tracing (defaults to sbgateway)",
    )

    @property
    def tracing_requested(self) -> bool:
        """Whether any tracing exporter is configured."""
        return bool(self.tracing_enabled or self.tracing_otlp_endpoint or self.tracing_console)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
