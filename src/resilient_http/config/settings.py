# Assumptions:
# - Configuration management using environment variables
# - Pydantic Settings for validation
# - Default values match the client's built-in defaults

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """HTTP client settings, read from HTTPCLIENT_* environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="HTTPCLIENT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Transport
    transport: Literal["httpx", "aiohttp"] = "httpx"
    timeout: float = Field(default=30.0, gt=0)
    close_connection: bool = False

    # Retries
    retry_count: int = Field(default=0, ge=0)
    backoff_strategy: Literal["none", "constant", "linear", "exponential"] = "none"
    backoff_initial: float = Field(default=0.1, ge=0)
    backoff_increment: float = Field(default=0.1, ge=0)
    backoff_max: float = Field(default=10.0, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1)
    backoff_max_jitter: float = Field(default=0.0, ge=0)

    # Logging
    service_name: str = "resilient-http"
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"
    log_transport_level: str = "WARNING"

    # OpenTelemetry
    otel_exporter_otlp_endpoint: str | None = None


@lru_cache()
def get_settings() -> Settings:
    """Get HTTP client settings singleton"""
    return Settings()


def options_from_settings(settings: Settings | None = None) -> list:
    """Translate settings into client options"""
    from ..http.backoff import backoff_from_settings
    from ..http.options import with_backend, with_close_connection, with_retrier, with_retry_count, with_timeout

    settings = settings or get_settings()
    return [
        with_timeout(settings.timeout),
        with_retry_count(settings.retry_count),
        with_retrier(backoff_from_settings(settings)),
        with_backend(settings.transport),
        with_close_connection(settings.close_connection),
    ]


def configure_from_settings(settings: Settings | None = None) -> None:
    """Set up logging and telemetry for the calling service"""
    from ..logging import setup_logging
    from ..telemetry import setup_telemetry

    settings = settings or get_settings()
    setup_logging(
        settings.service_name,
        level=settings.log_level,
        format_type=settings.log_format,
        transport_level=settings.log_transport_level,
    )
    setup_telemetry(settings.service_name, endpoint=settings.otel_exporter_otlp_endpoint)
