"""Logging and metrics settings."""

from typing import Literal

from pydantic import BaseModel, Field

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["json", "console"]


class LoggingConfig(BaseModel):
    level: LogLevel = "INFO"
    format: LogFormat = Field(default="json", description="json for shipping, console for humans")
    redact_pii: bool = Field(
        default=True,
        description="Scrub phone numbers, addresses and codes from log events",
    )
    redact_keys: list[str] = Field(
        default_factory=list,
        description="Event keys redacted in addition to the built-in set",
    )


class MetricsConfig(BaseModel):
    """Prometheus exposition served by the ``schedule`` command."""

    enabled: bool = True
    host: str = Field(default="0.0.0.0", description="Address the metrics server binds")
    port: int = Field(default=9090, ge=1, le=65535)


class ObservabilityConfig(BaseModel):
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
