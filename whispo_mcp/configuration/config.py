"""Configuration management for whispo-mcp."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from whispo_mcp import __version__
from whispo_mcp.domain.model.mcp.protocol import PROTOCOL_VERSION


class Settings(BaseSettings):
    """Process-level settings for the MCP subsystem."""

    # Logging
    log_level: str = Field(default="INFO", alias="WHISPO_MCP_LOG_LEVEL")

    # Client role timeouts (seconds)
    request_timeout_seconds: float = Field(default=30.0, gt=0, alias="WHISPO_MCP_REQUEST_TIMEOUT")
    handshake_timeout_seconds: float = Field(
        default=10.0, gt=0, alias="WHISPO_MCP_HANDSHAKE_TIMEOUT"
    )
    shutdown_grace_seconds: float = Field(default=5.0, ge=0, alias="WHISPO_MCP_SHUTDOWN_GRACE")

    # Larger than asyncio's 64 KiB default so big tool results fit on one line
    stream_buffer_limit: int = Field(
        default=16 * 1024 * 1024, gt=0, alias="WHISPO_MCP_STREAM_BUFFER_LIMIT"
    )

    # Identity advertised in both roles
    client_name: str = Field(default="Whispo", alias="WHISPO_MCP_CLIENT_NAME")
    client_version: str = Field(default=__version__, alias="WHISPO_MCP_CLIENT_VERSION")
    server_name: str = Field(default="Whispo", alias="WHISPO_MCP_SERVER_NAME")
    server_version: str = Field(default=__version__, alias="WHISPO_MCP_SERVER_VERSION")
    protocol_version: str = Field(default=PROTOCOL_VERSION, alias="WHISPO_MCP_PROTOCOL_VERSION")

    # OpenTelemetry
    telemetry_enabled: bool = Field(default=False, alias="WHISPO_MCP_TELEMETRY_ENABLED")
    service_name: str = Field(default="whispo-mcp", alias="WHISPO_MCP_SERVICE_NAME")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str | None) -> str:
        """Normalize log level value from environment."""
        if value is None:
            return "INFO"
        normalized = str(value).strip().upper()
        if normalized in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            return normalized
        raise ValueError("WHISPO_MCP_LOG_LEVEL must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
