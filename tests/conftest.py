"""Pytest configuration and shared fixtures for testing."""

import sys
from pathlib import Path

import pytest

from whispo_mcp.configuration.config import Settings
from whispo_mcp.domain.model.mcp.config import McpConfiguration, ServerConfig
from whispo_mcp.infrastructure.adapters.secondary.event_publisher import InMemoryEventPublisher
from whispo_mcp.infrastructure.adapters.secondary.host_state import InMemoryHostState
from whispo_mcp.infrastructure.telemetry.config import _reset_providers, configure_tracer_provider

FAKE_SERVER_PATH = Path(__file__).parent / "fixtures" / "fake_mcp_server.py"


@pytest.fixture(autouse=True)
def disable_telemetry():
    """Keep tracing off so tests never read .env or export spans."""
    _reset_providers()
    configure_tracer_provider(enabled=False)
    yield
    _reset_providers()


@pytest.fixture
def fake_server_path() -> Path:
    return FAKE_SERVER_PATH


@pytest.fixture
def settings() -> Settings:
    """Settings with short timeouts for subprocess tests."""
    return Settings(
        request_timeout_seconds=5.0,
        handshake_timeout_seconds=5.0,
        shutdown_grace_seconds=2.0,
        log_level="DEBUG",
    )


@pytest.fixture
def fake_server_config():
    """Factory for ServerConfig entries that launch the fake MCP server."""

    def _make(
        name: str = "fake",
        mode: str = "normal",
        tools: list[str] | None = None,
        env: dict[str, str] | None = None,
        enabled: bool = True,
    ) -> ServerConfig:
        args = [str(FAKE_SERVER_PATH), "--mode", mode, "--name", name]
        if tools is not None:
            args += ["--tools", ",".join(tools)]
        return ServerConfig(
            name=name,
            command=sys.executable,
            args=tuple(args),
            env=env,
            enabled=enabled,
        )

    return _make


@pytest.fixture
def enabled_config():
    """Factory for an enabled McpConfiguration holding the given servers."""

    def _make(*servers: ServerConfig, **awareness) -> McpConfiguration:
        config = McpConfiguration(enabled=True, servers={s.name: s for s in servers})
        if awareness:
            config = config.with_context_awareness(
                config.context_awareness.model_copy(update=awareness)
            )
        return config

    return _make


@pytest.fixture
def publisher() -> InMemoryEventPublisher:
    return InMemoryEventPublisher()


@pytest.fixture
def host_state() -> InMemoryHostState:
    return InMemoryHostState(
        profiles={
            "default": {"id": "default", "name": "Default Profile"},
            "coding": {"id": "coding", "name": "Coding"},
        }
    )
