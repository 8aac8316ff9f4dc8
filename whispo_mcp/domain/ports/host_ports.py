"""
Host ports - interfaces the MCP subsystem consumes from the host application.

The host (desktop shell, tray, config persistence, OS glue, speech-to-text
client) lives outside this package. These protocols are the only seams the
subsystem talks through.
"""

from abc import abstractmethod
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from whispo_mcp.domain.events.mcp_events import MCPEvent
from whispo_mcp.domain.model.mcp.config import McpConfiguration
from whispo_mcp.domain.model.mcp.context import ActiveApplication, GlossaryEntry


@runtime_checkable
class ConfigurationStorePort(Protocol):
    """Loads and persists the user's MCP configuration."""

    @abstractmethod
    def load(self) -> McpConfiguration:
        """Return the stored configuration (default when none is stored)."""
        ...

    @abstractmethod
    def save(self, config: McpConfiguration) -> None:
        """Persist the configuration."""
        ...


@runtime_checkable
class TranscriptionServicePort(Protocol):
    """Speech-to-text service."""

    @abstractmethod
    async def transcribe(
        self,
        audio: bytes,
        provider: str | None = None,
        context: str | None = None,
    ) -> str:
        """
        Transcribe encoded audio.

        Args:
            audio: Encoded audio bytes as read from disk.
            provider: Provider hint ("openai", "groq", "auto").
            context: Free-form hint to improve accuracy.

        Returns:
            The transcript text.
        """
        ...


@runtime_checkable
class ActiveWindowPort(Protocol):
    """OS layer reporting the foreground application."""

    @abstractmethod
    def active_application(self) -> ActiveApplication:
        ...


@runtime_checkable
class EventPublisherPort(Protocol):
    """Sink for events addressed to the UI layer."""

    @abstractmethod
    def publish(self, event: MCPEvent) -> None:
        ...


@runtime_checkable
class HostStatePort(Protocol):
    """
    Host data exposed to external MCP clients.

    Backs the server role's resources (config, history, glossary) and the
    local tools that read or change host state.
    """

    @abstractmethod
    def settings_snapshot(self) -> dict[str, Any]:
        """Return the dictation settings safe to share (no secrets)."""
        ...

    @abstractmethod
    def history(self, limit: int = 10, since: datetime | None = None) -> list[dict[str, Any]]:
        """Return recent transcription history items, newest first."""
        ...

    @abstractmethod
    def glossary(self) -> list[GlossaryEntry]:
        ...

    @abstractmethod
    def update_glossary(self, entries: list[GlossaryEntry]) -> None:
        """Add or replace glossary entries, keyed by term."""
        ...

    @abstractmethod
    def active_profile(self) -> dict[str, Any]:
        ...

    @abstractmethod
    def switch_profile(self, profile_id: str) -> dict[str, Any] | None:
        """Activate a profile; None when the profile does not exist."""
        ...
