"""
Tools Whispo exposes to external MCP clients.

Each tool reads or changes host state through ``HostStatePort``; requests
the UI must act on (start dictating, switch profile) are published as
events rather than performed here.
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from whispo_mcp.domain.events.mcp_events import (
    DictationRequestedEvent,
    GlossaryUpdatedEvent,
    ProfileSwitchRequestedEvent,
)
from whispo_mcp.domain.model.mcp.context import GlossaryEntry
from whispo_mcp.domain.model.mcp.tool import ToolDefinition, ToolResult
from whispo_mcp.domain.ports.host_ports import (
    EventPublisherPort,
    HostStatePort,
    TranscriptionServicePort,
)
from whispo_mcp.infrastructure.mcp.tool_registry import ToolRegistry

logger = logging.getLogger(__name__)


WHISPO_TOOL_DEFINITIONS: tuple[ToolDefinition, ...] = (
    ToolDefinition(
        name="get_transcription_history",
        description="Get recent transcription history from Whispo",
        input_schema={
            "type": "object",
            "properties": {
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of items to return",
                    "default": 10,
                    "minimum": 1,
                },
                "since": {
                    "type": "string",
                    "description": "ISO timestamp to get items after",
                    "format": "date-time",
                },
            },
        },
    ),
    ToolDefinition(
        name="start_dictation",
        description="Start voice dictation in Whispo",
        input_schema={
            "type": "object",
            "properties": {
                "context": {
                    "type": "string",
                    "description": "Context hint for dictation (code, email, etc.)",
                },
            },
        },
    ),
    ToolDefinition(
        name="get_dictation_config",
        description="Get current Whispo configuration",
        input_schema={"type": "object", "properties": {}},
    ),
    ToolDefinition(
        name="update_glossary",
        description="Update user glossary for better transcription",
        input_schema={
            "type": "object",
            "properties": {
                "entries": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "term": {"type": "string"},
                            "replacement": {"type": "string"},
                            "context": {"type": "string"},
                        },
                        "required": ["term", "replacement"],
                    },
                },
            },
            "required": ["entries"],
        },
    ),
    ToolDefinition(
        name="get_active_profile",
        description="Get the currently active Whispo profile",
        input_schema={"type": "object", "properties": {}},
    ),
    ToolDefinition(
        name="switch_profile",
        description="Switch to a different Whispo profile",
        input_schema={
            "type": "object",
            "properties": {
                "profile_id": {
                    "type": "string",
                    "description": "ID of the profile to switch to",
                },
            },
            "required": ["profile_id"],
        },
    ),
    ToolDefinition(
        name="transcribe_audio",
        description="Transcribe audio using Whispo's configured providers",
        input_schema={
            "type": "object",
            "properties": {
                "audio_path": {
                    "type": "string",
                    "description": "Path to audio file to transcribe",
                },
                "provider": {
                    "type": "string",
                    "enum": ["openai", "groq", "auto"],
                    "description": "Provider to use for transcription",
                },
                "context": {
                    "type": "string",
                    "description": "Context to improve transcription accuracy",
                },
            },
            "required": ["audio_path"],
        },
    ),
)


class WhispoToolHandlers:
    """Handlers for the local tool catalog."""

    def __init__(
        self,
        host_state: HostStatePort,
        publisher: EventPublisherPort,
        transcription: TranscriptionServicePort | None = None,
    ) -> None:
        self._host_state = host_state
        self._publisher = publisher
        self._transcription = transcription

    def get_transcription_history(self, limit: int = 10, since: str | None = None) -> Any:
        since_dt = None
        if since:
            try:
                since_dt = datetime.fromisoformat(since)
            except ValueError:
                return ToolResult.error(f"Invalid 'since' timestamp: {since}")
        items = self._host_state.history(limit=limit, since=since_dt)
        return {"items": items, "total": len(items), "limit": limit}

    def start_dictation(self, context: str | None = None) -> str:
        context = context or "generic"
        self._publisher.publish(DictationRequestedEvent(context=context))
        return f"Started dictation with context: {context}"

    def get_dictation_config(self) -> dict[str, Any]:
        return self._host_state.settings_snapshot()

    def update_glossary(self, entries: list[dict[str, Any]]) -> ToolResult | str:
        parsed: list[GlossaryEntry] = []
        for index, raw in enumerate(entries):
            try:
                parsed.append(GlossaryEntry.from_dict(raw))
            except ValueError as e:
                return ToolResult.error(f"entries.{index}: {e}")
        self._host_state.update_glossary(parsed)
        self._publisher.publish(GlossaryUpdatedEvent(entry_count=len(parsed)))
        return f"Updated glossary with {len(parsed)} entries"

    def get_active_profile(self) -> dict[str, Any]:
        return self._host_state.active_profile()

    def switch_profile(self, profile_id: str) -> ToolResult | str:
        if self._host_state.switch_profile(profile_id) is None:
            return ToolResult.error(f"Unknown profile: {profile_id}")
        self._publisher.publish(ProfileSwitchRequestedEvent(profile_id=profile_id))
        return f"Switched to profile: {profile_id}"

    async def transcribe_audio(
        self,
        audio_path: str,
        provider: str | None = None,
        context: str | None = None,
    ) -> ToolResult | str:
        if not audio_path:
            return ToolResult.error("Error: audio_path is required")
        if self._transcription is None:
            return ToolResult.error("No transcription service is configured")
        try:
            audio = await asyncio.to_thread(Path(audio_path).read_bytes)
        except OSError as e:
            return ToolResult.error(f"Cannot read audio file {audio_path}: {e.strerror or e}")

        logger.info(f"Transcribing {audio_path} ({len(audio)} bytes, provider={provider or 'auto'})")
        return await self._transcription.transcribe(audio, provider=provider, context=context)


def build_tool_registry(
    host_state: HostStatePort,
    publisher: EventPublisherPort,
    transcription: TranscriptionServicePort | None = None,
) -> ToolRegistry:
    """Create a registry holding every local tool, bound to the given ports."""
    handlers = WhispoToolHandlers(host_state, publisher, transcription)
    registry = ToolRegistry()
    for definition in WHISPO_TOOL_DEFINITIONS:
        registry.register(definition, getattr(handlers, definition.name))
    return registry
