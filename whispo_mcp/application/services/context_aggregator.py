"""
Context Aggregator.

Builds a TranscriptionContext from the connected context providers and the
OS active-window layer, and applies the user's glossary to transcripts.
Every source is independent: one failing leaves its field empty and the
rest of the context intact.
"""

import asyncio
import json
import logging
from dataclasses import replace
from functools import partial
from typing import Any

from whispo_mcp.domain.exceptions.mcp import MCPError, MCPToolExecutionError, MCPToolNotFoundError
from whispo_mcp.domain.model.mcp.config import McpConfiguration
from whispo_mcp.domain.model.mcp.context import (
    ActiveAppContext,
    FileContext,
    GlossaryEntry,
    ProjectContext,
    TranscriptionContext,
)
from whispo_mcp.domain.model.mcp.tool import TextContent, ToolResult
from whispo_mcp.domain.ports.host_ports import ActiveWindowPort
from whispo_mcp.infrastructure.mcp.connection_manager import MCPConnectionManager

logger = logging.getLogger(__name__)

ACTIVE_FILE_TOOL = "get_active_file"
PROJECT_INFO_TOOL = "get_project_info"
GLOSSARY_TOOL = "get_glossary"
RECENT_INTERACTIONS_TOOL = "get_recent_interactions"

# First match wins; matched against the lowercased executable, then the name
CONTEXT_TYPE_PATTERNS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "code",
        (
            "code", "studio", "cursor", "idea", "pycharm", "webstorm",
            "sublime", "vim", "emacs", "xcode", "zed",
        ),
    ),
    (
        "terminal",
        ("terminal", "iterm", "alacritty", "kitty", "wezterm", "konsole", "powershell", "cmd"),
    ),
    ("email", ("mail", "outlook", "thunderbird")),
    ("chat", ("slack", "discord", "teams", "telegram", "whatsapp", "signal")),
    ("document", ("word", "docs", "pages", "writer", "notion", "obsidian", "notes")),
    ("browser", ("chrome", "firefox", "safari", "edge", "brave", "opera", "vivaldi")),
)


def detect_context_type(executable: str, name: str = "") -> str:
    """Map an application to the dictation context it implies."""
    for candidate in (executable.lower(), name.lower()):
        if not candidate:
            continue
        for context_type, patterns in CONTEXT_TYPE_PATTERNS:
            if any(pattern in candidate for pattern in patterns):
                return context_type
    return "generic"


def apply_glossary(text: str, glossary: list[GlossaryEntry]) -> str:
    """
    Apply glossary substitutions in order.

    Each entry is one literal, left-to-right, non-overlapping pass; output
    of an earlier entry can be matched by a later one. Empty terms are
    skipped.
    """
    for entry in glossary:
        if entry.term:
            text = text.replace(entry.term, entry.replacement)
    return text


def _tool_payload(tool_name: str, result: ToolResult) -> Any:
    """Decode the JSON carried by a tool result's first text block."""
    if result.is_error:
        raise MCPToolExecutionError(tool_name, result.text or None)
    for content in result.content:
        if isinstance(content, TextContent):
            return json.loads(content.text)
    raise ValueError(f"Tool '{tool_name}' returned no text content")


class ContextAggregator:
    """Queries context providers and merges their answers."""

    def __init__(
        self,
        connections: MCPConnectionManager,
        active_window: ActiveWindowPort | None = None,
    ) -> None:
        self._connections = connections
        self._active_window = active_window

    async def get_transcription_context(self, config: McpConfiguration) -> TranscriptionContext:
        """
        Aggregate a fresh context.

        Returns an empty context without touching any connection when the
        subsystem is disabled.
        """
        context = TranscriptionContext.empty()
        if not config.enabled:
            return context

        awareness = config.context_awareness
        limit = awareness.max_context_length
        file_task = (
            self._fetch(ACTIVE_FILE_TOOL, partial(self._parse_file, limit=limit))
            if awareness.use_file_context
            else None
        )
        project_task = (
            self._fetch(PROJECT_INFO_TOOL, ProjectContext.from_dict)
            if awareness.use_project_context
            else None
        )
        glossary_task = (
            self._fetch(GLOSSARY_TOOL, self._parse_glossary) if awareness.use_glossary else None
        )
        recent_task = (
            self._fetch(RECENT_INTERACTIONS_TOOL, partial(self._parse_interactions, limit=limit))
            if awareness.use_recent_interactions
            else None
        )

        async def _skip() -> None:
            return None

        active_file, project, glossary, recent = await asyncio.gather(
            file_task or _skip(),
            project_task or _skip(),
            glossary_task or _skip(),
            recent_task or _skip(),
        )

        context.active_application = self._active_application()
        context.active_file = active_file
        context.project_context = project
        context.user_glossary = glossary or []
        context.recent_interactions = recent or []
        return context

    async def enhance_transcript(self, text: str, config: McpConfiguration) -> str:
        """Apply the aggregated glossary to a transcript."""
        if not config.enabled:
            return text
        context = await self.get_transcription_context(config)
        return apply_glossary(text, context.user_glossary)

    async def _fetch(self, tool_name: str, parse) -> Any:
        try:
            result = await self._connections.call_tool(tool_name, {})
            return parse(_tool_payload(tool_name, result))
        except MCPToolNotFoundError:
            logger.debug(f"No connected MCP server offers '{tool_name}'")
        except MCPError as e:
            logger.warning(f"Context source '{tool_name}' failed: {e}")
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning(f"Context source '{tool_name}' returned an unusable payload: {e}")
        return None

    def _active_application(self) -> ActiveAppContext | None:
        if self._active_window is None:
            return None
        try:
            app = self._active_window.active_application()
        except Exception as e:
            logger.warning(f"Active window lookup failed: {e}")
            return None
        return ActiveAppContext(
            name=app.name,
            executable=app.executable,
            window_title=app.title,
            context_type=detect_context_type(app.executable, app.name),
        )

    @staticmethod
    def _parse_file(payload: Any, limit: int) -> FileContext:
        if not isinstance(payload, dict):
            raise ValueError("active file payload must be an object")
        file = FileContext.from_dict(payload)
        if file.selected_text is None or len(file.selected_text) <= limit:
            return file
        return replace(file, selected_text=file.selected_text[:limit])

    @staticmethod
    def _parse_glossary(payload: Any) -> list[GlossaryEntry]:
        if isinstance(payload, dict):
            payload = payload.get("entries")
        if not isinstance(payload, list):
            raise ValueError("glossary payload must be a list or {entries: [...]}")
        entries: list[GlossaryEntry] = []
        for raw in payload:
            try:
                entries.append(GlossaryEntry.from_dict(raw))
            except (ValueError, TypeError, AttributeError) as e:
                logger.debug(f"Skipping glossary entry {raw!r}: {e}")
        return entries

    @staticmethod
    def _parse_interactions(payload: Any, limit: int) -> list[str]:
        """Text of each interaction, in order, while the running length fits ``limit``."""
        if isinstance(payload, dict):
            payload = payload.get("interactions", payload.get("items"))
        if not isinstance(payload, list):
            raise ValueError("recent interactions payload must be a list")
        interactions: list[str] = []
        total = 0
        for item in payload:
            if isinstance(item, dict):
                item = item.get("text")
            if not isinstance(item, str):
                continue
            total += len(item)
            if total > limit:
                break
            interactions.append(item)
        return interactions

