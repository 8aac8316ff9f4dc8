"""Unit tests for tool, resource, connection and context value objects."""

import json
from datetime import UTC, datetime

import pytest

from whispo_mcp.domain.events.mcp_events import (
    MCPEventType,
    ServerConnectedEvent,
)
from whispo_mcp.domain.model.mcp.connection import (
    ConnectionInfo,
    ConnectionState,
    ServerCapabilities,
    ServerInfo,
)
from whispo_mcp.domain.model.mcp.context import (
    FileContext,
    GlossaryEntry,
    ProjectContext,
    TranscriptionContext,
)
from whispo_mcp.domain.model.mcp.resource import McpPrompt
from whispo_mcp.domain.model.mcp.tool import (
    ImageContent,
    ResourceContent,
    TextContent,
    ToolDefinition,
    ToolResult,
)


@pytest.mark.unit
class TestToolResult:
    """Tests for the tool result envelope."""

    def test_success_and_error_factories(self):
        assert ToolResult.success("ok").to_dict() == {
            "content": [{"type": "text", "text": "ok"}],
            "isError": False,
        }
        assert ToolResult.error("bad").is_error is True

    def test_json_factory_pretty_prints(self):
        result = ToolResult.json({"a": 1})

        assert json.loads(result.text) == {"a": 1}
        assert "\n" in result.text

    def test_from_dict_parses_every_content_type(self):
        result = ToolResult.from_dict(
            {
                "content": [
                    {"type": "text", "text": "hello"},
                    {"type": "image", "data": "AAAA", "mimeType": "image/png"},
                    {"type": "resource", "resource": {"uri": "file:///a", "mimeType": "text/plain"}},
                    {"type": "audio", "data": "xx"},
                    "not-a-block",
                ],
                "isError": True,
            }
        )

        assert result.is_error is True
        assert len(result.content) == 4
        assert result.content[0] == TextContent(text="hello")
        assert result.content[1] == ImageContent(data="AAAA", mime_type="image/png")
        assert result.content[2] == ResourceContent(uri="file:///a", mime_type="text/plain")
        # Unknown block types degrade to their JSON text
        assert json.loads(result.content[3].text) == {"type": "audio", "data": "xx"}

    def test_text_joins_text_blocks_only(self):
        result = ToolResult(
            content=[
                TextContent(text="a"),
                ImageContent(data="x", mime_type="image/png"),
                TextContent(text="b"),
            ]
        )

        assert result.text == "a\nb"

    def test_missing_content_is_empty(self):
        assert ToolResult.from_dict({}).content == []


@pytest.mark.unit
class TestToolDefinition:
    def test_round_trip_uses_input_schema_key(self):
        definition = ToolDefinition(
            name="echo",
            description="Echo",
            input_schema={"type": "object", "properties": {"text": {"type": "string"}}},
        )

        data = definition.to_dict()

        assert data["inputSchema"]["properties"] == {"text": {"type": "string"}}
        assert ToolDefinition.from_dict(data) == definition

    def test_missing_schema_defaults_to_empty_object(self):
        definition = ToolDefinition.from_dict({"name": "x"})

        assert definition.input_schema == {"type": "object", "properties": {}}
        assert definition.description == ""


@pytest.mark.unit
class TestConnectionModels:
    """Tests for the connection state machine and snapshots."""

    @pytest.mark.parametrize(
        "source,target",
        [
            (ConnectionState.DISCONNECTED, ConnectionState.SPAWNING),
            (ConnectionState.SPAWNING, ConnectionState.INITIALIZING),
            (ConnectionState.SPAWNING, ConnectionState.FAILED),
            (ConnectionState.INITIALIZING, ConnectionState.READY),
            (ConnectionState.INITIALIZING, ConnectionState.FAILED),
            (ConnectionState.READY, ConnectionState.CLOSED),
        ],
    )
    def test_legal_transitions(self, source, target):
        assert source.can_transition_to(target)

    @pytest.mark.parametrize(
        "source,target",
        [
            (ConnectionState.DISCONNECTED, ConnectionState.READY),
            (ConnectionState.READY, ConnectionState.SPAWNING),
            (ConnectionState.FAILED, ConnectionState.SPAWNING),
            (ConnectionState.CLOSED, ConnectionState.READY),
            (ConnectionState.READY, ConnectionState.FAILED),
        ],
    )
    def test_illegal_transitions(self, source, target):
        assert not source.can_transition_to(target)

    def test_terminal_states(self):
        assert ConnectionState.CLOSED.is_terminal
        assert ConnectionState.FAILED.is_terminal
        assert not ConnectionState.READY.is_terminal

    def test_capabilities_keep_only_object_sections(self):
        capabilities = ServerCapabilities.from_dict({"tools": {}, "resources": True, "prompts": None})

        assert capabilities.tools == {}
        assert capabilities.resources is None
        assert capabilities.to_dict() == {"tools": {}}

    def test_server_info_defaults(self):
        assert ServerInfo.from_dict(None) == ServerInfo(name="unknown", version="")

    def test_connection_info_to_dict(self):
        connected_at = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
        info = ConnectionInfo(
            name="editor",
            state=ConnectionState.READY,
            server_info=ServerInfo(name="ed", version="1"),
            tool_count=2,
            connected_at=connected_at,
        )

        data = info.to_dict()

        assert info.is_ready
        assert data["state"] == "ready"
        assert data["server_info"] == {"name": "ed", "version": "1"}
        assert data["connected_at"] == connected_at.isoformat()

    def test_prompt_required_arguments(self):
        prompt = McpPrompt.from_dict(
            {
                "name": "p",
                "arguments": [
                    {"name": "a", "required": True},
                    {"name": "b"},
                ],
            }
        )

        assert prompt.required_arguments == ["a"]
        assert prompt.to_dict()["arguments"][1] == {"name": "b", "required": False}


@pytest.mark.unit
class TestContextModels:
    """Tests for transcription context parsing."""

    def test_file_context_accepts_camel_and_snake_case(self):
        camel = FileContext.from_dict(
            {"path": "/a/b.py", "cursorPosition": {"line": 1, "column": 2}, "selectedText": "x"}
        )
        snake = FileContext.from_dict(
            {"path": "/a/b.py", "cursor_position": {"line": 1, "column": 2}, "selected_text": "x"}
        )

        assert camel == snake
        assert camel.name == "b.py"
        assert camel.to_dict()["cursorPosition"] == {"line": 1, "column": 2}

    def test_file_context_requires_path(self):
        with pytest.raises(ValueError):
            FileContext.from_dict({"name": "x"})

    def test_file_context_rejects_non_string_selected_text(self):
        with pytest.raises(ValueError, match="selectedText"):
            FileContext.from_dict({"path": "/a.py", "selectedText": 42})

        assert FileContext.from_dict({"path": "/a.py", "selectedText": None}).selected_text is None

    def test_project_context_requires_name_and_root(self):
        assert ProjectContext.from_dict({"name": "app", "root_path": "/w"}).root_path == "/w"
        with pytest.raises(ValueError):
            ProjectContext.from_dict({"name": "app"})

    def test_glossary_entry_requires_strings(self):
        with pytest.raises(ValueError):
            GlossaryEntry.from_dict({"term": "API", "replacement": 1})

    def test_empty_context(self):
        context = TranscriptionContext.empty()

        assert context.is_empty
        assert context.to_dict() == {
            "activeApplication": None,
            "activeFile": None,
            "projectContext": None,
            "userGlossary": [],
            "recentInteractions": [],
        }

    def test_context_with_glossary_is_not_empty(self):
        context = TranscriptionContext(user_glossary=[GlossaryEntry("a", "b")])

        assert not context.is_empty


@pytest.mark.unit
class TestMCPEvents:
    def test_event_dict_excludes_type_and_timestamp_from_data(self):
        event = ServerConnectedEvent(server_name="editor", tool_count=3)

        data = event.to_event_dict()

        assert data["type"] == MCPEventType.SERVER_CONNECTED.value
        assert data["data"] == {"server_name": "editor", "tool_count": 3}
        assert isinstance(data["timestamp"], str)
