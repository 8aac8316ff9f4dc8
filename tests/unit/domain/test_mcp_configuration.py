"""Unit tests for the typed MCP configuration."""

import json

import pytest

from whispo_mcp.domain.exceptions.mcp import MCPConfigurationError
from whispo_mcp.domain.model.mcp.config import (
    ContextAwarenessConfig,
    McpConfiguration,
    ServerConfig,
    load_configuration,
)


@pytest.mark.unit
class TestMcpConfigurationParsing:
    """Tests for reading the camelCase JSON the host stores."""

    def test_defaults_are_disabled_with_all_sources_on(self):
        config = McpConfiguration()

        assert config.enabled is False
        assert config.servers == {}
        awareness = config.context_awareness
        assert awareness.use_file_context
        assert awareness.use_project_context
        assert awareness.use_glossary
        assert awareness.use_recent_interactions
        assert awareness.max_context_length == 4096

    def test_from_json_reads_camel_case_keys(self):
        raw = json.dumps(
            {
                "enabled": True,
                "servers": {
                    "editor": {
                        "name": "editor",
                        "command": "npx",
                        "args": ["-y", "@acme/editor-mcp"],
                        "env": {"DEBUG": "1"},
                    }
                },
                "contextAwareness": {"useGlossary": False, "maxContextLength": 100},
            }
        )

        config = McpConfiguration.from_json(raw)

        assert config.enabled is True
        editor = config.servers["editor"]
        assert editor.command_line == ["npx", "-y", "@acme/editor-mcp"]
        assert editor.env == {"DEBUG": "1"}
        assert editor.enabled is True
        assert config.context_awareness.use_glossary is False
        assert config.context_awareness.max_context_length == 100

    def test_to_json_round_trips_with_aliases(self):
        config = McpConfiguration(
            enabled=True,
            servers={"a": ServerConfig(name="a", command="run-a")},
        )

        data = json.loads(config.to_json())

        assert "contextAwareness" in data
        assert data["contextAwareness"]["maxContextLength"] == 4096
        assert McpConfiguration.from_json(config.to_json()) == config

    def test_unknown_keys_are_ignored(self):
        config = McpConfiguration.from_json('{"enabled": true, "theme": "dark"}')

        assert config.enabled is True

    def test_invalid_json_shape_raises_configuration_error(self):
        with pytest.raises(MCPConfigurationError) as exc_info:
            McpConfiguration.from_json('{"servers": {"a": {"name": "a"}}}')

        assert any("command" in error for error in exc_info.value.errors)

    def test_negative_max_context_length_is_rejected(self):
        with pytest.raises(MCPConfigurationError):
            McpConfiguration.from_json('{"contextAwareness": {"maxContextLength": -1}}')

    def test_load_configuration_missing_file_is_default(self, tmp_path):
        assert load_configuration(tmp_path / "missing.json") == McpConfiguration()


@pytest.mark.unit
class TestMcpConfigurationValidation:
    """Tests for structural validation before spawning servers."""

    def test_valid_configuration_has_no_errors(self):
        config = McpConfiguration(servers={"a": ServerConfig(name="a", command="run")})

        assert config.validation_errors() == []
        config.validate_servers()

    def test_name_must_match_key(self):
        config = McpConfiguration(servers={"a": ServerConfig(name="b", command="run")})

        with pytest.raises(MCPConfigurationError) as exc_info:
            config.validate_servers()

        assert exc_info.value.errors == ["Server 'a' has mismatched name 'b'"]

    def test_empty_command_is_reported(self):
        config = McpConfiguration(servers={"a": ServerConfig(name="a", command="  ")})

        assert config.validation_errors() == ["Server 'a' has an empty command"]

    def test_all_problems_are_reported_together(self):
        config = McpConfiguration(
            servers={
                "a": ServerConfig(name="x", command=""),
                "b": ServerConfig(name="b", command=""),
            }
        )

        assert len(config.validation_errors()) == 3


@pytest.mark.unit
class TestMcpConfigurationUpdates:
    """Tests for the explicit, immutable update operations."""

    def test_configuration_is_frozen(self):
        config = McpConfiguration()

        with pytest.raises(Exception):
            config.enabled = True

    def test_with_enabled_returns_new_instance(self):
        config = McpConfiguration()

        updated = config.with_enabled(True)

        assert updated.enabled is True
        assert config.enabled is False

    def test_with_server_adds_and_replaces(self):
        config = McpConfiguration().with_server(ServerConfig(name="a", command="one"))

        replaced = config.with_server(ServerConfig(name="a", command="two"))

        assert list(replaced.servers) == ["a"]
        assert replaced.servers["a"].command == "two"
        assert config.servers["a"].command == "one"

    def test_without_server_removes_entry(self):
        config = McpConfiguration(
            servers={
                "a": ServerConfig(name="a", command="one"),
                "b": ServerConfig(name="b", command="two"),
            }
        )

        assert list(config.without_server("a").servers) == ["b"]

    def test_enabled_servers_filters_disabled_entries(self):
        config = McpConfiguration(
            servers={
                "a": ServerConfig(name="a", command="one"),
                "b": ServerConfig(name="b", command="two", enabled=False),
            }
        )

        assert list(config.enabled_servers) == ["a"]

    def test_with_context_awareness(self):
        awareness = ContextAwarenessConfig(use_file_context=False, max_context_length=10)

        config = McpConfiguration().with_context_awareness(awareness)

        assert config.context_awareness == awareness

    def test_server_configs_compare_by_value(self):
        first = ServerConfig(name="a", command="run", args=("x",), env={"K": "V"})
        second = ServerConfig(name="a", command="run", args=["x"], env={"K": "V"})

        assert first == second
        assert first != second.model_copy(update={"args": ("y",)})
