"""Unit tests for MCPValidator: JSON Schema to Pydantic model validation."""

import pytest

from whispo_mcp.infrastructure.mcp.validation import MCPValidationError, MCPValidator


@pytest.fixture
def validator() -> MCPValidator:
    """Create a fresh validator."""
    return MCPValidator()


@pytest.mark.unit
class TestMCPValidator:
    """Tests for schema registration and argument validation."""

    def test_required_field_missing(self, validator):
        validator.register_schema(
            "switch_profile",
            {
                "type": "object",
                "properties": {"profile_id": {"type": "string"}},
                "required": ["profile_id"],
            },
        )

        with pytest.raises(MCPValidationError) as exc_info:
            validator.validate("switch_profile", {})

        assert exc_info.value.tool_name == "switch_profile"
        assert exc_info.value.fields == ["profile_id"]
        assert "profile_id" in str(exc_info.value)

    def test_defaults_are_filled_in(self, validator):
        validator.register_schema(
            "history",
            {
                "type": "object",
                "properties": {
                    "limit": {"type": "integer", "default": 10, "minimum": 1},
                    "since": {"type": "string"},
                },
            },
        )

        assert validator.validate("history", {}) == {"limit": 10, "since": None}

    def test_minimum_applies_to_defaulted_field(self, validator):
        validator.register_schema(
            "history",
            {
                "type": "object",
                "properties": {"limit": {"type": "integer", "default": 10, "minimum": 1}},
            },
        )

        with pytest.raises(MCPValidationError) as exc_info:
            validator.validate("history", {"limit": 0})

        assert exc_info.value.fields == ["limit"]

    def test_wrong_type_is_rejected(self, validator):
        validator.register_schema(
            "history",
            {"type": "object", "properties": {"limit": {"type": "integer", "default": 10}}},
        )

        with pytest.raises(MCPValidationError):
            validator.validate("history", {"limit": "many"})

    def test_enum_becomes_literal(self, validator):
        validator.register_schema(
            "transcribe",
            {
                "type": "object",
                "properties": {"provider": {"type": "string", "enum": ["openai", "groq"]}},
            },
        )

        assert validator.validate("transcribe", {"provider": "groq"}) == {"provider": "groq"}
        with pytest.raises(MCPValidationError):
            validator.validate("transcribe", {"provider": "whisper.cpp"})

    def test_array_items_are_typed(self, validator):
        validator.register_schema(
            "tags",
            {
                "type": "object",
                "properties": {"tags": {"type": "array", "items": {"type": "string"}}},
                "required": ["tags"],
            },
        )

        assert validator.validate("tags", {"tags": ["a", "b"]}) == {"tags": ["a", "b"]}
        with pytest.raises(MCPValidationError) as exc_info:
            validator.validate("tags", {"tags": ["a", {"x": 1}]})

        assert exc_info.value.fields == ["tags.1"]

    def test_array_of_objects(self, validator):
        validator.register_schema(
            "glossary",
            {
                "type": "object",
                "properties": {
                    "entries": {
                        "type": "array",
                        "items": {"type": "object", "properties": {"term": {"type": "string"}}},
                    }
                },
                "required": ["entries"],
            },
        )

        entries = [{"term": "API", "replacement": "A P I"}]

        assert validator.validate("glossary", {"entries": entries}) == {"entries": entries}

    def test_extra_arguments_are_dropped(self, validator):
        validator.register_schema(
            "echo",
            {"type": "object", "properties": {"text": {"type": "string"}}},
        )

        assert validator.validate("echo", {"text": "hi", "other": 1}) == {"text": "hi"}

    def test_unregistered_tool_passes_arguments_through(self, validator):
        assert validator.validate("unknown", {"a": 1}) == {"a": 1}

    def test_model_lookup(self, validator):
        model = validator.register_schema("get-active", {"type": "object", "properties": {}})

        assert validator.has_schema("get-active")
        assert validator.get_model("get-active") is model
        assert model.__name__ == "ToolArgs_get_active"
        assert not validator.has_schema("other")

    def test_messages_include_field_paths(self, validator):
        validator.register_schema(
            "switch_profile",
            {
                "type": "object",
                "properties": {"profile_id": {"type": "string", "minLength": 1}},
                "required": ["profile_id"],
            },
        )

        with pytest.raises(MCPValidationError) as exc_info:
            validator.validate("switch_profile", {"profile_id": ""})

        assert exc_info.value.messages[0].startswith("profile_id: ")
