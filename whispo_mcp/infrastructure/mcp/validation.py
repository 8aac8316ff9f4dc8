"""Argument validation for local tools.

A tool's ``inputSchema`` is compiled into a pydantic model once, when the
tool is registered. Calls are checked against that model, which also fills
in schema defaults and drops arguments the schema does not declare.
"""

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, create_model

logger = logging.getLogger(__name__)

_SCALAR_TYPES: dict[str, Any] = {
    "string": str,
    "number": float,
    "integer": int,
    "boolean": bool,
    "object": dict[str, Any],
}

# JSON Schema keyword -> pydantic Field keyword
_CONSTRAINTS = (("minimum", "ge"), ("maximum", "le"), ("minLength", "min_length"))


class MCPValidationError(Exception):
    """A tool call's arguments do not match the tool's schema."""

    def __init__(self, tool_name: str, errors: list[dict[str, Any]]) -> None:
        self.tool_name = tool_name
        self.errors = errors
        super().__init__(f"Invalid arguments for tool '{tool_name}': " + "; ".join(self.messages))

    @property
    def fields(self) -> list[str]:
        """Dotted paths of the offending arguments."""
        return [".".join(str(part) for part in error.get("loc", ())) or "?" for error in self.errors]

    @property
    def messages(self) -> list[str]:
        return [
            f"{path}: {error.get('msg', 'unknown error')}"
            for path, error in zip(self.fields, self.errors)
        ]


def _annotation(prop: dict[str, Any]) -> Any:
    choices = prop.get("enum")
    if isinstance(choices, list) and choices:
        return Literal[tuple(choices)]
    kind = prop.get("type", "string")
    if kind == "array":
        items = prop.get("items")
        return list[_annotation(items)] if isinstance(items, dict) else list
    return _SCALAR_TYPES.get(kind, Any)


def _field(prop: dict[str, Any], required: bool) -> tuple[Any, Any]:
    annotation = _annotation(prop)
    description = prop.get("description", "")
    default = prop.get("default")
    constraints = {
        target: prop[keyword] for keyword, target in _CONSTRAINTS if keyword in prop
    }

    if default is not None:
        return annotation, Field(default=default, description=description, **constraints)
    if required:
        return annotation, Field(description=description, **constraints)
    # An omitted optional argument validates as None, so constraints cannot apply
    return annotation | None, Field(default=None, description=description)


def schema_to_model(tool_name: str, schema: dict[str, Any]) -> type[BaseModel]:
    """Compile a tool's input schema into a pydantic model.

    Supports scalar types, ``enum`` (as ``Literal``), typed ``array``
    items, ``default``, ``minimum``, ``maximum`` and ``minLength``.
    Nested objects are accepted as plain dicts.
    """
    required = set(schema.get("required", []))
    fields = {
        name: _field(prop, name in required)
        for name, prop in schema.get("properties", {}).items()
    }
    model_name = "ToolArgs_" + "".join(c if c.isalnum() else "_" for c in tool_name)
    return create_model(model_name, __config__=ConfigDict(extra="ignore"), **fields)


class MCPValidator:
    """Holds one compiled argument model per registered tool."""

    def __init__(self) -> None:
        self._models: dict[str, type[BaseModel]] = {}

    def register_schema(self, tool_name: str, schema: dict[str, Any]) -> type[BaseModel]:
        model = schema_to_model(tool_name, schema)
        self._models[tool_name] = model
        return model

    def validate(self, tool_name: str, args: dict[str, Any]) -> dict[str, Any]:
        """
        Validate ``args`` for ``tool_name``.

        Returns:
            Coerced arguments with defaults filled in. Arguments for a tool
            without a registered schema are returned unchanged.

        Raises:
            MCPValidationError: With one entry per offending field.
        """
        model = self._models.get(tool_name)
        if model is None:
            logger.warning(f"No argument schema for tool '{tool_name}'; passing arguments through")
            return args
        try:
            return model(**args).model_dump()
        except ValidationError as e:
            raise MCPValidationError(tool_name, e.errors()) from e

    def get_model(self, tool_name: str) -> type[BaseModel] | None:
        return self._models.get(tool_name)

    def has_schema(self, tool_name: str) -> bool:
        return tool_name in self._models
