"""
Transcription Context Domain Models.

Value objects aggregated from context providers and consumed by the host
when it enhances a transcript. Serialized with camelCase keys, the shape
the UI layer expects; parsing accepts camelCase and snake_case.
"""

from dataclasses import dataclass, field
from typing import Any


def _pick(data: dict[str, Any], camel: str, snake: str, default: Any = None) -> Any:
    if camel in data:
        return data[camel]
    return data.get(snake, default)


@dataclass(frozen=True)
class ActiveApplication:
    """Foreground application as reported by the OS layer."""

    name: str
    executable: str
    title: str


@dataclass(frozen=True)
class ActiveAppContext:
    """Active application plus the dictation context it implies."""

    name: str
    executable: str
    window_title: str
    context_type: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "executable": self.executable,
            "windowTitle": self.window_title,
            "contextType": self.context_type,
        }


@dataclass(frozen=True)
class CursorPosition:
    line: int
    column: int

    def to_dict(self) -> dict[str, int]:
        return {"line": self.line, "column": self.column}


@dataclass(frozen=True)
class FileContext:
    """File open in the user's editor."""

    path: str
    name: str
    language: str | None = None
    cursor_position: CursorPosition | None = None
    selected_text: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "language": self.language,
            "cursorPosition": self.cursor_position.to_dict() if self.cursor_position else None,
            "selectedText": self.selected_text,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileContext":
        path = data.get("path")
        if not isinstance(path, str) or not path:
            raise ValueError("File context requires a path")
        cursor = _pick(data, "cursorPosition", "cursor_position")
        cursor_position = None
        if isinstance(cursor, dict) and "line" in cursor and "column" in cursor:
            cursor_position = CursorPosition(line=int(cursor["line"]), column=int(cursor["column"]))
        selected_text = _pick(data, "selectedText", "selected_text")
        if selected_text is not None and not isinstance(selected_text, str):
            raise ValueError("File context selectedText must be a string")
        return cls(
            path=path,
            name=data.get("name") or path.replace("\\", "/").rsplit("/", 1)[-1],
            language=data.get("language"),
            cursor_position=cursor_position,
            selected_text=selected_text,
        )


@dataclass(frozen=True)
class ProjectContext:
    """Project the active file belongs to."""

    name: str
    root_path: str
    language: str | None = None
    framework: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "rootPath": self.root_path,
            "language": self.language,
            "framework": self.framework,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectContext":
        name = data.get("name")
        root_path = _pick(data, "rootPath", "root_path")
        if not name or not root_path:
            raise ValueError("Project context requires name and rootPath")
        return cls(
            name=str(name),
            root_path=str(root_path),
            language=data.get("language"),
            framework=data.get("framework"),
        )


@dataclass(frozen=True)
class GlossaryEntry:
    """A literal term -> replacement substitution applied to transcripts."""

    term: str
    replacement: str
    context: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"term": self.term, "replacement": self.replacement, "context": self.context}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GlossaryEntry":
        term = data.get("term")
        replacement = data.get("replacement")
        if not isinstance(term, str) or not isinstance(replacement, str):
            raise ValueError("Glossary entry requires string term and replacement")
        return cls(term=term, replacement=replacement, context=data.get("context"))


@dataclass
class TranscriptionContext:
    """
    Aggregate context for one transcription.

    Rebuilt on every aggregation call; a field is empty when its source is
    disabled or could not be reached.
    """

    active_application: ActiveAppContext | None = None
    active_file: FileContext | None = None
    project_context: ProjectContext | None = None
    user_glossary: list[GlossaryEntry] = field(default_factory=list)
    recent_interactions: list[str] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "TranscriptionContext":
        return cls()

    @property
    def is_empty(self) -> bool:
        return (
            self.active_application is None
            and self.active_file is None
            and self.project_context is None
            and not self.user_glossary
            and not self.recent_interactions
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "activeApplication": (
                self.active_application.to_dict() if self.active_application else None
            ),
            "activeFile": self.active_file.to_dict() if self.active_file else None,
            "projectContext": self.project_context.to_dict() if self.project_context else None,
            "userGlossary": [entry.to_dict() for entry in self.user_glossary],
            "recentInteractions": list(self.recent_interactions),
        }
