"""In-memory HostStatePort adapter.

Used when the host wires no state of its own (the ``serve`` CLI command)
and in tests.
"""

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

from whispo_mcp.domain.model.mcp.context import GlossaryEntry

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: dict[str, Any] = {
    "provider": "openai",
    "model": "whisper-1",
    "enabled": True,
}

DEFAULT_PROFILES: dict[str, dict[str, Any]] = {
    "default": {"id": "default", "name": "Default Profile"},
}


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class InMemoryHostState:
    """Dictation settings, history, glossary and profiles held in memory."""

    def __init__(
        self,
        settings: dict[str, Any] | None = None,
        glossary: list[GlossaryEntry] | None = None,
        profiles: dict[str, dict[str, Any]] | None = None,
        active_profile_id: str = "default",
    ) -> None:
        self._settings = dict(settings if settings is not None else DEFAULT_SETTINGS)
        self._history: list[dict[str, Any]] = []
        self._glossary: dict[str, GlossaryEntry] = {}
        self._profiles = {
            key: dict(value) for key, value in (profiles or DEFAULT_PROFILES).items()
        }
        if active_profile_id not in self._profiles:
            raise ValueError(f"Unknown active profile: {active_profile_id}")
        self._active_profile_id = active_profile_id
        self.update_glossary(glossary or [])

    def record_transcript(self, text: str, created_at: datetime | None = None) -> dict[str, Any]:
        """Append a transcription to the history."""
        item = {
            "id": uuid.uuid4().hex,
            "text": text,
            "createdAt": _as_utc(created_at or datetime.now(UTC)),
        }
        self._history.append(item)
        return self._serialize_item(item)

    @staticmethod
    def _serialize_item(item: dict[str, Any]) -> dict[str, Any]:
        return {**item, "createdAt": item["createdAt"].isoformat()}

    def settings_snapshot(self) -> dict[str, Any]:
        return dict(self._settings)

    def history(self, limit: int = 10, since: datetime | None = None) -> list[dict[str, Any]]:
        items = sorted(self._history, key=lambda item: item["createdAt"], reverse=True)
        if since is not None:
            since = _as_utc(since)
            items = [item for item in items if item["createdAt"] > since]
        return [self._serialize_item(item) for item in items[: max(limit, 0)]]

    def glossary(self) -> list[GlossaryEntry]:
        return list(self._glossary.values())

    def update_glossary(self, entries: list[GlossaryEntry]) -> None:
        for entry in entries:
            self._glossary[entry.term] = entry
        if entries:
            logger.info(f"Glossary updated: {len(entries)} entries, {len(self._glossary)} total")

    def active_profile(self) -> dict[str, Any]:
        return {**self._profiles[self._active_profile_id], "active": True}

    def switch_profile(self, profile_id: str) -> dict[str, Any] | None:
        if profile_id not in self._profiles:
            return None
        self._active_profile_id = profile_id
        logger.info(f"Switched active profile to {profile_id}")
        return self.active_profile()
