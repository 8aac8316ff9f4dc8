"""ConfigurationStorePort adapter backed by a JSON file."""

import logging
import os
import tempfile
from pathlib import Path

from whispo_mcp.domain.model.mcp.config import McpConfiguration, load_configuration

logger = logging.getLogger(__name__)


class JsonFileConfigurationStore:
    """Stores the MCP configuration as camelCase JSON at ``path``."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> McpConfiguration:
        return load_configuration(self.path)

    def save(self, config: McpConfiguration) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a sibling temp file and rename so readers never see half a file
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(config.to_json())
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
        logger.debug(f"Saved MCP configuration to {self.path}")
