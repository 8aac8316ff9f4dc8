"""Logging setup.

stdout carries MCP frames in the server role, so every handler writes to
stderr.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a stderr handler on the root logger (idempotent)."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    # asyncio's subprocess debug output is noise at INFO
    logging.getLogger("asyncio").setLevel(logging.WARNING)
