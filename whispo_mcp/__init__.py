"""whispo-mcp: Model Context Protocol subsystem for the Whispo dictation host."""

__version__ = "0.3.0"
