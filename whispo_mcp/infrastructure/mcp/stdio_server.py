"""Whispo MCP stdio server.

Serves the request dispatcher over stdin/stdout, one JSON-RPC message per
line. stdout carries protocol frames only; logs go to stderr.
"""

import asyncio
import json
import logging
import sys
from typing import Any, TextIO

from whispo_mcp.domain.model.mcp.protocol import PARSE_ERROR, JsonRpcResponse
from whispo_mcp.infrastructure.mcp.server import MCPRequestDispatcher

logger = logging.getLogger(__name__)


def _encode(response: dict[str, Any]) -> str:
    return json.dumps(response, separators=(",", ":"), ensure_ascii=False)


async def handle_line(dispatcher: MCPRequestDispatcher, line: str) -> str | None:
    """
    Answer one input line.

    Returns:
        The encoded response line (without newline), or None when the line
        is blank or carried a notification.
    """
    line = line.strip()
    if not line:
        return None

    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        logger.warning(f"[MCP] Parse error: {exc}")
        return _encode(JsonRpcResponse.failure(None, PARSE_ERROR, f"Parse error: {exc}").to_dict())

    response = await dispatcher.handle_message(data)
    if response is None:
        return None
    return _encode(response)


async def serve_stdio(
    dispatcher: MCPRequestDispatcher,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> None:
    """Read requests until EOF, writing each response as one line."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    logger.info("Whispo MCP server listening on stdio")

    while True:
        line = await asyncio.to_thread(stdin.readline)
        if not line:
            break

        response = await handle_line(dispatcher, line)
        if response is not None:
            stdout.write(response + "\n")
            stdout.flush()

    logger.info("Whispo MCP server: stdin closed, exiting")
