"""
whispo-mcp command line.

Usage:
    whispo-mcp serve
    whispo-mcp context --config ~/.config/whispo/mcp.json
    whispo-mcp enhance --config ~/.config/whispo/mcp.json "Call the API now"

``serve`` runs the server role over stdin/stdout. ``context`` and
``enhance`` run the client role: they connect the configured servers,
print the result to stdout and shut the servers down again.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from whispo_mcp import __version__
from whispo_mcp.configuration.config import Settings, get_settings
from whispo_mcp.configuration.container import MCPContainer
from whispo_mcp.configuration.logging_config import configure_logging
from whispo_mcp.domain.exceptions.mcp import MCPConfigurationError
from whispo_mcp.domain.model.mcp.config import McpConfiguration
from whispo_mcp.infrastructure.adapters.secondary.config_store import JsonFileConfigurationStore
from whispo_mcp.infrastructure.mcp.stdio_server import serve_stdio
from whispo_mcp.infrastructure.telemetry import shutdown_telemetry


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="whispo-mcp",
        description="Whispo Model Context Protocol client and server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve
  %(prog)s context --config mcp.json
  %(prog)s enhance --config mcp.json "Call the API now"
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override WHISPO_MCP_LOG_LEVEL",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("serve", help="Serve Whispo's tools, resources and prompts over stdio")

    for name, help_text in (
        ("context", "Print the aggregated transcription context as JSON"),
        ("enhance", "Print a transcript with context enhancements applied"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "--config",
            type=Path,
            required=True,
            help="Path to the MCP configuration JSON",
        )
        sub.add_argument(
            "--enable",
            action="store_true",
            help="Treat the configuration as enabled even if it says otherwise",
        )
        if name == "enhance":
            sub.add_argument("text", help="Transcript to enhance")

    return parser


def _load_config(path: Path, force_enable: bool) -> McpConfiguration:
    if not path.exists():
        raise MCPConfigurationError(f"Configuration file not found: {path}")
    config = JsonFileConfigurationStore(path).load()
    return config.with_enabled(True) if force_enable else config


async def _run_serve(settings: Settings) -> None:
    container = MCPContainer(settings=settings)
    await serve_stdio(container.request_dispatcher())


async def _run_client(settings: Settings, args: argparse.Namespace) -> str:
    config = _load_config(args.config, args.enable)
    container = MCPContainer(settings=settings, config=config)
    async with container.mcp_service() as service:
        await service.initialize()
        if args.command == "context":
            context = await service.get_transcription_context()
            return json.dumps(context.to_dict(), indent=2, ensure_ascii=False)
        return await service.enhance_transcript(args.text)


def run(argv: list[str] | None = None) -> int:
    """Parse arguments and run a command; returns the exit code."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)

    try:
        if args.command == "serve":
            asyncio.run(_run_serve(settings))
            return 0
        output = asyncio.run(_run_client(settings, args))
    except MCPConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        for error in e.errors:
            print(f"  - {error}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 130
    finally:
        shutdown_telemetry()

    print(output)
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
