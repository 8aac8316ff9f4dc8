"""Unit tests for the whispo-mcp command line."""

from pathlib import Path
from unittest.mock import patch

import pytest

from whispo_mcp import __version__
from whispo_mcp.cli.main import build_parser, run


@pytest.mark.unit
class TestParser:
    """Tests for argument parsing."""

    def test_serve(self):
        args = build_parser().parse_args(["serve"])

        assert args.command == "serve"
        assert args.log_level is None

    def test_enhance_takes_config_and_text(self):
        args = build_parser().parse_args(
            ["--log-level", "DEBUG", "enhance", "--config", "mcp.json", "--enable", "hello"]
        )

        assert args.command == "enhance"
        assert args.config == Path("mcp.json")
        assert args.enable is True
        assert args.text == "hello"
        assert args.log_level == "DEBUG"

    def test_context_requires_config(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["context"])

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


@pytest.mark.unit
class TestRun:
    """Tests for run() exit codes and output."""

    def test_missing_config_file_exits_with_2(self, tmp_path, capsys):
        missing = tmp_path / "nope.json"

        with patch("whispo_mcp.cli.main.configure_logging"):
            code = run(["context", "--config", str(missing)])

        assert code == 2
        assert f"Configuration file not found: {missing}" in capsys.readouterr().err

    def test_invalid_config_lists_errors(self, tmp_path, capsys):
        config_path = tmp_path / "mcp.json"
        config_path.write_text(
            '{"enabled": true, "servers": {"a": {"name": "b", "command": "x"}}}',
            encoding="utf-8",
        )

        with patch("whispo_mcp.cli.main.configure_logging"):
            code = run(["enhance", "--config", str(config_path), "text"])

        err = capsys.readouterr().err
        assert code == 2
        assert err.startswith("Error: ")
        assert "  - " in err

    def test_disabled_config_enhance_prints_text_unchanged(self, tmp_path, capsys):
        config_path = tmp_path / "mcp.json"
        config_path.write_text('{"enabled": false, "servers": {}}', encoding="utf-8")

        with patch("whispo_mcp.cli.main.configure_logging"):
            code = run(["enhance", "--config", str(config_path), "Call the API"])

        assert code == 0
        assert capsys.readouterr().out == "Call the API\n"
