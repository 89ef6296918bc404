"""
Unit tests for the nostr_mcp.__main__ CLI module.

Tests:
- parse_args argument parsing
- setup_logging configuration
- Log level resolution from flags and environment
- main() exit codes (config errors, server failures, clean runs)
- cli() synchronous wrapper
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from nostr_mcp.__main__ import (
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_OK,
    _resolve_log_level,
    cli,
    main,
    parse_args,
    setup_logging,
)
from nostr_mcp.core.exceptions import ConfigurationError, RelayConnectionError
from nostr_mcp.core.logger import StructuredFormatter
from nostr_mcp.models.constants import ServerMode


# ============================================================================
# Fixtures
# ============================================================================


@contextmanager
def _isolated_root_logger() -> Iterator[None]:
    """Undo setup_logging() changes to the root logger."""
    handlers = list(logging.root.handlers)
    level = logging.root.level
    try:
        yield
    finally:
        logging.root.handlers[:] = handlers
        logging.root.setLevel(level)


@pytest.fixture
def mock_server() -> MagicMock:
    server = MagicMock()
    server.serve = AsyncMock(return_value=EXIT_OK)
    return server


@pytest.fixture(autouse=True)
def _no_dotenv() -> Iterator[None]:
    with patch("nostr_mcp.__main__.load_dotenv"):
        yield


@pytest.fixture
def _quiet_logging() -> Iterator[None]:
    """Keep main() from replacing the root handlers."""
    with patch("nostr_mcp.__main__.setup_logging"):
        yield


# ============================================================================
# parse_args Tests
# ============================================================================


class TestParseArgs:
    """Tests for parse_args()."""

    def test_defaults(self) -> None:
        args = parse_args([])
        assert args.config is None
        assert args.mode is None
        assert args.host is None
        assert args.port is None
        assert args.log_level is None
        assert args.log_json is False

    def test_all_flags(self) -> None:
        args = parse_args(
            [
                "--config",
                "config/nostr-mcp.yaml",
                "--mode",
                "sse",
                "--host",
                "0.0.0.0",
                "--port",
                "3100",
                "--log-level",
                "debug",
                "--log-json",
            ]
        )
        assert args.config == Path("config/nostr-mcp.yaml")
        assert args.mode == "sse"
        assert args.host == "0.0.0.0"
        assert args.port == 3100
        assert args.log_level == "DEBUG"
        assert args.log_json is True

    def test_invalid_mode(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["--mode", "websocket"])

    def test_invalid_port(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["--port", "abc"])

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--version"])
        assert exc_info.value.code == 0
        assert capsys.readouterr().out.startswith("nostr-mcp ")


# ============================================================================
# Logging Tests
# ============================================================================


class TestLogging:
    """Tests for setup_logging() and _resolve_log_level()."""

    def test_setup_logging(self) -> None:
        with _isolated_root_logger():
            setup_logging("WARNING")

            assert logging.root.level == logging.WARNING
            assert len(logging.root.handlers) == 1
            handler = logging.root.handlers[0]
            assert isinstance(handler.formatter, StructuredFormatter)

    def test_setup_logging_writes_to_stderr(self) -> None:
        with _isolated_root_logger():
            setup_logging("INFO", json_output=True)
            handler = logging.root.handlers[0]

        assert handler.stream is sys.stderr
        assert handler.formatter._json_output is True

    def test_flag_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        assert _resolve_log_level("DEBUG") == "DEBUG"

    def test_env_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "warning")
        assert _resolve_log_level(None) == "WARNING"

    def test_unknown_env_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        assert _resolve_log_level(None) == "INFO"

    def test_default_level(self) -> None:
        assert _resolve_log_level(None) == "INFO"


# ============================================================================
# main Tests
# ============================================================================


@pytest.mark.usefixtures("_quiet_logging")
class TestMain:
    """Tests for main()."""

    async def test_config_error(self) -> None:
        with patch(
            "nostr_mcp.__main__.load_config",
            side_effect=ConfigurationError("No relays configured"),
        ):
            assert await main([]) == EXIT_FAILURE

    async def test_clean_run(
        self, monkeypatch: pytest.MonkeyPatch, mock_server: MagicMock
    ) -> None:
        monkeypatch.setenv("NOSTR_RELAYS", "wss://relay.example.com")

        with patch("nostr_mcp.__main__.NostrMcpServer", return_value=mock_server) as server_cls:
            code = await main(["--mode", "sse", "--port", "3100"])

        assert code == EXIT_OK
        config = server_cls.call_args.args[0]
        assert config.mode is ServerMode.SSE
        assert config.port == 3100
        mock_server.serve.assert_awaited_once()

    async def test_serve_exit_code_forwarded(
        self, monkeypatch: pytest.MonkeyPatch, mock_server: MagicMock
    ) -> None:
        monkeypatch.setenv("NOSTR_RELAYS", "wss://relay.example.com")
        mock_server.serve.return_value = EXIT_FAILURE

        with patch("nostr_mcp.__main__.NostrMcpServer", return_value=mock_server):
            assert await main([]) == EXIT_FAILURE

    async def test_relay_failure(
        self, monkeypatch: pytest.MonkeyPatch, mock_server: MagicMock
    ) -> None:
        monkeypatch.setenv("NOSTR_RELAYS", "wss://relay.example.com")
        mock_server.serve.side_effect = RelayConnectionError("Failed to connect")

        with patch("nostr_mcp.__main__.NostrMcpServer", return_value=mock_server):
            assert await main([]) == EXIT_FAILURE

    async def test_keyboard_interrupt(
        self, monkeypatch: pytest.MonkeyPatch, mock_server: MagicMock
    ) -> None:
        monkeypatch.setenv("NOSTR_RELAYS", "wss://relay.example.com")
        mock_server.serve.side_effect = KeyboardInterrupt

        with patch("nostr_mcp.__main__.NostrMcpServer", return_value=mock_server):
            assert await main([]) == EXIT_INTERRUPTED


# ============================================================================
# cli Tests
# ============================================================================


class TestCli:
    """Tests for cli()."""

    def test_exit_code(self) -> None:
        with (
            patch("nostr_mcp.__main__.main", new=MagicMock()),
            patch("nostr_mcp.__main__.asyncio.run", return_value=EXIT_FAILURE),
            pytest.raises(SystemExit) as exc_info,
        ):
            cli()
        assert exc_info.value.code == EXIT_FAILURE

    def test_keyboard_interrupt(self) -> None:
        with (
            patch("nostr_mcp.__main__.main", new=MagicMock()),
            patch("nostr_mcp.__main__.asyncio.run", side_effect=KeyboardInterrupt),
            pytest.raises(SystemExit) as exc_info,
        ):
            cli()
        assert exc_info.value.code == EXIT_INTERRUPTED
