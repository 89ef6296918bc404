"""CLI entry point for the Nostr MCP server.

Loads configuration (YAML file, environment, ``.env``, CLI flags), sets
up structured logging on stderr, and serves the MCP tool catalog over
stdio (default) or SSE.

Examples:
    ```bash
    nostr-mcp
    nostr-mcp --mode sse --port 3000
    python -m nostr_mcp --config config/nostr-mcp.yaml --log-level DEBUG
    ```
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from nostr_mcp import __version__
from nostr_mcp.core.exceptions import ConfigurationError, NostrError
from nostr_mcp.core.logger import Logger, StructuredFormatter
from nostr_mcp.models.constants import ServerMode
from nostr_mcp.services.configs import load_config
from nostr_mcp.services.server import NostrMcpServer


ENV_LOG_LEVEL = "LOG_LEVEL"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

logger = Logger("cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the server."""
    parser = argparse.ArgumentParser(
        prog="nostr-mcp",
        description="Nostr MCP server: publish and query Nostr from AI model hosts",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="YAML config path (values are overridden by environment and flags)",
    )

    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in ServerMode],
        help="MCP transport (default: stdio, or $MODE)",
    )

    parser.add_argument("--host", help="SSE bind address (default: 127.0.0.1)")

    parser.add_argument("--port", type=int, help="SSE port (default: 3000, or $PORT)")

    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help=f"Log level (default: ${ENV_LOG_LEVEL} or INFO)",
    )

    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit one JSON object per log line",
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser.parse_args(argv)


def setup_logging(level: str, *, json_output: bool = False) -> None:
    """Configure the root logger with structured formatting on stderr.

    stdout is reserved for the stdio transport, so every handler writes to
    stderr.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter(json_output=json_output))
    logging.root.handlers.clear()
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def _resolve_log_level(cli_level: str | None) -> str:
    if cli_level:
        return cli_level
    env_level = os.getenv(ENV_LOG_LEVEL, "").strip().upper()
    return env_level if env_level in LOG_LEVELS else "INFO"


async def main(argv: list[str] | None = None) -> int:
    """Main entry point: parse args, load config, and run the server until shutdown."""
    args = parse_args(argv)
    load_dotenv()
    setup_logging(_resolve_log_level(args.log_level), json_output=args.log_json)

    try:
        config = load_config(
            str(args.config) if args.config is not None else None,
            overrides={"mode": args.mode, "host": args.host, "port": args.port},
        )
    except ConfigurationError as e:
        logger.error("config_invalid", error=str(e))
        return EXIT_FAILURE

    server = NostrMcpServer(config, version=__version__)
    logger.info(
        "server_starting",
        version=__version__,
        mode=config.mode,
        relays=len(config.relays),
        pubkey=config.pubkey,
    )

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        server.request_shutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        code = await server.serve()
    except NostrError as e:
        logger.error("server_failed", code=e.code, error=str(e))
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.info("interrupted")
        return EXIT_INTERRUPTED
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)

    logger.info("server_stopped", code=code)
    return code


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    cli()
