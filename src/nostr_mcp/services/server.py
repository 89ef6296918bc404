"""MCP server exposing the Nostr tool catalog over stdio or SSE.

[NostrMcpServer][nostr_mcp.services.server.NostrMcpServer] wires a
low-level ``mcp.server.Server`` to the
[ToolDispatcher][nostr_mcp.services.dispatch.ToolDispatcher]:

- ``tools/list`` returns the catalog with each tool's JSON schema.
- ``tools/call`` runs the dispatcher. Domain errors come back as a normal
  ``CallToolResult`` with ``isError`` set; protocol faults are raised as
  ``McpError`` so the host receives a JSON-RPC error:

  | Exception                | JSON-RPC code      |
  |--------------------------|--------------------|
  | ``ToolNotFoundError``    | ``METHOD_NOT_FOUND`` |
  | ``InvalidInputError``    | ``INVALID_PARAMS`` |
  | anything else            | ``INTERNAL_ERROR`` |

Lifecycle:
    1. ``serve()`` connects the Nostr client, optionally starts the
       metrics endpoint, and runs the transport.
    2. It returns when the transport exits (stdin closed, HTTP server
       stopped) or ``request_shutdown()`` is called (signal handler, loop
       exception handler).
    3. Shutdown cancels the transport, disconnects relays and stops the
       metrics server, all within ``shutdown_timeout``. In-flight tool
       calls are abandoned.

See Also:
    [main()][nostr_mcp.__main__.main]: Installs signal handlers and maps
        the returned exit code.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Any

import uvicorn
from fastapi import FastAPI, Request, Response
from mcp import types
from mcp.server import Server
from mcp.server.sse import SseServerTransport
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError

from nostr_mcp.core.exceptions import DisconnectError, InvalidInputError, ToolNotFoundError
from nostr_mcp.core.logger import Logger
from nostr_mcp.core.metrics import start_metrics_server
from nostr_mcp.models.constants import ServerMode

from .client import NostrClient
from .dispatch import ToolDispatcher


if TYPE_CHECKING:
    from collections.abc import Mapping

    from nostr_mcp.core.metrics import MetricsServer
    from nostr_mcp.services.configs import ServerConfig


SERVER_NAME = "nostr-mcp"
SSE_PATH = "/sse"
MESSAGES_PATH = "/messages/"


class NostrMcpServer:
    """MCP server bound to one [NostrClient][nostr_mcp.services.client.NostrClient].

    Args:
        config: Server configuration.
        client: Pre-built client (tests inject one with a mocked SDK client).
        version: Version string reported during MCP initialization.
    """

    def __init__(
        self,
        config: ServerConfig,
        client: NostrClient | None = None,
        *,
        version: str | None = None,
    ) -> None:
        self._config = config
        self._client = client if client is not None else NostrClient(config)
        self._dispatcher = ToolDispatcher(self._client)
        self._server: Server = Server(SERVER_NAME, version=version)
        self._shutdown_event = asyncio.Event()
        self._exit_code = 0
        self._metrics_server: MetricsServer | None = None
        self._logger = Logger("nostr_mcp.server")
        self._register_handlers()

    @property
    def client(self) -> NostrClient:
        return self._client

    @property
    def mcp_server(self) -> Server:
        return self._server

    # -------------------------------------------------------------------------
    # MCP handlers
    # -------------------------------------------------------------------------

    def _register_handlers(self) -> None:
        @self._server.list_tools()
        async def _list_tools() -> list[types.Tool]:
            return self.list_tools()

        # Raw handler: McpError raised by call_tool must reach the host as a
        # JSON-RPC error, not as an isError result.
        self._server.request_handlers[types.CallToolRequest] = self._handle_call_tool

    def list_tools(self) -> list[types.Tool]:
        """Return the tool catalog as MCP ``Tool`` definitions."""
        return [
            types.Tool(
                name=tool.name,
                description=tool.description,
                inputSchema=tool.input_schema(),
            )
            for tool in self._dispatcher.list_tools()
        ]

    async def _handle_call_tool(self, request: types.CallToolRequest) -> types.ServerResult:
        result = await self.call_tool(request.params.name, request.params.arguments)
        return types.ServerResult(result)

    async def call_tool(
        self,
        name: str,
        arguments: Mapping[str, Any] | None,
    ) -> types.CallToolResult:
        """Dispatch one tool call and translate the outcome for MCP.

        Raises:
            McpError: For unknown tools, invalid arguments, and unclassified
                failures.
        """
        try:
            result = await self._dispatcher.call(name, arguments)
        except ToolNotFoundError as e:
            raise McpError(types.ErrorData(code=types.METHOD_NOT_FOUND, message=str(e))) from e
        except InvalidInputError as e:
            raise McpError(
                types.ErrorData(
                    code=types.INVALID_PARAMS,
                    message=str(e),
                    data={"fields": list(e.fields)},
                )
            ) from e
        except McpError:
            raise
        except Exception as e:
            raise McpError(
                types.ErrorData(code=types.INTERNAL_ERROR, message="An unexpected error occurred")
            ) from e

        return types.CallToolResult(
            content=[types.TextContent(type="text", text=result.text)],
            isError=result.is_error,
        )

    # -------------------------------------------------------------------------
    # Transports
    # -------------------------------------------------------------------------

    async def _run_mcp(self, read_stream: Any, write_stream: Any) -> None:
        await self._server.run(
            read_stream,
            write_stream,
            self._server.create_initialization_options(),
        )

    async def _run_stdio(self) -> None:
        self._logger.info("transport_started", mode=ServerMode.STDIO)
        async with stdio_server() as (read_stream, write_stream):
            await self._run_mcp(read_stream, write_stream)
        self._logger.info("transport_closed", mode=ServerMode.STDIO)

    def build_sse_app(self) -> FastAPI:
        """Build the FastAPI app serving the SSE transport.

        Routes:
            ``GET /sse``: opens an MCP session as a server-sent event stream.
            ``POST /messages/?session_id=...``: client-to-server messages.
            ``GET /health``: liveness and relay connection status.
        """
        sse = SseServerTransport(MESSAGES_PATH)
        app = FastAPI(title=SERVER_NAME, docs_url=None, redoc_url=None, openapi_url=None)

        @app.get(SSE_PATH)
        async def _handle_sse(request: Request) -> Response:
            async with sse.connect_sse(
                request.scope,
                request.receive,
                request._send,  # noqa: SLF001
            ) as (read_stream, write_stream):
                self._logger.info("sse_session_opened", client=str(request.client))
                await self._run_mcp(read_stream, write_stream)
            self._logger.info("sse_session_closed", client=str(request.client))
            return Response()

        @app.get("/health")
        async def _health() -> dict[str, Any]:
            return {"status": "ok", "connected": self._client.connected}

        app.mount(MESSAGES_PATH, app=sse.handle_post_message)
        return app

    async def _run_sse(self) -> None:
        app = self.build_sse_app()
        config = uvicorn.Config(
            app,
            host=self._config.host,
            port=self._config.port,
            log_level="warning",
            access_log=False,
        )
        server = uvicorn.Server(config)
        self._logger.info(
            "transport_started",
            mode=ServerMode.SSE,
            host=self._config.host,
            port=self._config.port,
        )
        await server.serve()
        self._logger.info("transport_closed", mode=ServerMode.SSE)

    async def _run_transport(self) -> None:
        if self._config.mode == ServerMode.SSE:
            await self._run_sse()
        else:
            await self._run_stdio()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def request_shutdown(self, code: int = 0) -> None:
        """Ask ``serve()`` to stop. Safe to call from signal handlers.

        A non-zero *code* is sticky: later clean requests do not reset it.
        """
        if code and not self._exit_code:
            self._exit_code = code
        self._shutdown_event.set()

    def _handle_loop_exception(
        self,
        loop: asyncio.AbstractEventLoop,
        context: dict[str, Any],
    ) -> None:
        exc = context.get("exception")
        self._logger.error(
            "uncaught_exception",
            message=context.get("message", ""),
            error=repr(exc) if exc is not None else "",
        )
        self.request_shutdown(1)

    async def serve(self) -> int:
        """Run until the transport exits or a shutdown is requested.

        Returns:
            Process exit code: 0 on clean shutdown, 1 if the transport
            failed, a fault triggered the shutdown, or shutdown itself
            failed or timed out.

        Raises:
            RelayConnectionError: If no relay could be reached at startup.
        """
        await self._client.connect()
        if self._config.metrics.enabled:
            self._metrics_server = await start_metrics_server(self._config.metrics)

        asyncio.get_running_loop().set_exception_handler(self._handle_loop_exception)
        transport = asyncio.create_task(self._run_transport(), name="mcp-transport")
        stop = asyncio.create_task(self._shutdown_event.wait(), name="mcp-shutdown")
        try:
            await asyncio.wait({transport, stop}, return_when=asyncio.FIRST_COMPLETED)
            if transport.done() and not transport.cancelled():
                exc = transport.exception()
                if exc is not None:
                    self._logger.error("transport_failed", error=repr(exc))
                    self._exit_code = 1
        finally:
            stop.cancel()
            clean = await self._shutdown(transport)

        return self._exit_code if clean else 1

    async def _shutdown(self, transport: asyncio.Task[None]) -> bool:
        """Stop the transport and release resources within ``shutdown_timeout``."""
        self._logger.info("shutdown_started", code=self._exit_code)
        try:
            async with asyncio.timeout(self._config.shutdown_timeout):
                if not transport.done():
                    transport.cancel()
                await asyncio.gather(transport, return_exceptions=True)
                await self._client.disconnect()
                if self._metrics_server is not None:
                    await self._metrics_server.stop()
                    self._metrics_server = None
        except TimeoutError:
            self._logger.error("shutdown_timeout", timeout_s=self._config.shutdown_timeout)
            return False
        except DisconnectError as e:
            self._logger.error("shutdown_failed", error=str(e))
            return False
        finally:
            with contextlib.suppress(RuntimeError):
                asyncio.get_running_loop().set_exception_handler(None)

        self._logger.info("shutdown_completed")
        return True
