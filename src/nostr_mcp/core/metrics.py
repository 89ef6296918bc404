"""
Prometheus metrics for tool calls and published events.

Module-level metric objects are process-wide singletons. The
[ToolDispatcher][nostr_mcp.services.dispatch.ToolDispatcher] records every
call, and [NostrClient][nostr_mcp.services.client.NostrClient] counts
every event it publishes. Recording is unconditional (it is cheap);
``MetricsConfig.enabled`` only controls whether the HTTP endpoint is
served.

Architecture:
    TOOL_CALLS:                 Counter by tool and outcome
                                (``ok``, ``domain_error``, ``invalid_input``,
                                ``not_found``, ``internal_error``).
    TOOL_CALL_DURATION_SECONDS: Histogram by tool.
    EVENTS_PUBLISHED:           Counter by event kind.
"""

from __future__ import annotations

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)
from pydantic import BaseModel, Field

from .logger import Logger


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class MetricsConfig(BaseModel):
    """Configuration for the Prometheus metrics endpoint.

    The endpoint is only started when ``enabled`` is True. It must not
    share a port with the SSE transport.
    """

    enabled: bool = Field(default=False, description="Serve the /metrics endpoint")
    port: int = Field(default=8000, ge=1024, le=65535, description="Metrics HTTP port")
    host: str = Field(default="127.0.0.1", description="Metrics HTTP bind address")
    path: str = Field(default="/metrics", pattern=r"^/", description="Metrics endpoint path")


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

TOOL_CALLS = Counter(
    "tool_calls",
    "MCP tool invocations by outcome",
    ["tool", "outcome"],
)

TOOL_CALL_DURATION_SECONDS = Histogram(
    "tool_call_duration_seconds",
    "Wall-clock duration of MCP tool invocations",
    ["tool"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, 60),
)

EVENTS_PUBLISHED = Counter(
    "events_published",
    "Signed Nostr events accepted by at least one relay",
    ["kind"],
)


# ---------------------------------------------------------------------------
# HTTP Server
# ---------------------------------------------------------------------------


class MetricsServer:
    """aiohttp endpoint serving a Prometheus registry in text format.

    Args:
        config: Bind address, port and path.
        registry: Registry to expose; the process-wide default when omitted.
    """

    def __init__(
        self,
        config: MetricsConfig,
        registry: CollectorRegistry = REGISTRY,
    ) -> None:
        self._config = config
        self._registry = registry
        self._runner: web.AppRunner | None = None
        self._logger = Logger("nostr_mcp.metrics")

    @property
    def running(self) -> bool:
        return self._runner is not None

    @property
    def url(self) -> str:
        return f"http://{self._config.host}:{self._config.port}{self._config.path}"

    async def start(self) -> None:
        """Bind the endpoint; no-op when metrics are disabled or already running.

        Raises:
            OSError: If the port is already in use or binding fails.
        """
        if not self._config.enabled or self._runner is not None:
            return

        app = web.Application()
        app.router.add_get(self._config.path, self._handle_metrics)
        runner = web.AppRunner(app, access_log=None)
        await runner.setup()
        try:
            await web.TCPSite(runner, self._config.host, self._config.port).start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner
        self._logger.info("metrics_server_started", url=self.url)

    async def stop(self) -> None:
        """Release the bound port. Idempotent."""
        runner, self._runner = self._runner, None
        if runner is not None:
            await runner.cleanup()
            self._logger.info("metrics_server_stopped")

    async def _handle_metrics(self, _request: web.Request) -> web.Response:
        return web.Response(
            body=generate_latest(self._registry),
            headers={"Content-Type": CONTENT_TYPE_LATEST},
        )


async def start_metrics_server(config: MetricsConfig | None = None) -> MetricsServer:
    """Create and start a metrics server; the caller must ``stop()`` it."""
    server = MetricsServer(config or MetricsConfig())
    await server.start()
    return server
