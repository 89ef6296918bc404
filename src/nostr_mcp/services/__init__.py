r"""Top layer: configuration, Nostr client wrapper, tool dispatch, and MCP server.

Services depend on [nostr_mcp.core][nostr_mcp.core],
[nostr_mcp.nips][nostr_mcp.nips], [nostr_mcp.utils][nostr_mcp.utils], and
[nostr_mcp.models][nostr_mcp.models].

```text
MCP host --> NostrMcpServer --> ToolDispatcher --> NostrClient --> relays
                                                         \--> NIP-05 / LNURL (HTTPS)
```

Attributes:
    ServerConfig: Pydantic configuration, loaded by ``load_config()`` from
        YAML, environment, and CLI overrides.
    NostrClient: One coroutine per tool; build, sign, publish, or fetch and
        classify.
    ToolDispatcher: Validates arguments and maps domain errors to ``isError``
        results.
    NostrMcpServer: Low-level MCP server with stdio and SSE transports and
        bounded shutdown.

Examples:
    ```python
    from nostr_mcp.services import NostrMcpServer, load_config

    server = NostrMcpServer(load_config("config/nostr-mcp.yaml"))
    exit_code = await server.serve()
    ```
"""

from .client import NostrClient
from .configs import ServerConfig, load_config
from .dispatch import ToolDispatcher, ToolResult
from .server import NostrMcpServer
from .tools import TOOLS, ToolSpec


__all__ = [
    "TOOLS",
    "NostrClient",
    "NostrMcpServer",
    "ServerConfig",
    "ToolDispatcher",
    "ToolResult",
    "ToolSpec",
    "load_config",
]
