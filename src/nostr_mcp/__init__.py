r"""nostr-mcp -- Model Context Protocol server for the Nostr network.

Exposes Nostr operations (publish notes and comments, update the profile,
request Lightning zaps, query replies and mentions, create NIP-03
timestamp attestations) as MCP tools for AI model hosts.

Architecture follows a **diamond DAG** dependency structure where imports
flow strictly downward:

```text
              services         Tool dispatch, Nostr client wrapper, MCP server
             /   |   \
          core  nips  utils    Logging, errors, metrics / NIP logic / keys, HTTP
             \   |   /
              models           Pure frozen dataclasses and enums (zero I/O)
```

Attributes:
    models: Note snapshots, result records, enums. Depends only on stdlib.
    core: Exceptions, structured logging, Prometheus metrics, YAML loading.
    nips: NIP-10 thread matching, event builders, NIP-05 and NIP-57 lookups.
    utils: Key loading, bounded HTTP, ``nostr_sdk`` client helpers.
    services: Configuration, Nostr client wrapper, tool dispatch, MCP server.

Note:
    Top-level imports (``from nostr_mcp import NostrMcpServer``) use lazy
    loading and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("nostr-mcp")

__all__ = [
    "EventKind",
    "Logger",
    "NostrClient",
    "NostrErrorCode",
    "NostrMcpServer",
    "Note",
    "ServerConfig",
    "ToolDispatcher",
    "load_config",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "Logger": ("nostr_mcp.core", "Logger"),
    "EventKind": ("nostr_mcp.models", "EventKind"),
    "NostrErrorCode": ("nostr_mcp.models", "NostrErrorCode"),
    "Note": ("nostr_mcp.models", "Note"),
    "NostrClient": ("nostr_mcp.services", "NostrClient"),
    "NostrMcpServer": ("nostr_mcp.services", "NostrMcpServer"),
    "ServerConfig": ("nostr_mcp.services", "ServerConfig"),
    "ToolDispatcher": ("nostr_mcp.services", "ToolDispatcher"),
    "load_config": ("nostr_mcp.services", "load_config"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'nostr_mcp' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
