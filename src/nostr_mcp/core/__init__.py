"""Core layer: logging, exceptions, metrics, and configuration loading.

Depends only on ``nostr_mcp.models`` and is depended upon by the ``nips``,
``utils``, and ``services`` layers.

Attributes:
    Logger: Structured logger supporting key=value and JSON output modes.
        See [Logger][nostr_mcp.core.logger.Logger].
    MetricsServer: Prometheus ``/metrics`` HTTP endpoint.
        See [MetricsServer][nostr_mcp.core.metrics.MetricsServer].
    load_yaml: Safe YAML loading. See [load_yaml()][nostr_mcp.core.yaml.load_yaml].
"""

from .exceptions import (
    ConfigurationError,
    DisconnectError,
    FetchError,
    InvalidInputError,
    InvalidRecipientError,
    NostrError,
    NostrMcpError,
    NotConnectedError,
    PublishError,
    RelayConnectionError,
    ToolNotFoundError,
    ZapError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import (
    EVENTS_PUBLISHED,
    TOOL_CALL_DURATION_SECONDS,
    TOOL_CALLS,
    MetricsConfig,
    MetricsServer,
    start_metrics_server,
)
from .yaml import load_yaml


__all__ = [
    "EVENTS_PUBLISHED",
    "TOOL_CALLS",
    "TOOL_CALL_DURATION_SECONDS",
    "ConfigurationError",
    "DisconnectError",
    "FetchError",
    "InvalidInputError",
    "InvalidRecipientError",
    "Logger",
    "MetricsConfig",
    "MetricsServer",
    "NostrError",
    "NostrMcpError",
    "NotConnectedError",
    "PublishError",
    "RelayConnectionError",
    "StructuredFormatter",
    "ToolNotFoundError",
    "ZapError",
    "format_kv_pairs",
    "load_yaml",
    "start_metrics_server",
]
