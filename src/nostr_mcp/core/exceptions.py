"""nostr-mcp exception hierarchy.

Separates protocol faults (bad tool name, bad arguments) from domain
errors (relay and Lightning failures). Domain errors are reported to the
MCP host inside a successful tool response with the ``isError`` flag set;
protocol faults abort the call at the JSON-RPC layer.

Exception hierarchy:

```text
NostrMcpError (base -- never raised directly)
├── ConfigurationError        -- missing key or relays, bad YAML
├── InvalidInputError         -- tool arguments failed the shape check
├── ToolNotFoundError         -- unknown tool name
└── NostrError                -- domain error, carries a NostrErrorCode
    ├── NotConnectedError     -- operation attempted before connect()
    ├── RelayConnectionError  -- no relay could be reached
    ├── PublishError          -- signing or broadcasting failed
    ├── FetchError            -- querying relays failed
    ├── DisconnectError       -- closing relay connections failed
    ├── ZapError              -- LNURL / invoice negotiation failed
    └── InvalidRecipientError -- NIP-05 address could not be resolved
```

See Also:
    [ToolDispatcher][nostr_mcp.services.dispatch.ToolDispatcher]: Turns
        [NostrError][nostr_mcp.core.exceptions.NostrError] into ``isError``
        results.
    [NostrMcpServer][nostr_mcp.services.server.NostrMcpServer]: Maps
        protocol faults to ``McpError`` codes.
"""

from __future__ import annotations

from nostr_mcp.models.constants import NostrErrorCode


class NostrMcpError(Exception):
    """Base exception for all nostr-mcp errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(NostrMcpError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


# ---------------------------------------------------------------------------
# Protocol faults
# ---------------------------------------------------------------------------


class InvalidInputError(NostrMcpError):
    """Tool arguments failed validation.

    Never retried. The message is reported to the caller verbatim.

    Attributes:
        fields: Names of the offending arguments, in the order reported.
    """

    def __init__(self, message: str, fields: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.fields = fields


class ToolNotFoundError(NostrMcpError):
    """The requested tool name is not in the catalog."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


# ---------------------------------------------------------------------------
# Domain errors
# ---------------------------------------------------------------------------


class NostrError(NostrMcpError):
    """Failure talking to the Nostr network or a Lightning service.

    Attributes:
        code: Machine-readable [NostrErrorCode][nostr_mcp.models.constants.NostrErrorCode].
    """

    default_code: NostrErrorCode = NostrErrorCode.POST_ERROR

    def __init__(self, message: str, code: NostrErrorCode | None = None) -> None:
        super().__init__(message)
        self.code = code if code is not None else self.default_code


class NotConnectedError(NostrError):
    """An operation was attempted before ``connect()`` completed."""

    default_code = NostrErrorCode.NOT_CONNECTED


class RelayConnectionError(NostrError):
    """None of the configured relays accepted a connection."""

    default_code = NostrErrorCode.CONNECTION_ERROR


class PublishError(NostrError):
    """Signing or broadcasting an event failed."""

    default_code = NostrErrorCode.POST_ERROR


class FetchError(NostrError):
    """Querying events from relays failed or timed out."""

    default_code = NostrErrorCode.FETCH_ERROR


class DisconnectError(NostrError):
    """Closing relay connections failed."""

    default_code = NostrErrorCode.DISCONNECT_ERROR


class ZapError(NostrError):
    """The LNURL pay flow failed (no lightning address, bad amount, no invoice)."""

    default_code = NostrErrorCode.ZAP_ERROR


class InvalidRecipientError(NostrError):
    """A NIP-05 address could not be resolved to a public key.

    Classified as an input problem rather than a transport failure, so it
    is reported with its own code instead of ``zap_error``.
    """

    default_code = NostrErrorCode.INVALID_RECIPIENT
