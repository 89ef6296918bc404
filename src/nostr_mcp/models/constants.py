"""Shared constants for the models layer.

Defines enumerations used across the model, NIP, and service modules.
Placing them here avoids circular dependencies between layers.

See Also:
    [nostr_mcp.nips.event_builders][]: Uses [EventKind][nostr_mcp.models.constants.EventKind]
        to build every event the server publishes.
    [nostr_mcp.core.exceptions][]: Tags domain errors with a
        [NostrErrorCode][nostr_mcp.models.constants.NostrErrorCode].
"""

from __future__ import annotations

import re
from enum import IntEnum, StrEnum


class EventKind(IntEnum):
    """Nostr event kinds produced or consumed by the server.

    Attributes:
        SET_METADATA: Kind 0 -- user profile metadata (NIP-01), JSON content.
        TEXT_NOTE: Kind 1 -- short text note, also used for threaded
            comments (NIP-10).
        OPENTIMESTAMPS: Kind 1040 -- OpenTimestamps attestation for another
            event (NIP-03).
        ZAP_REQUEST: Kind 9734 -- zap request handed to an LNURL server,
            never published to relays (NIP-57).
    """

    SET_METADATA = 0
    TEXT_NOTE = 1
    OPENTIMESTAMPS = 1040
    ZAP_REQUEST = 9734


class NostrErrorCode(StrEnum):
    """Machine-readable codes attached to every domain error.

    The string values appear in logs and in the ``isError`` text payloads
    returned to the MCP host.
    """

    CONNECTION_ERROR = "connection_error"
    POST_ERROR = "post_error"
    FETCH_ERROR = "fetch_error"
    NOT_CONNECTED = "not_connected"
    DISCONNECT_ERROR = "disconnect_error"
    ZAP_ERROR = "zap_error"
    INVALID_RECIPIENT = "invalid_recipient"


class ServerMode(StrEnum):
    """MCP transport the server listens on."""

    STDIO = "stdio"
    SSE = "sse"


# NIP-10 thread markers carried in the fourth element of an "e" tag
MARKER_ROOT = "root"
MARKER_REPLY = "reply"

EVENT_KIND_MAX = 65_535

HEX_ID_PATTERN = r"^[0-9a-fA-F]{64}$"
HEX_ID_RE = re.compile(HEX_ID_PATTERN)
