"""Pure data layer: frozen dataclasses and enums with zero I/O.

Sits at the bottom of the diamond DAG and is imported by every other
layer.

Attributes:
    Note: Immutable snapshot of a signed Nostr event.
        See [Note][nostr_mcp.models.note.Note].
    EventKind: Event kinds produced and consumed by the server.
    NostrErrorCode: Codes attached to domain errors.
    ServerMode: MCP transport selection.
"""

from .constants import (
    HEX_ID_PATTERN,
    MARKER_REPLY,
    MARKER_ROOT,
    EventKind,
    NostrErrorCode,
    ServerMode,
)
from .note import Note
from .results import (
    LatestPost,
    PostedComment,
    PostedNote,
    ReplyNote,
    TimestampAttestation,
    UnansweredComment,
    UnrepliedMention,
    UpdatedProfile,
    ZapReceipt,
    to_dict,
)


__all__ = [
    "HEX_ID_PATTERN",
    "MARKER_REPLY",
    "MARKER_ROOT",
    "EventKind",
    "LatestPost",
    "NostrErrorCode",
    "Note",
    "PostedComment",
    "PostedNote",
    "ReplyNote",
    "ServerMode",
    "TimestampAttestation",
    "UnansweredComment",
    "UnrepliedMention",
    "UpdatedProfile",
    "ZapReceipt",
    "to_dict",
]
