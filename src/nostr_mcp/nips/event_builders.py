"""Nostr event builders for every event kind the server produces.

Standalone functions returning unsigned ``nostr_sdk.EventBuilder``
instances. Signing and publishing happen in
[NostrClient][nostr_mcp.services.client.NostrClient].

See Also:
    [EventKind][nostr_mcp.models.constants.EventKind]: The kinds built here.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from nostr_sdk import EventBuilder, Kind, Tag

from nostr_mcp.models.constants import MARKER_REPLY, MARKER_ROOT, EventKind


if TYPE_CHECKING:
    from collections.abc import Mapping


# =============================================================================
# Kind 1 (NIP-01, NIP-10)
# =============================================================================


def build_text_note(content: str) -> EventBuilder:
    """Build a Kind 1 text note with no tags."""
    return EventBuilder(Kind(EventKind.TEXT_NOTE), content)


def comment_tags(root_id: str, parent_id: str | None = None) -> list[list[str]]:
    """Return the NIP-10 marked ``e`` tags for a comment.

    ``parent_id`` defaults to ``root_id``, in which case both tags point at
    the root note.
    """
    return [
        ["e", root_id, "", MARKER_ROOT],
        ["e", parent_id or root_id, "", MARKER_REPLY],
    ]


def build_comment(content: str, root_id: str, parent_id: str | None = None) -> EventBuilder:
    """Build a Kind 1 reply carrying ``root`` and ``reply`` marked tags."""
    tags = [Tag.parse(tag) for tag in comment_tags(root_id, parent_id)]
    return EventBuilder(Kind(EventKind.TEXT_NOTE), content).tags(tags)


# =============================================================================
# Kind 0 (NIP-01)
# =============================================================================


def merge_profile(existing: Mapping[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    """Shallow-merge profile fields; *updates* win on collisions.

    ``None`` values in *updates* mean "not provided" and leave the
    existing value untouched.
    """
    merged = dict(existing)
    merged.update({key: value for key, value in updates.items() if value is not None})
    return merged


def build_profile_event(metadata: Mapping[str, Any]) -> EventBuilder:
    """Build a Kind 0 profile metadata event per NIP-01.

    The content is ``json.dumps(metadata)`` so unknown fields and key order
    survive unchanged.
    """
    content = json.dumps(dict(metadata), ensure_ascii=False)
    return EventBuilder(Kind(EventKind.SET_METADATA), content)


# =============================================================================
# Kind 1040 (NIP-03)
# =============================================================================


def build_timestamp_attestation(event_id: str, event_kind: int, ots_proof: str) -> EventBuilder:
    """Build a Kind 1040 OpenTimestamps attestation per NIP-03.

    The proof is used verbatim as content (NIP-03 expects the base64 of the
    ``.ots`` file; the caller provides it already encoded).
    """
    tags = [
        Tag.parse(["e", event_id, "", ""]),
        Tag.parse(["k", str(event_kind)]),
    ]
    return EventBuilder(Kind(EventKind.OPENTIMESTAMPS), ots_proof).tags(tags)


# =============================================================================
# Kind 9734 (NIP-57)
# =============================================================================


def build_zap_request(
    recipient_pubkey: str,
    amount_msats: int,
    relays: list[str],
    *,
    content: str = "",
    event_id: str | None = None,
) -> EventBuilder:
    """Build a Kind 9734 zap request per NIP-57.

    Zap requests are not published to relays: the signed event is sent to
    the recipient's LNURL callback, and the wallet server publishes the
    matching zap receipt once the invoice is paid.
    """
    tags = [
        Tag.parse(["relays", *relays]),
        Tag.parse(["amount", str(amount_msats)]),
        Tag.parse(["p", recipient_pubkey]),
    ]
    if event_id is not None:
        tags.append(Tag.parse(["e", event_id]))
    return EventBuilder(Kind(EventKind.ZAP_REQUEST), content).tags(tags)


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    "build_comment",
    "build_profile_event",
    "build_text_note",
    "build_timestamp_attestation",
    "build_zap_request",
    "comment_tags",
    "merge_profile",
]
