"""
Immutable snapshot of a signed Nostr event.

[Note][nostr_mcp.models.note.Note] copies the fields of a ``nostr_sdk.Event``
into plain Python values once, so the thread matcher in
[nostr_mcp.nips.threads][] can operate on ordinary data without FFI calls
and tests can construct events without signing anything.

See Also:
    [nostr_mcp.nips.threads][]: Pure classification functions over notes.
    [NostrClient][nostr_mcp.services.client.NostrClient]: Converts fetched
        SDK events with [Note.from_nostr_event()][nostr_mcp.models.note.Note.from_nostr_event].
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ._validation import (
    freeze_tags,
    validate_bounded_int,
    validate_hex_id,
    validate_instance,
)
from .constants import EVENT_KIND_MAX, MARKER_REPLY


if TYPE_CHECKING:
    from collections.abc import Iterator

    from nostr_sdk import Event as NostrEvent


# A marked "e" tag is ["e", <id>, <relay-hint>, <marker>]
_MARKED_TAG_LEN = 4
_MIN_TAG_LEN = 2


@dataclass(frozen=True, slots=True)
class Note:
    """Immutable, validated view of a signed Nostr event.

    Validation is performed eagerly at construction time: ``id`` and
    ``pubkey`` must be 64 lowercase hex characters, ``kind`` must fit in
    16 bits, and ``tags`` are frozen into nested tuples.

    Attributes:
        id: Event id (SHA-256 of the serialized event), lowercase hex.
        pubkey: Author public key, lowercase hex.
        kind: Integer event kind (1 for text notes and comments).
        created_at: Unix timestamp of event creation.
        content: Raw event content.
        tags: Ordered tags, each an ordered tuple of strings.

    Examples:
        ```python
        note = Note(
            id="ab" * 32,
            pubkey="cd" * 32,
            kind=1,
            created_at=1_700_000_000,
            content="gm",
            tags=(("e", "ef" * 32, "", "root"),),
        )
        note.references("ef" * 32)  # True
        ```
    """

    id: str
    pubkey: str
    kind: int
    created_at: int
    content: str
    tags: tuple[tuple[str, ...], ...] = ()

    def __post_init__(self) -> None:
        validate_hex_id(self.id, "id")
        validate_hex_id(self.pubkey, "pubkey")
        validate_bounded_int(self.kind, "kind", EVENT_KIND_MAX)
        validate_bounded_int(self.created_at, "created_at")
        validate_instance(self.content, str, "content")
        object.__setattr__(self, "tags", freeze_tags(self.tags, "tags"))

    @classmethod
    def from_nostr_event(cls, event: NostrEvent) -> Note:
        """Copy the fields of a ``nostr_sdk.Event`` into a new Note."""
        return cls(
            id=event.id().to_hex(),
            pubkey=event.author().to_hex(),
            kind=event.kind().as_u16(),
            created_at=event.created_at().as_secs(),
            content=event.content(),
            tags=tuple(tuple(tag.as_vec()) for tag in event.tags().to_vec()),
        )

    def iter_tags(self, name: str) -> Iterator[tuple[str, ...]]:
        """Yield every tag whose first element equals *name*."""
        for tag in self.tags:
            if len(tag) >= _MIN_TAG_LEN and tag[0] == name:
                yield tag

    def tag_values(self, name: str) -> list[str]:
        """Return the second element of every *name* tag, in order."""
        return [tag[1] for tag in self.iter_tags(name)]

    def references(self, event_id: str) -> bool:
        """Whether any ``e`` tag points at *event_id*."""
        return event_id in self.tag_values("e")

    def replied_to_ids(self) -> list[str]:
        """Ids targeted by ``e`` tags carrying the ``"reply"`` marker."""
        return [
            tag[1]
            for tag in self.iter_tags("e")
            if len(tag) >= _MARKED_TAG_LEN and tag[3] == MARKER_REPLY
        ]

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "kind": self.kind,
            "created_at": self.created_at,
            "content": self.content,
            "tags": [list(tag) for tag in self.tags],
        }
