"""Plain result records returned by the Nostr client wrapper.

Each operation of [NostrClient][nostr_mcp.services.client.NostrClient]
maps the signed or fetched events back into one of these frozen
dataclasses, which the tool layer then formats as text for the MCP host.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from .note import Note


@dataclass(frozen=True, slots=True)
class PostedNote:
    """A published kind 1 note."""

    id: str
    pubkey: str
    content: str


@dataclass(frozen=True, slots=True)
class PostedComment:
    """A published NIP-10 threaded comment."""

    id: str
    pubkey: str
    content: str
    root_id: str
    parent_id: str
    tags: tuple[tuple[str, ...], ...] = ()


@dataclass(frozen=True, slots=True)
class UpdatedProfile:
    """A published kind 0 profile; ``content`` is the merged JSON string."""

    id: str
    pubkey: str
    content: str


@dataclass(frozen=True, slots=True)
class ZapReceipt:
    """Outcome of a zap request: the invoice still has to be paid by a wallet."""

    recipient_pubkey: str
    amount: int
    invoice: str


@dataclass(frozen=True, slots=True)
class ReplyNote:
    """A kind 1 event referencing a given note."""

    id: str
    pubkey: str
    content: str
    created_at: int

    @classmethod
    def from_note(cls, note: Note) -> ReplyNote:
        return cls(
            id=note.id,
            pubkey=note.pubkey,
            content=note.content,
            created_at=note.created_at,
        )


@dataclass(frozen=True, slots=True)
class LatestPost:
    """A kind 1 event authored by a given public key."""

    id: str
    pubkey: str
    content: str
    created_at: int

    @classmethod
    def from_note(cls, note: Note) -> LatestPost:
        return cls(
            id=note.id,
            pubkey=note.pubkey,
            content=note.content,
            created_at=note.created_at,
        )


@dataclass(frozen=True, slots=True)
class UnansweredComment:
    """A comment from someone else that the signer has not replied to yet."""

    id: str
    pubkey: str
    content: str
    created_at: int
    root_id: str
    tags: tuple[tuple[str, ...], ...] = field(default=())

    @classmethod
    def from_note(cls, note: Note, root_id: str) -> UnansweredComment:
        return cls(
            id=note.id,
            pubkey=note.pubkey,
            content=note.content,
            created_at=note.created_at,
            root_id=root_id,
            tags=note.tags,
        )


@dataclass(frozen=True, slots=True)
class UnrepliedMention:
    """An event tagging the signer with a ``p`` tag that has no reply yet."""

    id: str
    pubkey: str
    content: str
    created_at: int
    tags: tuple[tuple[str, ...], ...] = field(default=())

    @classmethod
    def from_note(cls, note: Note) -> UnrepliedMention:
        return cls(
            id=note.id,
            pubkey=note.pubkey,
            content=note.content,
            created_at=note.created_at,
            tags=note.tags,
        )


@dataclass(frozen=True, slots=True)
class TimestampAttestation:
    """A published NIP-03 kind 1040 attestation."""

    id: str
    pubkey: str
    event_id: str
    event_kind: int


def to_dict(record: Any) -> dict[str, Any]:
    """Serialize any result record to a JSON-compatible dict."""
    data = asdict(record)
    if "tags" in data:
        data["tags"] = [list(tag) for tag in data["tags"]]
    return data
