"""NIP-10 thread matching over fetched notes.

Pure functions with no I/O: given notes already fetched from relays,
classify which ones reply to a note, which comments the signer still has
to answer, and which mentions of the signer are still unreplied.

The reconciliation rule is the same everywhere: an event counts as
answered when one of the signer's own events carries an
``["e", <event-id>, <relay-hint>, "reply"]`` tag pointing at it. The
result is recomputed from fresh notes on every query and never stored.

Every result is sorted newest first by ``created_at``; the relative order
of notes with equal timestamps is unspecified.

See Also:
    [Note][nostr_mcp.models.note.Note]: Input type for every function.
    [NostrClient][nostr_mcp.services.client.NostrClient]: Fetches the
        notes and maps the results into records.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from nostr_mcp.core.exceptions import InvalidInputError
from nostr_mcp.models.constants import EventKind


if TYPE_CHECKING:
    from collections.abc import Iterable

    from nostr_mcp.models.note import Note


DEFAULT_LIMIT = 50
MAX_LIMIT = 500


def validate_limit(limit: int, *, maximum: int = MAX_LIMIT) -> int:
    """Return *limit* if it lies in ``1..maximum``.

    Raises:
        InvalidInputError: If *limit* is not an int or is out of range.
            Out-of-range values are rejected, never clamped.
    """
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise InvalidInputError(f"limit must be an integer, got {limit!r}", ("limit",))
    if limit < 1 or limit > maximum:
        raise InvalidInputError(f"limit must be between 1 and {maximum}, got {limit}", ("limit",))
    return limit


def newest_first(notes: Iterable[Note]) -> list[Note]:
    """Sort notes by ``created_at`` descending."""
    return sorted(notes, key=lambda note: note.created_at, reverse=True)


def filter_replies(notes: Iterable[Note], event_id: str, limit: int = DEFAULT_LIMIT) -> list[Note]:
    """Return the kind 1 notes that reference *event_id* through an ``e`` tag.

    Args:
        notes: Fetched notes, in any order.
        event_id: Id of the note whose replies are wanted.
        limit: Maximum number of results (1..500).

    Returns:
        Matching notes, newest first, at most *limit* of them.
    """
    validate_limit(limit)
    replies = [
        note
        for note in notes
        if note.kind == EventKind.TEXT_NOTE and note.id != event_id and note.references(event_id)
    ]
    return newest_first(replies)[:limit]


def answered_ids(notes: Iterable[Note]) -> set[str]:
    """Collect every id targeted by a ``"reply"``-marked ``e`` tag in *notes*."""
    answered: set[str] = set()
    for note in notes:
        answered.update(note.replied_to_ids())
    return answered


def find_unanswered_comments(
    notes: Iterable[Note],
    event_id: str,
    signer: str,
    limit: int = DEFAULT_LIMIT,
) -> list[Note]:
    """Return comments on *event_id* from other authors that *signer* has not answered.

    The replies to *event_id* are partitioned into the signer's own notes
    and everyone else's. A comment from someone else is unanswered unless
    one of the signer's notes tags it with the ``"reply"`` marker.

    Args:
        notes: Fetched notes, in any order.
        event_id: Root note id.
        signer: Signer public key (lowercase hex).
        limit: Maximum number of results (1..500).

    Returns:
        Unanswered comments, newest first, at most *limit* of them. Empty
        when nobody but the signer has commented.
    """
    validate_limit(limit)
    thread = [
        note
        for note in notes
        if note.kind == EventKind.TEXT_NOTE and note.id != event_id and note.references(event_id)
    ]
    others = [note for note in thread if note.pubkey != signer]
    if not others:
        return []

    ours = [note for note in thread if note.pubkey == signer]
    answered = answered_ids(ours)
    pending = [note for note in others if note.id not in answered]
    return newest_first(pending)[:limit]


def find_unreplied_mentions(
    mentions: Iterable[Note],
    own_replies: Iterable[Note],
    signer: str,
    limit: int = DEFAULT_LIMIT,
) -> list[Note]:
    """Return events mentioning *signer* that have no reply from *signer*.

    Args:
        mentions: Events carrying a ``["p", signer]`` tag.
        own_replies: Events that may answer the mentions; only those
            authored by *signer* are considered.
        signer: Signer public key (lowercase hex).
        limit: Maximum number of results (1..500).

    Returns:
        Unreplied mentions authored by someone else, newest first.
    """
    validate_limit(limit)
    answered = answered_ids(note for note in own_replies if note.pubkey == signer)
    pending = [
        note
        for note in mentions
        if note.pubkey != signer and signer in note.tag_values("p") and note.id not in answered
    ]
    return newest_first(pending)[:limit]
