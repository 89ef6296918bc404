"""Nostr protocol client helpers.

Thin helpers over ``nostr_sdk`` used by
[NostrClient][nostr_mcp.services.client.NostrClient]: client factory,
relay URL validation, and a fetch helper that converts SDK events into
[Note][nostr_mcp.models.note.Note] snapshots.

Relay pooling, reconnection, deduplication across relays, and signature
verification are all handled inside ``nostr_sdk``.

Examples:
    ```python
    from nostr_mcp.utils.protocol import create_client, fetch_notes

    client = create_client(keys)
    notes = await fetch_notes(client, Filter().kind(Kind(1)).limit(10), timeout=10.0)
    ```
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from nostr_sdk import ClientBuilder, NostrSdkError, NostrSigner, RelayUrl

from nostr_mcp.models.note import Note


if TYPE_CHECKING:
    from nostr_sdk import Client, Filter, Keys


logger = logging.getLogger(__name__)


def create_client(keys: Keys | None = None) -> Client:
    """Create a Nostr client, optionally bound to a signer.

    Args:
        keys: Signing keys (``None`` = read-only client).

    Returns:
        Configured ``Client`` (call ``add_relay()`` and ``connect()`` before use).
    """
    builder = ClientBuilder()
    if keys is not None:
        builder = builder.signer(NostrSigner.keys(keys))
    return builder.build()


def validate_relay_url(url: str) -> str:
    """Return *url* stripped once ``RelayUrl.parse`` accepts it.

    Raises:
        ValueError: If ``nostr_sdk`` rejects the URL (scheme other than
            ws/wss, missing or malformed host, bad port).
    """
    stripped = url.strip()
    try:
        RelayUrl.parse(stripped)
    except NostrSdkError as e:
        raise ValueError(f"not a relay URL: {e}") from e
    return stripped


async def fetch_notes(
    client: Client,
    event_filter: Filter,
    *,
    timeout: float,  # noqa: ASYNC109
) -> list[Note]:
    """Fetch events matching *event_filter* from all connected relays.

    Events that cannot be represented as a [Note][nostr_mcp.models.note.Note]
    are skipped with a debug log; ``nostr_sdk`` has already verified
    signatures and deduplicated ids across relays.

    Raises:
        Whatever ``Client.fetch_events`` raises; callers wrap it.
    """
    events = await client.fetch_events(event_filter, timedelta(seconds=timeout))
    notes: list[Note] = []
    for evt in events.to_vec():
        try:
            notes.append(Note.from_nostr_event(evt))
        except (ValueError, TypeError) as e:
            logger.debug("event_skipped error=%s", e)
    return notes
