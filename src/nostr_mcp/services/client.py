"""Nostr client wrapper exposing one coroutine per MCP tool.

[NostrClient][nostr_mcp.services.client.NostrClient] owns a
``nostr_sdk.Client`` bound to the server's signing keys and turns every
tool operation into a build, sign, and send sequence (writes) or a
fetch-then-classify sequence (reads). Results are mapped into the plain
records of [nostr_mcp.models.results][].

Every operation first checks that ``connect()`` has completed and raises
[NotConnectedError][nostr_mcp.core.exceptions.NotConnectedError]
otherwise. SDK failures are wrapped into the matching
[NostrError][nostr_mcp.core.exceptions.NostrError] subclass; domain
errors raised by the NIP helpers pass through unchanged.

Events are signed locally with ``EventBuilder.sign_with_keys`` before
sending, so the id, author, and content of the published event are known
even when some relays reject it. An event counts as published when at
least one relay accepts it.

See Also:
    [ToolDispatcher][nostr_mcp.services.dispatch.ToolDispatcher]: Calls
        exactly one method of this class per tool call.
    [nostr_mcp.nips.threads][]: Pure classification used by the read
        operations.
"""

from __future__ import annotations

import json
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from nostr_sdk import EventId, Filter, Kind, NostrSdkError, PublicKey, RelayUrl

from nostr_mcp.core.exceptions import (
    DisconnectError,
    FetchError,
    InvalidInputError,
    NotConnectedError,
    PublishError,
    RelayConnectionError,
    ZapError,
)
from nostr_mcp.core.logger import Logger
from nostr_mcp.core.metrics import EVENTS_PUBLISHED
from nostr_mcp.models.constants import EventKind
from nostr_mcp.models.results import (
    LatestPost,
    PostedComment,
    PostedNote,
    ReplyNote,
    TimestampAttestation,
    UnansweredComment,
    UnrepliedMention,
    UpdatedProfile,
    ZapReceipt,
)
from nostr_mcp.nips.event_builders import (
    build_comment,
    build_profile_event,
    build_text_note,
    build_timestamp_attestation,
    build_zap_request,
    comment_tags,
    merge_profile,
)
from nostr_mcp.nips.nip05 import resolve_nip05
from nostr_mcp.nips.nip57 import (
    MSATS_PER_SAT,
    fetch_pay_info,
    lightning_address,
    request_invoice,
)
from nostr_mcp.nips.threads import (
    DEFAULT_LIMIT,
    filter_replies,
    find_unanswered_comments,
    find_unreplied_mentions,
    newest_first,
    validate_limit,
)
from nostr_mcp.utils.protocol import create_client, fetch_notes


if TYPE_CHECKING:
    from collections.abc import Mapping

    from nostr_sdk import Client, Event, EventBuilder

    from nostr_mcp.models.note import Note
    from nostr_mcp.services.configs import ServerConfig


_SDK_ERRORS = (OSError, TimeoutError, NostrSdkError)


class NostrClient:
    """Signing Nostr client bound to the configured relays.

    Lifecycle:
        1. ``connect()``: add every configured relay and wait for
           connections; at least one must succeed.
        2. Tool operations (any order, concurrently on one event loop).
        3. ``disconnect()``: close relay connections.

    Args:
        config: Server configuration providing keys, relays, and timeouts.
        client: Pre-built ``nostr_sdk.Client`` (tests inject a mock);
            created from ``config.keys`` when omitted.
    """

    def __init__(self, config: ServerConfig, client: Client | None = None) -> None:
        self._config = config
        self._keys = config.keys
        self._pubkey = config.keys.public_key().to_hex()
        self._client = client if client is not None else create_client(config.keys)
        self._connected = False
        self._logger = Logger("nostr_mcp.client")

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def pubkey(self) -> str:
        """Signer public key as lowercase hex."""
        return self._pubkey

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """Connect to the configured relays.

        Raises:
            RelayConnectionError: If no relay URL can be added or no relay
                accepts a connection within ``connect_timeout``.
        """
        if self._connected:
            return

        added = 0
        for url in self._config.relays:
            try:
                await self._client.add_relay(RelayUrl.parse(url))
            except _SDK_ERRORS as e:
                self._logger.warning("relay_add_failed", url=url, error=str(e))
                continue
            added += 1

        if not added:
            raise RelayConnectionError(f"Failed to add any of {len(self._config.relays)} relays")

        try:
            output = await self._client.try_connect(
                timedelta(seconds=self._config.connect_timeout)
            )
        except _SDK_ERRORS as e:
            self._logger.error("connect_failed", error=str(e))
            raise RelayConnectionError(f"Failed to connect to relays: {e}") from e

        for relay_url, reason in output.failed.items():
            self._logger.warning("relay_connect_failed", url=str(relay_url), error=reason)

        if not output.success:
            raise RelayConnectionError(
                f"Failed to connect to any of {len(self._config.relays)} relays"
            )

        self._connected = True
        self._logger.info(
            "connected",
            pubkey=self._pubkey,
            relays=len(output.success),
            failed=len(output.failed),
        )

    async def disconnect(self) -> None:
        """Close all relay connections. Safe to call when not connected.

        Raises:
            DisconnectError: If the SDK fails to close the connections.
        """
        if not self._connected:
            return
        self._connected = False
        try:
            await self._client.disconnect()
        except _SDK_ERRORS as e:
            self._logger.error("disconnect_failed", error=str(e))
            raise DisconnectError(f"Failed to disconnect: {e}") from e
        self._logger.info("disconnected")

    def _ensure_connected(self) -> None:
        if not self._connected:
            raise NotConnectedError("Client is not connected to any relay")

    # -------------------------------------------------------------------------
    # Write operations
    # -------------------------------------------------------------------------

    async def _publish(self, builder: EventBuilder, kind: EventKind) -> Event:
        """Sign *builder* and send it to all connected relays.

        Raises:
            PublishError: If signing or sending fails, or no relay accepts
                the event.
        """
        try:
            event = builder.sign_with_keys(self._keys)
            output = await self._client.send_event(event)
        except _SDK_ERRORS as e:
            raise PublishError(f"Failed to publish event: {e}") from e

        if not output.success:
            reasons = "; ".join(str(reason) for reason in output.failed.values())
            raise PublishError(f"No relay accepted the event: {reasons or 'no response'}")

        EVENTS_PUBLISHED.labels(kind=str(int(kind))).inc()
        self._logger.debug(
            "event_published",
            id=event.id().to_hex(),
            kind=int(kind),
            accepted=len(output.success),
            rejected=len(output.failed),
        )
        return event

    async def post_note(self, content: str) -> PostedNote:
        """Publish a kind 1 text note."""
        self._ensure_connected()
        event = await self._publish(build_text_note(content), EventKind.TEXT_NOTE)
        posted = PostedNote(
            id=event.id().to_hex(),
            pubkey=event.author().to_hex(),
            content=event.content(),
        )
        self._logger.info("note_published", id=posted.id)
        return posted

    async def post_comment(
        self,
        root_id: str,
        content: str,
        parent_id: str | None = None,
    ) -> PostedComment:
        """Publish a NIP-10 reply to *root_id*, optionally nested under *parent_id*.

        Without *parent_id* both the ``root`` and ``reply`` marked tags
        point at *root_id*.
        """
        self._ensure_connected()
        parent = parent_id or root_id
        event = await self._publish(build_comment(content, root_id, parent), EventKind.TEXT_NOTE)
        posted = PostedComment(
            id=event.id().to_hex(),
            pubkey=event.author().to_hex(),
            content=event.content(),
            root_id=root_id,
            parent_id=parent,
            tags=tuple(tuple(tag) for tag in comment_tags(root_id, parent)),
        )
        self._logger.info("comment_published", id=posted.id, root=root_id, parent=parent)
        return posted

    async def update_profile_metadata(self, fields: Mapping[str, Any]) -> UpdatedProfile:
        """Merge *fields* into the current kind 0 profile and publish it.

        The current profile is read best-effort: if it cannot be fetched or
        is not a JSON object, the update starts from an empty profile.
        Fields in *fields* win on collision; ``None`` values are ignored.
        """
        self._ensure_connected()

        existing: dict[str, Any] = {}
        try:
            current = await self._latest_profile(self._pubkey)
        except FetchError as e:
            self._logger.warning("profile_fetch_failed", error=str(e))
            current = None
        if current is not None:
            try:
                parsed = json.loads(current.content)
            except ValueError as e:
                self._logger.warning("profile_parse_failed", id=current.id, error=str(e))
            else:
                if isinstance(parsed, dict):
                    existing = parsed
                else:
                    self._logger.warning("profile_not_object", id=current.id)

        merged = merge_profile(existing, fields)
        event = await self._publish(build_profile_event(merged), EventKind.SET_METADATA)
        updated = UpdatedProfile(
            id=event.id().to_hex(),
            pubkey=event.author().to_hex(),
            content=event.content(),
        )
        self._logger.info("profile_published", id=updated.id, fields=sorted(merged))
        return updated

    async def send_zap(self, nip05_address: str, amount: int) -> ZapReceipt:
        """Request a Lightning invoice zapping *amount* sats to a NIP-05 address.

        Resolves the address, reads the recipient's ``lud16`` from its
        profile, signs a kind 9734 zap request, and exchanges it for a
        bolt11 invoice at the recipient's LNURL callback. The invoice is
        returned and logged; paying it is up to the operator's wallet.

        Raises:
            InvalidRecipientError: If the address cannot be resolved.
            ZapError: If any later step of the flow fails.
        """
        self._ensure_connected()

        recipient = await resolve_nip05(nip05_address, timeout=self._config.http_timeout)
        self._logger.info("zap_recipient_resolved", address=nip05_address, pubkey=recipient)

        try:
            profile = await self._latest_profile(recipient)
        except FetchError as e:
            raise ZapError(f"Failed to read recipient profile: {e}") from e
        if profile is None:
            raise ZapError(f"Recipient {nip05_address} has no profile metadata")

        lud16 = lightning_address(profile.content)
        info = await fetch_pay_info(lud16, timeout=self._config.http_timeout)

        amount_msats = amount * MSATS_PER_SAT
        info.check_amount(amount_msats)
        try:
            zap_request = build_zap_request(
                recipient, amount_msats, self._config.relays
            ).sign_with_keys(self._keys)
        except NostrSdkError as e:
            raise ZapError(f"Failed to sign zap request: {e}") from e

        invoice = await request_invoice(
            info, amount_msats, zap_request.as_json(), timeout=self._config.http_timeout
        )
        self._logger.info(
            "zap_invoice_issued",
            recipient=recipient,
            amount=amount,
            invoice=invoice,
        )
        return ZapReceipt(recipient_pubkey=recipient, amount=amount, invoice=invoice)

    async def create_timestamp_attestation(
        self,
        event_id: str,
        event_kind: int,
        ots_proof: str,
    ) -> TimestampAttestation:
        """Publish a NIP-03 kind 1040 attestation for *event_id*."""
        self._ensure_connected()
        event = await self._publish(
            build_timestamp_attestation(event_id, event_kind, ots_proof),
            EventKind.OPENTIMESTAMPS,
        )
        attestation = TimestampAttestation(
            id=event.id().to_hex(),
            pubkey=event.author().to_hex(),
            event_id=event_id,
            event_kind=event_kind,
        )
        self._logger.info("attestation_published", id=attestation.id, target=event_id)
        return attestation

    # -------------------------------------------------------------------------
    # Read operations
    # -------------------------------------------------------------------------

    async def _fetch(self, event_filter: Filter) -> list[Note]:
        try:
            return await fetch_notes(
                self._client, event_filter, timeout=self._config.fetch_timeout
            )
        except _SDK_ERRORS as e:
            raise FetchError(f"Failed to fetch events: {e}") from e

    async def _latest_profile(self, pubkey: str) -> Note | None:
        """Return the newest kind 0 event of *pubkey*, or None."""
        event_filter = (
            Filter().kind(Kind(EventKind.SET_METADATA)).author(_public_key(pubkey)).limit(1)
        )
        notes = [
            note
            for note in await self._fetch(event_filter)
            if note.kind == EventKind.SET_METADATA and note.pubkey == pubkey
        ]
        return newest_first(notes)[0] if notes else None

    def _thread_filter(self, event_id: str) -> Filter:
        return (
            Filter()
            .kind(Kind(EventKind.TEXT_NOTE))
            .event(_event_id(event_id))
            .limit(self._config.fetch_limit)
        )

    async def get_replies(self, event_id: str, limit: int = DEFAULT_LIMIT) -> list[ReplyNote]:
        """Return kind 1 replies referencing *event_id*, newest first."""
        self._ensure_connected()
        validate_limit(limit)
        notes = await self._fetch(self._thread_filter(event_id))
        replies = filter_replies(notes, event_id, limit)
        self._logger.debug(
            "replies_fetched", event_id=event_id, fetched=len(notes), count=len(replies)
        )
        return [ReplyNote.from_note(note) for note in replies]

    async def get_latest_posts(
        self,
        author_pubkey: str | None = None,
        limit: int = 1,
    ) -> list[LatestPost]:
        """Return the newest kind 1 notes of *author_pubkey* (default: the signer)."""
        self._ensure_connected()
        validate_limit(limit)
        author = author_pubkey or self._pubkey
        event_filter = (
            Filter().kind(Kind(EventKind.TEXT_NOTE)).author(_public_key(author)).limit(limit)
        )
        notes = [
            note
            for note in await self._fetch(event_filter)
            if note.kind == EventKind.TEXT_NOTE and note.pubkey == author
        ]
        return [LatestPost.from_note(note) for note in newest_first(notes)[:limit]]

    async def get_unanswered_comments(
        self,
        event_id: str,
        limit: int = DEFAULT_LIMIT,
    ) -> list[UnansweredComment]:
        """Return comments on *event_id* from others that the signer has not answered."""
        self._ensure_connected()
        validate_limit(limit)
        notes = await self._fetch(self._thread_filter(event_id))
        pending = find_unanswered_comments(notes, event_id, self._pubkey, limit)
        self._logger.debug(
            "unanswered_comments_computed",
            event_id=event_id,
            fetched=len(notes),
            count=len(pending),
        )
        return [UnansweredComment.from_note(note, event_id) for note in pending]

    async def get_unreplied_mentions(self, limit: int = DEFAULT_LIMIT) -> list[UnrepliedMention]:
        """Return events mentioning the signer that the signer has not replied to."""
        self._ensure_connected()
        validate_limit(limit)
        signer = _public_key(self._pubkey)

        mention_filter = (
            Filter().kind(Kind(EventKind.TEXT_NOTE)).pubkey(signer).limit(self._config.fetch_limit)
        )
        fetched = await self._fetch(mention_filter)
        mentions = [note for note in fetched if note.pubkey != self._pubkey]
        if not mentions:
            return []

        reply_filter = (
            Filter()
            .kind(Kind(EventKind.TEXT_NOTE))
            .author(signer)
            .events([_event_id(note.id) for note in mentions])
            .limit(self._config.fetch_limit)
        )
        own_replies = await self._fetch(reply_filter)
        pending = find_unreplied_mentions(mentions, own_replies, self._pubkey, limit)
        return [UnrepliedMention.from_note(note) for note in pending]


def _event_id(value: str) -> EventId:
    try:
        return EventId.parse(value)
    except NostrSdkError as e:
        raise InvalidInputError(f"Invalid event id: {value!r}", ("eventId",)) from e


def _public_key(value: str) -> PublicKey:
    try:
        return PublicKey.parse(value)
    except NostrSdkError as e:
        raise InvalidInputError(f"Invalid public key: {value!r}", ("authorPubkey",)) from e
