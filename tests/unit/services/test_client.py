"""
Unit tests for services.client module.

Tests:
- connect() / disconnect() lifecycle and idempotency
- NotConnectedError before connect()
- Write operations: post_note, post_comment, update_profile_metadata,
  create_timestamp_attestation (real signing, mocked relays)
- Publish failures (SDK errors, no relay accepting)
- send_zap() orchestration (NIP-05, profile, LNURL mocked)
- Read operations: get_replies, get_latest_posts, get_unanswered_comments,
  get_unreplied_mentions (fetch_notes mocked)
"""

import json
import re
from datetime import timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from nostr_sdk import Keys
from prometheus_client import REGISTRY

from nostr_mcp.core.exceptions import (
    DisconnectError,
    FetchError,
    InvalidInputError,
    InvalidRecipientError,
    NotConnectedError,
    PublishError,
    RelayConnectionError,
    ZapError,
)
from nostr_mcp.models.results import PostedNote, ReplyNote
from nostr_mcp.nips.nip57 import LnurlPayInfo
from nostr_mcp.services.client import NostrClient
from nostr_mcp.services.configs import ServerConfig


ROOT_ID = "aa" * 32
PARENT_ID = "dd" * 32
RECIPIENT = Keys.generate().public_key().to_hex()
AUTHOR = Keys.generate().public_key().to_hex()
RELAY_URL = "wss://relay.example.com"
FETCH_NOTES = "nostr_mcp.services.client.fetch_notes"


def _sent_event(mock_sdk_client: MagicMock) -> Any:
    return mock_sdk_client.send_event.call_args.args[0]


def _tag_vecs(event: Any) -> list[list[str]]:
    return [tag.as_vec() for tag in event.tags().to_vec()]


def _published(kind: str) -> float:
    return REGISTRY.get_sample_value("events_published_total", {"kind": kind}) or 0.0


# ============================================================================
# Connection
# ============================================================================


class TestConnection:
    """Tests for connect() and disconnect()."""

    async def test_connect(self, nostr_client: NostrClient, mock_sdk_client: MagicMock) -> None:
        await nostr_client.connect()

        assert nostr_client.connected is True
        mock_sdk_client.add_relay.assert_awaited_once()
        mock_sdk_client.try_connect.assert_awaited_once_with(timedelta(seconds=10.0))

    async def test_connect_is_idempotent(
        self, nostr_client: NostrClient, mock_sdk_client: MagicMock
    ) -> None:
        await nostr_client.connect()
        await nostr_client.connect()

        mock_sdk_client.try_connect.assert_awaited_once()

    async def test_partial_failure_is_tolerated(
        self, nostr_client: NostrClient, mock_sdk_client: MagicMock
    ) -> None:
        mock_sdk_client.try_connect.return_value = MagicMock(
            success=["wss://relay.example.com"], failed={"wss://down.example.com": "timeout"}
        )

        await nostr_client.connect()

        assert nostr_client.connected is True

    async def test_all_relays_failed(
        self, nostr_client: NostrClient, mock_sdk_client: MagicMock
    ) -> None:
        mock_sdk_client.try_connect.return_value = MagicMock(
            success=[], failed={"wss://relay.example.com": "refused"}
        )

        with pytest.raises(RelayConnectionError, match="Failed to connect to any of 1 relays"):
            await nostr_client.connect()
        assert nostr_client.connected is False

    async def test_unparseable_relay_skipped(
        self, config: ServerConfig, mock_sdk_client: MagicMock
    ) -> None:
        # model_copy skips validation, as for a relay list built in code
        config = config.model_copy(update={"relays": ["wss://bad host:99999", RELAY_URL]})
        client = NostrClient(config, client=mock_sdk_client)

        await client.connect()

        assert client.connected is True
        mock_sdk_client.add_relay.assert_awaited_once()

    async def test_no_relay_added(self, config: ServerConfig, mock_sdk_client: MagicMock) -> None:
        config = config.model_copy(update={"relays": ["wss://bad host:99999"]})
        client = NostrClient(config, client=mock_sdk_client)

        with pytest.raises(RelayConnectionError, match="Failed to add any of 1 relays"):
            await client.connect()
        mock_sdk_client.try_connect.assert_not_awaited()
        assert client.connected is False

    async def test_sdk_error_wrapped(
        self, nostr_client: NostrClient, mock_sdk_client: MagicMock
    ) -> None:
        mock_sdk_client.try_connect.side_effect = OSError("network unreachable")

        with pytest.raises(RelayConnectionError, match="network unreachable"):
            await nostr_client.connect()

    async def test_disconnect(
        self, connected_client: NostrClient, mock_sdk_client: MagicMock
    ) -> None:
        await connected_client.disconnect()

        assert connected_client.connected is False
        mock_sdk_client.disconnect.assert_awaited_once()

    async def test_disconnect_when_not_connected(
        self, nostr_client: NostrClient, mock_sdk_client: MagicMock
    ) -> None:
        await nostr_client.disconnect()

        mock_sdk_client.disconnect.assert_not_awaited()

    async def test_disconnect_failure(
        self, connected_client: NostrClient, mock_sdk_client: MagicMock
    ) -> None:
        mock_sdk_client.disconnect.side_effect = TimeoutError("stuck")

        with pytest.raises(DisconnectError):
            await connected_client.disconnect()
        assert connected_client.connected is False

    def test_pubkey(self, nostr_client: NostrClient, signer: str) -> None:
        assert nostr_client.pubkey == signer

    async def test_operations_require_connection(self, nostr_client: NostrClient) -> None:
        with pytest.raises(NotConnectedError, match="not connected"):
            await nostr_client.post_note("hello")
        with pytest.raises(NotConnectedError):
            await nostr_client.get_replies(ROOT_ID)
        with pytest.raises(NotConnectedError):
            await nostr_client.send_zap("bob@example.com", 21)


# ============================================================================
# Write operations
# ============================================================================


class TestPostNote:
    """Tests for post_note() and publishing failures."""

    async def test_post_note(
        self, connected_client: NostrClient, mock_sdk_client: MagicMock, signer: str
    ) -> None:
        before = _published("1")

        posted = await connected_client.post_note("gm nostr")

        event = _sent_event(mock_sdk_client)
        assert posted == PostedNote(id=event.id().to_hex(), pubkey=signer, content="gm nostr")
        assert event.kind().as_u16() == 1
        assert _published("1") == before + 1

    async def test_post_note_ids_are_event_hashes(
        self, connected_client: NostrClient, mock_sdk_client: MagicMock
    ) -> None:
        first = await connected_client.post_note("gm nostr")
        second = await connected_client.post_note("gn nostr")

        assert re.fullmatch(r"[0-9a-f]{64}", first.id)
        assert re.fullmatch(r"[0-9a-f]{64}", second.id)
        assert first.id != second.id
        assert mock_sdk_client.send_event.await_count == 2

    async def test_no_relay_accepted(
        self, connected_client: NostrClient, mock_sdk_client: MagicMock
    ) -> None:
        mock_sdk_client.send_event.return_value = MagicMock(
            success=[], failed={"wss://relay.example.com": "blocked: spam"}
        )

        with pytest.raises(PublishError, match="blocked: spam"):
            await connected_client.post_note("hello")

    async def test_sdk_error(
        self, connected_client: NostrClient, mock_sdk_client: MagicMock
    ) -> None:
        mock_sdk_client.send_event.side_effect = OSError("broken pipe")

        with pytest.raises(PublishError, match="broken pipe"):
            await connected_client.post_note("hello")


class TestPostComment:
    """Tests for post_comment()."""

    async def test_top_level_comment(
        self, connected_client: NostrClient, mock_sdk_client: MagicMock
    ) -> None:
        comment = await connected_client.post_comment(ROOT_ID, "nice")

        event = _sent_event(mock_sdk_client)
        assert comment.root_id == ROOT_ID
        assert comment.parent_id == ROOT_ID
        assert _tag_vecs(event) == [["e", ROOT_ID, "", "root"], ["e", ROOT_ID, "", "reply"]]
        assert comment.tags == (("e", ROOT_ID, "", "root"), ("e", ROOT_ID, "", "reply"))

    async def test_nested_comment(
        self, connected_client: NostrClient, mock_sdk_client: MagicMock
    ) -> None:
        comment = await connected_client.post_comment(ROOT_ID, "agreed", PARENT_ID)

        assert comment.parent_id == PARENT_ID
        assert _tag_vecs(_sent_event(mock_sdk_client))[1] == ["e", PARENT_ID, "", "reply"]


class TestUpdateProfile:
    """Tests for update_profile_metadata()."""

    async def test_merges_existing_profile(
        self,
        connected_client: NostrClient,
        mock_sdk_client: MagicMock,
        make_note: Any,
        signer: str,
    ) -> None:
        current = make_note(
            pubkey=signer,
            kind=0,
            content=json.dumps({"name": "old", "about": "keep", "lud16": "me@ln.example.com"}),
        )
        with patch(FETCH_NOTES, new=AsyncMock(return_value=[current])):
            profile = await connected_client.update_profile_metadata({"name": "new"})

        event = _sent_event(mock_sdk_client)
        assert event.kind().as_u16() == 0
        assert json.loads(profile.content) == {
            "name": "new",
            "about": "keep",
            "lud16": "me@ln.example.com",
        }
        assert profile.id == event.id().to_hex()

    async def test_uses_newest_profile(
        self, connected_client: NostrClient, make_note: Any, signer: str
    ) -> None:
        old = make_note(pubkey=signer, kind=0, created_at=1, content='{"about": "old"}')
        new = make_note(pubkey=signer, kind=0, created_at=2, content='{"about": "new"}')
        with patch(FETCH_NOTES, new=AsyncMock(return_value=[old, new])):
            profile = await connected_client.update_profile_metadata({"name": "bot"})

        assert json.loads(profile.content) == {"about": "new", "name": "bot"}

    async def test_no_existing_profile(self, connected_client: NostrClient) -> None:
        with patch(FETCH_NOTES, new=AsyncMock(return_value=[])):
            profile = await connected_client.update_profile_metadata({"name": "bot"})

        assert json.loads(profile.content) == {"name": "bot"}

    async def test_fetch_failure_starts_empty(self, connected_client: NostrClient) -> None:
        with patch(FETCH_NOTES, new=AsyncMock(side_effect=TimeoutError())):
            profile = await connected_client.update_profile_metadata({"name": "bot"})

        assert json.loads(profile.content) == {"name": "bot"}

    @pytest.mark.parametrize("content", ["not json", "[1, 2]"])
    async def test_unusable_profile_ignored(
        self, connected_client: NostrClient, make_note: Any, signer: str, content: str
    ) -> None:
        current = make_note(pubkey=signer, kind=0, content=content)
        with patch(FETCH_NOTES, new=AsyncMock(return_value=[current])):
            profile = await connected_client.update_profile_metadata({"about": "hi"})

        assert json.loads(profile.content) == {"about": "hi"}


class TestTimestampAttestation:
    """Tests for create_timestamp_attestation()."""

    async def test_attestation(
        self, connected_client: NostrClient, mock_sdk_client: MagicMock, signer: str
    ) -> None:
        attestation = await connected_client.create_timestamp_attestation(
            ROOT_ID, 1, "b3RzcHJvb2Y="
        )

        event = _sent_event(mock_sdk_client)
        assert event.kind().as_u16() == 1040
        assert event.content() == "b3RzcHJvb2Y="
        assert _tag_vecs(event) == [["e", ROOT_ID, "", ""], ["k", "1"]]
        assert attestation.event_id == ROOT_ID
        assert attestation.event_kind == 1
        assert attestation.pubkey == signer


# ============================================================================
# Zaps
# ============================================================================


@pytest.fixture
def pay_info() -> LnurlPayInfo:
    return LnurlPayInfo(
        callback="https://ln.example.com/callback",
        min_sendable=1_000,
        max_sendable=100_000_000,
        allows_nostr=True,
    )


@pytest.fixture
def recipient_profile(make_note: Any) -> Any:
    return make_note(
        pubkey=RECIPIENT,
        kind=0,
        content=json.dumps({"name": "bob", "lud16": "bob@ln.example.com"}),
    )


class TestSendZap:
    """Tests for send_zap()."""

    async def test_success(
        self,
        connected_client: NostrClient,
        mock_sdk_client: MagicMock,
        pay_info: LnurlPayInfo,
        recipient_profile: Any,
    ) -> None:
        with (
            patch(
                "nostr_mcp.services.client.resolve_nip05", new=AsyncMock(return_value=RECIPIENT)
            ) as resolve,
            patch(FETCH_NOTES, new=AsyncMock(return_value=[recipient_profile])),
            patch(
                "nostr_mcp.services.client.fetch_pay_info", new=AsyncMock(return_value=pay_info)
            ) as fetch_info,
            patch(
                "nostr_mcp.services.client.request_invoice",
                new=AsyncMock(return_value="lnbc210n1invoice"),
            ) as request,
        ):
            receipt = await connected_client.send_zap("bob@example.com", 21)

        assert receipt.recipient_pubkey == RECIPIENT
        assert receipt.amount == 21
        assert receipt.invoice == "lnbc210n1invoice"
        assert resolve.call_args.args == ("bob@example.com",)
        assert fetch_info.call_args.args == ("bob@ln.example.com",)

        info, amount_msats, zap_json = request.call_args.args
        assert info is pay_info
        assert amount_msats == 21_000
        zap_request = json.loads(zap_json)
        assert zap_request["kind"] == 9734
        assert ["p", RECIPIENT] in zap_request["tags"]
        assert ["amount", "21000"] in zap_request["tags"]
        mock_sdk_client.send_event.assert_not_awaited()

    async def test_unresolvable_recipient(self, connected_client: NostrClient) -> None:
        with (
            patch(
                "nostr_mcp.services.client.resolve_nip05",
                new=AsyncMock(side_effect=InvalidRecipientError("Could not find user x@y.z")),
            ),
            pytest.raises(InvalidRecipientError, match="Could not find user"),
        ):
            await connected_client.send_zap("x@y.z", 21)

    async def test_no_profile(self, connected_client: NostrClient) -> None:
        with (
            patch(
                "nostr_mcp.services.client.resolve_nip05", new=AsyncMock(return_value=RECIPIENT)
            ),
            patch(FETCH_NOTES, new=AsyncMock(return_value=[])),
            pytest.raises(ZapError, match="has no profile metadata"),
        ):
            await connected_client.send_zap("bob@example.com", 21)

    async def test_profile_fetch_failure(self, connected_client: NostrClient) -> None:
        with (
            patch(
                "nostr_mcp.services.client.resolve_nip05", new=AsyncMock(return_value=RECIPIENT)
            ),
            patch(FETCH_NOTES, new=AsyncMock(side_effect=OSError("reset"))),
            pytest.raises(ZapError, match="Failed to read recipient profile"),
        ):
            await connected_client.send_zap("bob@example.com", 21)

    async def test_amount_out_of_range(
        self,
        connected_client: NostrClient,
        pay_info: LnurlPayInfo,
        recipient_profile: Any,
    ) -> None:
        with (
            patch(
                "nostr_mcp.services.client.resolve_nip05", new=AsyncMock(return_value=RECIPIENT)
            ),
            patch(FETCH_NOTES, new=AsyncMock(return_value=[recipient_profile])),
            patch(
                "nostr_mcp.services.client.fetch_pay_info", new=AsyncMock(return_value=pay_info)
            ),
            patch("nostr_mcp.services.client.request_invoice", new=AsyncMock()) as request,
            pytest.raises(ZapError, match="outside the allowed range"),
        ):
            await connected_client.send_zap("bob@example.com", 1_000_000)
        request.assert_not_awaited()


# ============================================================================
# Read operations
# ============================================================================


class TestGetReplies:
    """Tests for get_replies()."""

    async def test_replies_newest_first(
        self, connected_client: NostrClient, mock_sdk_client: MagicMock, make_note: Any
    ) -> None:
        older = make_note(created_at=10, tags=(("e", ROOT_ID, "", "root"),))
        newer = make_note(created_at=20, tags=(("e", ROOT_ID),))
        unrelated = make_note(created_at=30, tags=(("e", PARENT_ID),))

        with patch(FETCH_NOTES, new=AsyncMock(return_value=[older, unrelated, newer])) as fetch:
            replies = await connected_client.get_replies(ROOT_ID, limit=10)

        assert replies == [ReplyNote.from_note(newer), ReplyNote.from_note(older)]
        sdk_client, event_filter = fetch.call_args.args
        assert sdk_client is mock_sdk_client
        assert fetch.call_args.kwargs == {"timeout": 10.0}
        assert json.loads(event_filter.as_json()) == {
            "kinds": [1],
            "#e": [ROOT_ID],
            "limit": 500,
        }

    async def test_limit_truncates(self, connected_client: NostrClient, make_note: Any) -> None:
        notes = [make_note(created_at=ts, tags=(("e", ROOT_ID),)) for ts in range(5)]
        with patch(FETCH_NOTES, new=AsyncMock(return_value=notes)):
            replies = await connected_client.get_replies(ROOT_ID, limit=2)

        assert [reply.created_at for reply in replies] == [4, 3]

    async def test_invalid_limit_skips_fetch(self, connected_client: NostrClient) -> None:
        with patch(FETCH_NOTES, new=AsyncMock()) as fetch:
            with pytest.raises(InvalidInputError, match="limit"):
                await connected_client.get_replies(ROOT_ID, limit=501)
        fetch.assert_not_awaited()

    async def test_fetch_failure(self, connected_client: NostrClient) -> None:
        with (
            patch(FETCH_NOTES, new=AsyncMock(side_effect=TimeoutError("slow relay"))),
            pytest.raises(FetchError, match="Failed to fetch events"),
        ):
            await connected_client.get_replies(ROOT_ID)

    async def test_invalid_event_id(self, connected_client: NostrClient) -> None:
        with pytest.raises(InvalidInputError, match="Invalid event id"):
            await connected_client.get_replies("not-an-id")


class TestGetLatestPosts:
    """Tests for get_latest_posts()."""

    async def test_defaults_to_signer(
        self, connected_client: NostrClient, make_note: Any, signer: str
    ) -> None:
        post = make_note(pubkey=signer)
        with patch(FETCH_NOTES, new=AsyncMock(return_value=[post])) as fetch:
            posts = await connected_client.get_latest_posts()

        assert [p.id for p in posts] == [post.id]
        event_filter = fetch.call_args.args[1]
        assert json.loads(event_filter.as_json())["authors"] == [signer]

    async def test_other_author_sorted_and_filtered(
        self, connected_client: NostrClient, make_note: Any
    ) -> None:
        first = make_note(pubkey=AUTHOR, created_at=1)
        second = make_note(pubkey=AUTHOR, created_at=2)
        stray = make_note(pubkey="ee" * 32, created_at=3)
        reaction = make_note(pubkey=AUTHOR, created_at=4, kind=7)

        with patch(FETCH_NOTES, new=AsyncMock(return_value=[first, stray, reaction, second])):
            posts = await connected_client.get_latest_posts(AUTHOR, limit=5)

        assert [p.id for p in posts] == [second.id, first.id]

    async def test_limit(self, connected_client: NostrClient, make_note: Any) -> None:
        notes = [make_note(pubkey=AUTHOR, created_at=ts) for ts in range(4)]
        with patch(FETCH_NOTES, new=AsyncMock(return_value=notes)):
            posts = await connected_client.get_latest_posts(AUTHOR, limit=1)

        assert [p.created_at for p in posts] == [3]

    async def test_invalid_pubkey(self, connected_client: NostrClient) -> None:
        with pytest.raises(InvalidInputError, match="Invalid public key"):
            await connected_client.get_latest_posts("zz" * 32)


class TestGetUnansweredComments:
    """Tests for get_unanswered_comments()."""

    async def test_unanswered(
        self, connected_client: NostrClient, make_note: Any, signer: str
    ) -> None:
        answered = make_note(created_at=1, tags=(("e", ROOT_ID, "", "root"),))
        pending = make_note(created_at=2, tags=(("e", ROOT_ID, "", "root"),))
        ours = make_note(
            pubkey=signer,
            tags=(("e", ROOT_ID, "", "root"), ("e", answered.id, "", "reply")),
        )

        with patch(FETCH_NOTES, new=AsyncMock(return_value=[answered, pending, ours])):
            comments = await connected_client.get_unanswered_comments(ROOT_ID)

        assert [c.id for c in comments] == [pending.id]
        assert comments[0].root_id == ROOT_ID

    async def test_only_own_comments(
        self, connected_client: NostrClient, make_note: Any, signer: str
    ) -> None:
        ours = make_note(pubkey=signer, tags=(("e", ROOT_ID, "", "root"),))
        with patch(FETCH_NOTES, new=AsyncMock(return_value=[ours])):
            assert await connected_client.get_unanswered_comments(ROOT_ID) == []


class TestGetUnrepliedMentions:
    """Tests for get_unreplied_mentions()."""

    async def test_unreplied(
        self, connected_client: NostrClient, make_note: Any, signer: str
    ) -> None:
        replied = make_note(created_at=1, tags=(("p", signer),))
        pending = make_note(created_at=2, tags=(("p", signer),))
        own = make_note(pubkey=signer, tags=(("p", signer),))
        reply = make_note(pubkey=signer, tags=(("e", replied.id, "", "reply"),))

        fetch = AsyncMock(side_effect=[[replied, pending, own], [reply]])
        with patch(FETCH_NOTES, new=fetch):
            mentions = await connected_client.get_unreplied_mentions()

        assert [m.id for m in mentions] == [pending.id]
        mention_filter = json.loads(fetch.call_args_list[0].args[1].as_json())
        assert mention_filter["#p"] == [signer]
        reply_filter = json.loads(fetch.call_args_list[1].args[1].as_json())
        assert reply_filter["authors"] == [signer]
        assert sorted(reply_filter["#e"]) == sorted([replied.id, pending.id])

    async def test_no_mentions_single_query(
        self, connected_client: NostrClient, make_note: Any, signer: str
    ) -> None:
        own = make_note(pubkey=signer, tags=(("p", signer),))
        fetch = AsyncMock(return_value=[own])
        with patch(FETCH_NOTES, new=fetch):
            assert await connected_client.get_unreplied_mentions() == []
        fetch.assert_awaited_once()
