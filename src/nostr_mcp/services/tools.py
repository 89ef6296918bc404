"""MCP tool catalog: argument models, client calls, and response texts.

Each tool is a [ToolSpec][nostr_mcp.services.tools.ToolSpec] pairing a
pydantic argument model (whose JSON schema is advertised to the MCP host)
with a coroutine that performs exactly one
[NostrClient][nostr_mcp.services.client.NostrClient] call and renders the
result as human-readable text.

Argument models use the camelCase field names of the wire format. Event
ids and public keys are 64-character hex strings in any case and are
normalized to lowercase; unknown fields are rejected.

See Also:
    [ToolDispatcher][nostr_mcp.services.dispatch.ToolDispatcher]:
        Validates arguments against these models and runs the handlers.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints

from nostr_mcp.models.constants import EVENT_KIND_MAX, HEX_ID_PATTERN
from nostr_mcp.models.results import to_dict
from nostr_mcp.nips.threads import DEFAULT_LIMIT, MAX_LIMIT


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from nostr_mcp.services.client import NostrClient


HexId = Annotated[
    str,
    StringConstraints(pattern=HEX_ID_PATTERN),
    AfterValidator(str.lower),
]
Limit = Annotated[int, Field(ge=1, le=MAX_LIMIT, strict=True)]


# =============================================================================
# Argument models
# =============================================================================


class ToolArguments(BaseModel):
    """Base for tool argument models: frozen, camelCase aliases, no extras."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class PostNoteArgs(ToolArguments):
    content: str = Field(min_length=1, description="The content of your note")


class PostCommentArgs(ToolArguments):
    root_id: HexId = Field(alias="rootId", description="Hex id of the note being replied to")
    parent_id: HexId | None = Field(
        default=None,
        alias="parentId",
        description="Hex id of the comment being replied to (defaults to rootId)",
    )
    content: str = Field(min_length=1, description="The content of your comment")


class UpdateProfileArgs(ToolArguments):
    name: str | None = Field(default=None, description="Profile name")
    about: str | None = Field(default=None, description="Short bio")
    picture: str | None = Field(default=None, description="Avatar URL")
    banner: str | None = Field(default=None, description="Banner image URL")
    website: str | None = Field(default=None, description="Website URL")
    nip05: str | None = Field(default=None, description="NIP-05 identifier (name@domain)")
    lud16: str | None = Field(default=None, description="Lightning address (name@domain)")
    display_name: str | None = Field(default=None, description="Display name")

    def profile_fields(self) -> dict[str, str]:
        """Return only the fields the caller provided, in declaration order."""
        return self.model_dump(exclude_none=True)


class SendZapArgs(ToolArguments):
    nip05_address: str = Field(
        alias="nip05Address",
        min_length=3,
        description="NIP-05 address of the recipient (name@domain)",
    )
    amount: int = Field(ge=1, strict=True, description="Amount to zap in sats")


class GetRepliesArgs(ToolArguments):
    event_id: HexId = Field(alias="eventId", description="Hex id of the note")
    limit: Limit = Field(default=DEFAULT_LIMIT, description="Maximum number of replies")


class GetUnansweredCommentsArgs(ToolArguments):
    event_id: HexId = Field(alias="eventId", description="Hex id of your note")
    limit: Limit = Field(default=DEFAULT_LIMIT, description="Maximum number of comments")


class GetLatestPostsArgs(ToolArguments):
    author_pubkey: HexId | None = Field(
        default=None,
        alias="authorPubkey",
        description="Hex public key of the author (defaults to your own)",
    )
    limit: Limit = Field(default=1, description="Maximum number of posts")


class GetUnrepliedMentionsArgs(ToolArguments):
    limit: Limit = Field(default=DEFAULT_LIMIT, description="Maximum number of mentions")


class CreateTimestampAttestationArgs(ToolArguments):
    event_id: HexId = Field(alias="eventId", description="Hex id of the attested event")
    event_kind: int = Field(
        alias="eventKind",
        ge=0,
        le=EVENT_KIND_MAX,
        strict=True,
        description="Kind of the attested event",
    )
    ots_proof: str = Field(
        alias="otsProof",
        min_length=1,
        description="Base64-encoded OpenTimestamps proof",
    )


# =============================================================================
# Response texts
# =============================================================================


def _records_text(header: str, empty: str, records: Sequence[Any]) -> str:
    if not records:
        return empty
    payload = json.dumps([to_dict(record) for record in records], indent=2, ensure_ascii=False)
    return f"{header}\n{payload}"


async def _post_note(client: NostrClient, args: PostNoteArgs) -> str:
    note = await client.post_note(args.content)
    return f"Note posted successfully!\nID: {note.id}\nPublic Key: {note.pubkey}"


async def _post_comment(client: NostrClient, args: PostCommentArgs) -> str:
    comment = await client.post_comment(args.root_id, args.content, args.parent_id)
    return (
        "Comment posted successfully!\n"
        f"ID: {comment.id}\n"
        f"Public Key: {comment.pubkey}\n"
        f"Root: {comment.root_id}\n"
        f"Parent: {comment.parent_id}"
    )


async def _update_profile(client: NostrClient, args: UpdateProfileArgs) -> str:
    profile = await client.update_profile_metadata(args.profile_fields())
    return f"Profile metadata updated!\nID: {profile.id}\nPublic Key: {profile.pubkey}"


async def _send_zap(client: NostrClient, args: SendZapArgs) -> str:
    zap = await client.send_zap(args.nip05_address, args.amount)
    return (
        "Zap request sent successfully!\n"
        f"Recipient: {zap.recipient_pubkey}\n"
        f"Amount: {zap.amount} sats\n"
        f"Invoice: {zap.invoice}"
    )


async def _get_replies(client: NostrClient, args: GetRepliesArgs) -> str:
    replies = await client.get_replies(args.event_id, args.limit)
    return _records_text(
        f"Found {len(replies)} replies to {args.event_id}:",
        f"No replies found for {args.event_id}",
        replies,
    )


async def _get_unanswered_comments(client: NostrClient, args: GetUnansweredCommentsArgs) -> str:
    comments = await client.get_unanswered_comments(args.event_id, args.limit)
    return _records_text(
        f"Found {len(comments)} unanswered comments on {args.event_id}:",
        f"No unanswered comments on {args.event_id}",
        comments,
    )


async def _get_latest_posts(client: NostrClient, args: GetLatestPostsArgs) -> str:
    author = args.author_pubkey or client.pubkey
    posts = await client.get_latest_posts(author, args.limit)
    return _records_text(
        f"Found {len(posts)} posts by {author}:",
        f"No posts found for {author}",
        posts,
    )


async def _get_unreplied_mentions(client: NostrClient, args: GetUnrepliedMentionsArgs) -> str:
    mentions = await client.get_unreplied_mentions(args.limit)
    return _records_text(
        f"Found {len(mentions)} unreplied mentions:",
        "No unreplied mentions",
        mentions,
    )


async def _create_timestamp_attestation(
    client: NostrClient, args: CreateTimestampAttestationArgs
) -> str:
    attestation = await client.create_timestamp_attestation(
        args.event_id, args.event_kind, args.ots_proof
    )
    return (
        "Timestamp attestation created!\n"
        f"ID: {attestation.id}\n"
        f"Public Key: {attestation.pubkey}\n"
        f"Event: {attestation.event_id}\n"
        f"Kind: {attestation.event_kind}"
    )


# =============================================================================
# Catalog
# =============================================================================


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """One entry of the tool catalog.

    Attributes:
        name: Tool name advertised to the host.
        description: Human-readable description.
        arguments: Pydantic model validating the call arguments.
        handler: Coroutine performing the client call and rendering text.
    """

    name: str
    description: str
    arguments: type[ToolArguments]
    handler: Callable[[NostrClient, Any], Awaitable[str]]

    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the arguments, using the camelCase wire names."""
        schema = self.arguments.model_json_schema(by_alias=True)
        schema.pop("title", None)
        return schema


TOOLS: tuple[ToolSpec, ...] = (
    ToolSpec("post_note", "Post a new note to Nostr", PostNoteArgs, _post_note),
    ToolSpec(
        "post_comment",
        "Reply to a note on Nostr, optionally nested under another comment",
        PostCommentArgs,
        _post_comment,
    ),
    ToolSpec(
        "update_profile",
        "Update your Nostr profile metadata; fields not given are kept",
        UpdateProfileArgs,
        _update_profile,
    ),
    ToolSpec(
        "send_zap",
        "Send a Lightning zap to a Nostr user identified by a NIP-05 address",
        SendZapArgs,
        _send_zap,
    ),
    ToolSpec(
        "get_replies",
        "Get replies to a note, newest first",
        GetRepliesArgs,
        _get_replies,
    ),
    ToolSpec(
        "get_unanswered_comments",
        "Get comments on one of your notes that you have not replied to yet",
        GetUnansweredCommentsArgs,
        _get_unanswered_comments,
    ),
    ToolSpec(
        "get_latest_posts",
        "Get the latest notes of a user (defaults to your own)",
        GetLatestPostsArgs,
        _get_latest_posts,
    ),
    ToolSpec(
        "get_unreplied_mentions",
        "Get notes mentioning you that you have not replied to yet",
        GetUnrepliedMentionsArgs,
        _get_unreplied_mentions,
    ),
    ToolSpec(
        "create_timestamp_attestation",
        "Publish a NIP-03 OpenTimestamps attestation for an event",
        CreateTimestampAttestationArgs,
        _create_timestamp_attestation,
    ),
)
