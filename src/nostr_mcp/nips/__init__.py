"""Nostr Implementation Possibilities -- protocol-specific build, match and resolve logic.

The NIPs layer sits in the middle of the diamond DAG, depending on
[nostr_mcp.models][nostr_mcp.models], [nostr_mcp.core][nostr_mcp.core]
and [nostr_mcp.utils][nostr_mcp.utils].

Unlike the services layer, NIP functions raise: matching functions raise
[InvalidInputError][nostr_mcp.core.exceptions.InvalidInputError] for bad
limits, NIP-05 lookups raise
[InvalidRecipientError][nostr_mcp.core.exceptions.InvalidRecipientError],
and LNURL lookups raise [ZapError][nostr_mcp.core.exceptions.ZapError].

Attributes:
    threads: NIP-10 reply matching (replies, unanswered comments, unreplied
        mentions). Pure, no I/O.
    event_builders: ``EventBuilder`` factories for kinds 0, 1, 1040 and 9734.
    nip05: ``name@domain`` to public key resolution over HTTPS.
    nip57: LNURL-pay lookup and zap invoice request.
"""

from .event_builders import (
    build_comment,
    build_profile_event,
    build_text_note,
    build_timestamp_attestation,
    build_zap_request,
    merge_profile,
)
from .nip05 import parse_address, resolve_nip05
from .nip57 import LnurlPayInfo, fetch_pay_info, lightning_address, lnurl_pay_url, request_invoice
from .threads import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    answered_ids,
    filter_replies,
    find_unanswered_comments,
    find_unreplied_mentions,
    validate_limit,
)


__all__ = [
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "LnurlPayInfo",
    "answered_ids",
    "build_comment",
    "build_profile_event",
    "build_text_note",
    "build_timestamp_attestation",
    "build_zap_request",
    "fetch_pay_info",
    "filter_replies",
    "find_unanswered_comments",
    "find_unreplied_mentions",
    "lightning_address",
    "lnurl_pay_url",
    "merge_profile",
    "parse_address",
    "request_invoice",
    "resolve_nip05",
    "validate_limit",
]
