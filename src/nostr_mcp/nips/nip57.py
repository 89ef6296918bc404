"""
NIP-57 Lightning zap hand-off over LNURL-pay.

Implements the client side of
[NIP-57](https://github.com/nostr-protocol/nips/blob/master/57.md) up to
the point where a bolt11 invoice is obtained:

1. Read the recipient's ``lud16`` lightning address from its kind 0 profile.
2. Fetch the LNURL-pay document from
   ``https://<domain>/.well-known/lnurlp/<user>``.
3. Check the amount against ``minSendable`` / ``maxSendable``.
4. Send the signed kind 9734 zap request to the ``callback`` with
   ``amount`` and ``nostr`` query parameters and read the invoice from
   ``pr``.

Note:
    Paying the invoice is left to the operator's wallet. Every failure in
    this module is reported as
    [ZapError][nostr_mcp.core.exceptions.ZapError].

See Also:
    [build_zap_request()][nostr_mcp.nips.event_builders.build_zap_request]:
        Builds the kind 9734 event sent to the callback.
    [NostrClient.send_zap][nostr_mcp.services.client.NostrClient.send_zap]:
        Orchestrates the full flow.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from nostr_mcp.core.exceptions import ZapError
from nostr_mcp.models._validation import is_hex_id
from nostr_mcp.utils.http import DEFAULT_MAX_JSON_SIZE, fetch_json


logger = logging.getLogger("nostr_mcp.nips.nip57")

MSATS_PER_SAT = 1000

_PAY_REQUEST_TAG = "payRequest"
_STATUS_ERROR = "ERROR"


@dataclass(frozen=True, slots=True)
class LnurlPayInfo:
    """The subset of an LNURL-pay document needed to request a zap invoice."""

    callback: str
    min_sendable: int
    max_sendable: int
    allows_nostr: bool = False
    nostr_pubkey: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> LnurlPayInfo:
        """Parse an LNURL-pay response.

        Raises:
            ZapError: If the document is an error response or lacks the
                callback or sendable bounds.
        """
        if not isinstance(data, dict):
            raise ZapError(f"LNURL response must be an object, got {type(data).__name__}")
        if data.get("status") == _STATUS_ERROR:
            raise ZapError(f"LNURL service error: {data.get('reason', 'unreported reason')}")
        if data.get("tag") not in (None, _PAY_REQUEST_TAG):
            raise ZapError(f"Not an LNURL-pay endpoint: tag={data.get('tag')!r}")

        callback = data.get("callback")
        min_sendable = data.get("minSendable")
        max_sendable = data.get("maxSendable")
        if not isinstance(callback, str) or not callback.startswith(("https://", "http://")):
            raise ZapError("LNURL response has no valid callback")
        if not isinstance(min_sendable, int) or not isinstance(max_sendable, int):
            raise ZapError("LNURL response has no sendable bounds")

        nostr_pubkey = data.get("nostrPubkey")
        return cls(
            callback=callback,
            min_sendable=min_sendable,
            max_sendable=max_sendable,
            allows_nostr=data.get("allowsNostr") is True,
            nostr_pubkey=nostr_pubkey.lower() if is_hex_id(nostr_pubkey) else None,
        )

    def check_amount(self, amount_msats: int) -> None:
        """Raise ZapError if *amount_msats* is outside the sendable range."""
        if not self.min_sendable <= amount_msats <= self.max_sendable:
            raise ZapError(
                f"Amount {amount_msats // MSATS_PER_SAT} sats is outside the allowed range "
                f"{self.min_sendable // MSATS_PER_SAT}..{self.max_sendable // MSATS_PER_SAT} sats"
            )


def lightning_address(profile_content: str) -> str:
    """Extract the ``lud16`` lightning address from kind 0 content.

    Raises:
        ZapError: If the content is not a JSON object or has no ``lud16``.
    """
    try:
        profile = json.loads(profile_content)
    except ValueError as e:
        raise ZapError("Recipient profile is not valid JSON") from e
    lud16 = profile.get("lud16") if isinstance(profile, dict) else None
    if not isinstance(lud16, str) or "@" not in lud16:
        raise ZapError("Recipient has no lightning address (lud16)")
    return lud16.strip()


def lnurl_pay_url(lud16: str) -> str:
    """Return the LNURL-pay well-known URL for a ``user@domain`` address.

    Raises:
        ZapError: If *lud16* is not ``user@domain``.
    """
    user, sep, domain = lud16.strip().partition("@")
    if not sep or not user or not domain or "@" in domain:
        raise ZapError(f"Invalid lightning address: {lud16!r}")
    return f"https://{domain.lower()}/.well-known/lnurlp/{user}"


async def fetch_pay_info(
    lud16: str,
    *,
    timeout: float = 10.0,  # noqa: ASYNC109
    max_size: int = DEFAULT_MAX_JSON_SIZE,
) -> LnurlPayInfo:
    """Fetch and parse the LNURL-pay document for *lud16*.

    Raises:
        ZapError: On HTTP failure or an unusable document.
    """
    url = lnurl_pay_url(lud16)
    try:
        data = await fetch_json(url, timeout=timeout, max_size=max_size)
    except (aiohttp.ClientError, TimeoutError, ValueError) as e:
        raise ZapError(f"Failed to fetch LNURL pay info for {lud16}: {e}") from e
    return LnurlPayInfo.from_dict(data)


async def request_invoice(
    info: LnurlPayInfo,
    amount_msats: int,
    zap_request_json: str,
    *,
    timeout: float = 10.0,  # noqa: ASYNC109
    max_size: int = DEFAULT_MAX_JSON_SIZE,
) -> str:
    """Send a signed zap request to the LNURL callback and return the invoice.

    Args:
        info: Parsed LNURL-pay document.
        amount_msats: Amount in millisatoshis; must be within the sendable range.
        zap_request_json: The signed kind 9734 event serialized as JSON.
        timeout: HTTP timeout in seconds.
        max_size: Maximum response size in bytes.

    Returns:
        The bolt11 payment request.

    Raises:
        ZapError: If the service does not support Nostr zaps, the amount is
            out of range, or no invoice is returned.
    """
    if not info.allows_nostr:
        raise ZapError("Recipient's LNURL service does not support Nostr zaps")
    info.check_amount(amount_msats)

    # aiohttp appends params to any query the callback already carries
    params = {"amount": str(amount_msats), "nostr": zap_request_json}
    try:
        data = await fetch_json(info.callback, params=params, timeout=timeout, max_size=max_size)
    except (aiohttp.ClientError, TimeoutError, ValueError) as e:
        raise ZapError(f"Invoice request failed: {e}") from e

    if not isinstance(data, dict):
        raise ZapError("Invoice response must be an object")
    if data.get("status") == _STATUS_ERROR:
        raise ZapError(f"Invoice request error: {data.get('reason', 'unreported reason')}")
    invoice = data.get("pr")
    if not isinstance(invoice, str) or not invoice:
        raise ZapError("Invoice response has no payment request")

    logger.debug("zap_invoice_received callback=%s amount_msats=%s", info.callback, amount_msats)
    return invoice
