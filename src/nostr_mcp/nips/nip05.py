"""
NIP-05 internet identifier resolution.

Resolves ``name@domain`` addresses to public keys through the
[NIP-05](https://github.com/nostr-protocol/nips/blob/master/05.md)
well-known document ``https://<domain>/.well-known/nostr.json?name=<name>``.

Note:
    A bare ``domain`` (no ``@``) is treated as ``_@domain``, the root
    identifier of that domain. Every failure, whether malformed input, an
    unreachable server, or a document missing the name, is reported as
    [InvalidRecipientError][nostr_mcp.core.exceptions.InvalidRecipientError]:
    from the caller's point of view the recipient could not be identified.

See Also:
    [NostrClient.send_zap][nostr_mcp.services.client.NostrClient.send_zap]:
        The only caller.
"""

from __future__ import annotations

import logging
import re

import aiohttp

from nostr_mcp.core.exceptions import InvalidRecipientError
from nostr_mcp.models._validation import is_hex_id
from nostr_mcp.utils.http import DEFAULT_MAX_JSON_SIZE, fetch_json


logger = logging.getLogger("nostr_mcp.nips.nip05")

ROOT_NAME = "_"

_NAME_RE = re.compile(r"^[a-z0-9._-]+$")
_DOMAIN_RE = re.compile(r"^(?=.{1,253}$)([a-z0-9-]+\.)+[a-z0-9-]+$")


def parse_address(address: str) -> tuple[str, str]:
    """Split a NIP-05 address into ``(name, domain)``, both lowercased.

    Raises:
        InvalidRecipientError: If the address is not ``[name@]domain``.
    """
    value = address.strip().lower()
    name, sep, domain = value.rpartition("@")
    if not sep:
        name = ROOT_NAME
    if not name or not _NAME_RE.match(name):
        raise InvalidRecipientError(f"Invalid NIP-05 address: {address!r}")
    if not _DOMAIN_RE.match(domain):
        raise InvalidRecipientError(f"Invalid NIP-05 domain: {address!r}")
    return name, domain


def well_known_url(domain: str) -> str:
    """Return the ``nostr.json`` URL for *domain*."""
    return f"https://{domain}/.well-known/nostr.json"


async def resolve_nip05(
    address: str,
    *,
    timeout: float = 10.0,  # noqa: ASYNC109
    max_size: int = DEFAULT_MAX_JSON_SIZE,
) -> str:
    """Resolve *address* to a lowercase hex public key.

    Args:
        address: ``name@domain`` or a bare ``domain``.
        timeout: HTTP timeout in seconds.
        max_size: Maximum size of the ``nostr.json`` document.

    Returns:
        The 64-character hex public key registered for the name.

    Raises:
        InvalidRecipientError: If the address is malformed, the document
            cannot be fetched, or it has no valid key for the name.
    """
    name, domain = parse_address(address)
    url = well_known_url(domain)

    try:
        document = await fetch_json(url, params={"name": name}, timeout=timeout, max_size=max_size)
    except (aiohttp.ClientError, TimeoutError, ValueError) as e:
        logger.warning("nip05_fetch_failed address=%s error=%s", address, e)
        raise InvalidRecipientError(f"Could not find user {address}") from e

    names = document.get("names") if isinstance(document, dict) else None
    pubkey = names.get(name) if isinstance(names, dict) else None
    if not isinstance(pubkey, str) or not is_hex_id(pubkey):
        logger.warning("nip05_name_missing address=%s", address)
        raise InvalidRecipientError(f"Could not find user {address}")

    return pubkey.lower()
