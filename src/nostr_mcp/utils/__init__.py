"""Utility layer: key loading, bounded HTTP, and ``nostr_sdk`` client helpers.

See Also:
    [KeysConfig][nostr_mcp.utils.keys.KeysConfig]: Keys loaded from the environment.
    [create_client()][nostr_mcp.utils.protocol.create_client]: Client factory.
    [fetch_json()][nostr_mcp.utils.http.fetch_json]: Bounded JSON GET.
"""

from .http import fetch_json, read_bounded_json
from .keys import ENV_PRIVATE_KEY, KeysConfig, load_keys_from_env
from .protocol import create_client, fetch_notes, validate_relay_url


__all__ = [
    "ENV_PRIVATE_KEY",
    "KeysConfig",
    "create_client",
    "fetch_json",
    "fetch_notes",
    "load_keys_from_env",
    "read_bounded_json",
    "validate_relay_url",
]
