"""
Pytest configuration and shared fixtures for nostr-mcp tests.

Provides:
- A valid signing key in the environment for every test
- A minimal ServerConfig and a NostrClient bound to a mocked SDK client
- A factory for Note snapshots
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from nostr_mcp.models.note import Note
from nostr_mcp.services.client import NostrClient
from nostr_mcp.services.configs import ServerConfig


VALID_HEX_KEY = (
    "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"  # pragma: allowlist secret
)
RELAY_URL = "wss://relay.example.com"

ROOT_ID = "aa" * 32
OTHER_PUBKEY = "bb" * 32


# ============================================================================
# Environment
# ============================================================================


@pytest.fixture(autouse=True)
def _set_private_key(monkeypatch: pytest.MonkeyPatch) -> None:
    """Provide a signing key and clear the config environment variables."""
    monkeypatch.setenv("NOSTR_NSEC_KEY", VALID_HEX_KEY)
    for name in ("NOSTR_RELAYS", "MODE", "PORT", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


# ============================================================================
# Configuration
# ============================================================================


@pytest.fixture
def config() -> ServerConfig:
    """Minimal server config with a single relay."""
    return ServerConfig(relays=[RELAY_URL])


@pytest.fixture
def signer(config: ServerConfig) -> str:
    """Hex public key derived from VALID_HEX_KEY."""
    return config.pubkey


# ============================================================================
# Notes
# ============================================================================


@pytest.fixture
def make_note() -> Any:
    """Factory building Note snapshots with sequential ids."""
    counter = iter(range(1, 10_000))

    def _make(
        *,
        pubkey: str = OTHER_PUBKEY,
        created_at: int = 1_700_000_000,
        content: str = "hello",
        kind: int = 1,
        tags: tuple[tuple[str, ...], ...] = (),
        note_id: str | None = None,
    ) -> Note:
        return Note(
            id=note_id or f"{next(counter):064x}",
            pubkey=pubkey,
            kind=kind,
            created_at=created_at,
            content=content,
            tags=tags,
        )

    return _make


# ============================================================================
# SDK client
# ============================================================================


@pytest.fixture
def mock_sdk_client() -> MagicMock:
    """Mocked ``nostr_sdk.Client`` where every relay accepts everything."""
    client = MagicMock()
    client.add_relay = AsyncMock()
    client.try_connect = AsyncMock(return_value=MagicMock(success=[RELAY_URL], failed={}))
    client.send_event = AsyncMock(return_value=MagicMock(success=[RELAY_URL], failed={}))
    client.fetch_events = AsyncMock(return_value=MagicMock(to_vec=MagicMock(return_value=[])))
    client.disconnect = AsyncMock()
    return client


@pytest.fixture
def nostr_client(config: ServerConfig, mock_sdk_client: MagicMock) -> NostrClient:
    """NostrClient bound to the mocked SDK client, not yet connected."""
    return NostrClient(config, client=mock_sdk_client)


@pytest.fixture
async def connected_client(nostr_client: NostrClient) -> NostrClient:
    """NostrClient after a successful ``connect()``."""
    await nostr_client.connect()
    return nostr_client
