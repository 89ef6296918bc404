"""MCP server configuration model and layered loading.

Configuration is assembled from three sources, lowest to highest
precedence:

1. A YAML file (``--config``), parsed with
   [load_yaml()][nostr_mcp.core.yaml.load_yaml].
2. Environment variables: ``NOSTR_RELAYS`` (comma-separated), ``MODE``,
   ``PORT``. The private key is always read from the environment variable
   named by ``keys_env``.
3. CLI flag overrides passed by [__main__][nostr_mcp.__main__].

See Also:
    [NostrMcpServer][nostr_mcp.services.server.NostrMcpServer]: Consumes
        this configuration.
    [KeysConfig][nostr_mcp.utils.keys.KeysConfig]: Mixin providing
        Nostr key management fields.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

from nostr_sdk import NostrSdkError
from pydantic import Field, ValidationError, field_validator

from nostr_mcp.core.exceptions import ConfigurationError
from nostr_mcp.core.metrics import MetricsConfig
from nostr_mcp.core.yaml import load_yaml
from nostr_mcp.models.constants import ServerMode
from nostr_mcp.utils.keys import ENV_PRIVATE_KEY, KeysConfig
from nostr_mcp.utils.protocol import validate_relay_url


if TYPE_CHECKING:
    from collections.abc import Mapping


ENV_RELAYS = "NOSTR_RELAYS"
ENV_MODE = "MODE"
ENV_PORT = "PORT"


class ServerConfig(KeysConfig):
    """Configuration for the Nostr MCP server.

    Inherits key management from
    [KeysConfig][nostr_mcp.utils.keys.KeysConfig] for Nostr signing.

    Attributes:
        relays: Relay URLs to publish to and query.
        mode: MCP transport (``stdio`` or ``sse``).
        host: Bind address of the SSE transport.
        port: Port of the SSE transport.
        connect_timeout: Seconds to wait for relay connections at startup.
        fetch_timeout: Seconds to wait for relay queries.
        fetch_limit: Maximum number of events requested per relay query.
        http_timeout: Seconds to wait for NIP-05 and LNURL requests.
        shutdown_timeout: Seconds allowed for a graceful shutdown.
        metrics: Prometheus endpoint settings.
    """

    relays: list[str] = Field(min_length=1)
    mode: ServerMode = Field(default=ServerMode.STDIO)
    host: str = Field(default="127.0.0.1", min_length=1, description="SSE bind address")
    port: int = Field(default=3000, ge=1, le=65535, description="SSE port")
    connect_timeout: float = Field(default=10.0, ge=0.1, le=300.0)
    fetch_timeout: float = Field(default=10.0, ge=0.1, le=300.0)
    fetch_limit: int = Field(default=500, ge=1, le=5000)
    http_timeout: float = Field(default=10.0, ge=0.1, le=120.0)
    shutdown_timeout: float = Field(default=10.0, ge=0.1, le=120.0)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @field_validator("relays")
    @classmethod
    def validate_relay_urls(cls, v: list[str]) -> list[str]:
        """Validate that all relay URLs are WebSocket URLs, dropping duplicates."""
        seen: list[str] = []
        for url in v:
            try:
                normalized = validate_relay_url(url)
            except ValueError as e:
                raise ValueError(f"Invalid relay URL '{url}': {e}") from e
            if normalized not in seen:
                seen.append(normalized)
        return seen


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect the config values provided by environment variables."""
    overrides: dict[str, Any] = {}
    relays = environ.get(ENV_RELAYS, "")
    if relays.strip():
        overrides["relays"] = [url.strip() for url in relays.split(",") if url.strip()]
    if environ.get(ENV_MODE):
        overrides["mode"] = environ[ENV_MODE].strip().lower()
    if environ.get(ENV_PORT):
        overrides["port"] = environ[ENV_PORT].strip()
    return overrides


def load_config(
    path: str | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> ServerConfig:
    """Build a [ServerConfig][nostr_mcp.services.configs.ServerConfig] from all sources.

    Args:
        path: Optional YAML file.
        overrides: CLI values; ``None`` entries are ignored.
        environ: Environment mapping (defaults to ``os.environ``).

    Raises:
        ConfigurationError: If the file cannot be read, the key is missing
            or malformed, or any value fails validation.
    """
    environ = os.environ if environ is None else environ

    data: dict[str, Any] = {}
    if path is not None:
        try:
            data.update(load_yaml(path))
        except FileNotFoundError as e:
            raise ConfigurationError(f"Config file not found: {path}") from e

    data.update(_env_overrides(environ))
    if overrides:
        data.update({key: value for key, value in overrides.items() if value is not None})

    if not data.get("relays"):
        raise ConfigurationError(
            f"No relays configured: set {ENV_RELAYS} or 'relays' in the config file"
        )

    try:
        return ServerConfig.model_validate(data, context={"environ": environ})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
    except (ValueError, NostrSdkError) as e:
        keys_env = data.get("keys_env", ENV_PRIVATE_KEY)
        raise ConfigurationError(f"Invalid private key in {keys_env}: {e}") from e
