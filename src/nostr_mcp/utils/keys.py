"""Loading the server's signing key from the environment.

The private key is accepted as ``nsec1...`` (bech32) or 64-char hex and is
only ever read from an environment variable (or a ``.env`` file loaded into
it), never from the YAML config.

Note:
    [KeysConfig][nostr_mcp.utils.keys.KeysConfig] resolves the key while the
    config is validated, so a missing or malformed key stops the server at
    startup rather than on the first tool call.

Examples:
    ```python
    keys = load_keys_from_env("NOSTR_NSEC_KEY", {"NOSTR_NSEC_KEY": "nsec1..."})
    keys.public_key().to_hex()
    ```
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

from nostr_sdk import Keys
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, model_validator


if TYPE_CHECKING:
    from collections.abc import Mapping


ENV_PRIVATE_KEY = "NOSTR_NSEC_KEY"  # pragma: allowlist secret


def load_keys_from_env(env_var: str, environ: Mapping[str, str] | None = None) -> Keys:
    """Parse the private key stored in *env_var*.

    Args:
        env_var: Variable holding the key.
        environ: Mapping to read from instead of ``os.environ``.

    Raises:
        ValueError: If the variable is unset or blank.
        nostr_sdk.NostrSdkError: If the value is not a valid secret key.
    """
    value = (os.environ if environ is None else environ).get(env_var, "").strip()
    if not value:
        raise ValueError(f"{env_var} is not set (expected nsec1... or a 64-char hex secret key)")
    return Keys.parse(value)


class KeysConfig(BaseModel):
    """Config mixin holding the signing ``Keys``.

    ``keys`` is filled in during validation from the variable named by
    ``keys_env``, read from the ``environ`` entry of the validation context
    when one is given and from ``os.environ`` otherwise. Passing ``keys``
    directly skips the lookup.

    Warning:
        ``keys`` is a live private key; never dump or log this model.
    """

    # nostr_sdk.Keys is an FFI object pydantic cannot introspect
    model_config = ConfigDict(arbitrary_types_allowed=True)

    keys_env: str = Field(default=ENV_PRIVATE_KEY, min_length=1)
    keys: Keys

    @model_validator(mode="before")
    @classmethod
    def _resolve_keys(cls, data: Any, info: ValidationInfo) -> Any:
        if not isinstance(data, dict) or "keys" in data:
            return data
        environ = (info.context or {}).get("environ")
        env_var = data.get("keys_env", ENV_PRIVATE_KEY)
        return {**data, "keys": load_keys_from_env(env_var, environ)}

    @property
    def pubkey(self) -> str:
        """Signer public key as lowercase hex."""
        return self.keys.public_key().to_hex()
