"""Checks run by ``__post_init__`` of the frozen models.

Also used by ``nips`` to recognise hex identifiers in untrusted JSON.
"""

from __future__ import annotations

from typing import Any

from .constants import HEX_ID_RE


def validate_instance(value: Any, expected: type, name: str) -> None:
    if not isinstance(value, expected):
        raise TypeError(f"{name} must be {expected.__name__}, got {type(value).__name__}")


def validate_bounded_int(value: Any, name: str, maximum: int | None = None) -> None:
    """Require an ``int`` (not ``bool``) in ``0..maximum``.

    Raises:
        TypeError: If *value* is not an int.
        ValueError: If *value* is negative or above *maximum*.
    """
    if isinstance(value, bool):
        raise TypeError(f"{name} must be int, got bool")
    validate_instance(value, int, name)
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    if maximum is not None and value > maximum:
        raise ValueError(f"{name} must be <= {maximum}, got {value}")


def validate_hex_id(value: Any, name: str) -> None:
    """Raise if *value* is not a 64-character lowercase hex string."""
    validate_instance(value, str, name)
    if not HEX_ID_RE.fullmatch(value) or value != value.lower():
        raise ValueError(f"{name} must be 64 lowercase hex characters, got {value!r}")


def is_hex_id(value: Any) -> bool:
    """Return True if *value* is a 64-character hex string (any case)."""
    return isinstance(value, str) and HEX_ID_RE.fullmatch(value) is not None


def freeze_tags(tags: Any, name: str) -> tuple[tuple[str, ...], ...]:
    """Convert a sequence of string sequences into nested tuples.

    Raises:
        TypeError: If *tags* is not a list/tuple of lists/tuples of ``str``.
    """
    if not isinstance(tags, list | tuple):
        raise TypeError(f"{name} must be a sequence of tags, got {type(tags).__name__}")
    frozen: list[tuple[str, ...]] = []
    for tag in tags:
        if not isinstance(tag, list | tuple):
            raise TypeError(f"{name} entries must be sequences, got {type(tag).__name__}")
        for value in tag:
            validate_instance(value, str, f"{name} value")
        frozen.append(tuple(tag))
    return tuple(frozen)
