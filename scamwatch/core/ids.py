"""Identifier utilities for analysis results."""

from __future__ import annotations

import hashlib

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    chars: list[str] = []
    current = value
    while current:
        current, remainder = divmod(current, 36)
        chars.append(_ALPHABET[remainder])
    return "".join(reversed(chars))


def stable_id(prefix: str, *parts: str, length: int = 16) -> str:
    """Deterministic lowercase identifier derived from ``parts``.

    The same query analyzed over the same period always gets the same id,
    so cached and recomputed results stay consistent.
    """
    digest = hashlib.sha256("\x1f".join(parts).encode("utf-8")).digest()
    body = _to_base36(int.from_bytes(digest[:16], "big")).rjust(length, "0")[:length]
    return f"{prefix}_{body}"
