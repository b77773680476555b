"""Wallet address helpers."""

from __future__ import annotations

import re

_WALLET_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_wallet(value: str) -> bool:
    """Return True if ``value`` looks like an EVM account address."""
    return isinstance(value, str) and bool(_WALLET_RE.fullmatch(value.strip()))


def normalize_wallet(value: str) -> str:
    """Return the lowercase form of a wallet address.

    Raises:
        ValueError: If ``value`` is not a ``0x``-prefixed 40 hex digit address.
    """
    if not is_wallet(value):
        raise ValueError("Malformed wallet address")
    return value.strip().lower()
