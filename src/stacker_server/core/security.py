"""Signed session tokens.

A token is ``<payload>.<tag>`` where both parts are unpadded URL-safe base64.
The payload is canonical JSON and is readable by anyone holding the token;
the tag is HMAC-SHA256 over the payload bytes under the server secret, so the
payload is integrity protected but not confidential.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
from collections.abc import Mapping
from typing import Any

_SEPARATOR = "."


def _encode_b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def _decode_b64(data: str) -> bytes:
    """Decode unpadded URL-safe base64, rejecting non-canonical input."""
    padding = "=" * (-len(data) % 4)
    decoded = base64.b64decode(data + padding, altchars=b"-_", validate=True)
    # Unused trailing bits would let two different strings decode to the same bytes.
    if _encode_b64(decoded) != data:
        raise ValueError("Non-canonical base64 encoding")
    return decoded


def canonical_json(payload: Mapping[str, Any]) -> bytes:
    """Serialize ``payload`` deterministically."""
    return json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


class TokenCodec:
    """Sign and verify opaque bearer tokens."""

    def __init__(self, secret: str | bytes) -> None:
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._key = secret.encode("utf-8") if isinstance(secret, str) else bytes(secret)

    def _mac(self, message: bytes) -> bytes:
        return hmac.new(self._key, message, hashlib.sha256).digest()

    def sign(self, payload: Mapping[str, Any]) -> str:
        """Return a token bundling ``payload`` with its integrity tag."""
        body = canonical_json(payload)
        return f"{_encode_b64(body)}{_SEPARATOR}{_encode_b64(self._mac(body))}"

    def verify(self, token: str) -> dict[str, Any] | None:
        """Return the payload of a valid token, or None.

        Every failure mode (bad encoding, bad tag, bad JSON) yields the same
        None so callers cannot learn why a token was refused.
        """
        if not isinstance(token, str):
            return None
        parts = token.split(_SEPARATOR)
        if len(parts) != 2:
            return None
        try:
            body = _decode_b64(parts[0])
            tag = _decode_b64(parts[1])
        except (ValueError, binascii.Error):
            return None
        if not hmac.compare_digest(tag, self._mac(body)):
            return None
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return None
        if not isinstance(payload, dict):
            return None
        return payload
