"""
Signed OAuth state codec.

A state value carries ``{userId, nonce, ts}`` through a third-party OAuth
round trip without server-side session storage. Wire format::

    base64url(JSON {"data": <canonical JSON payload>, "sig": hex(HMAC-SHA256)})

``ts`` is milliseconds since the epoch. Decoding verifies the signature with
a constant-time comparison before the payload is trusted, then rejects
values older than ``max_age_seconds``.

Replay is not prevented here: a valid state decodes successfully any number
of times inside its window.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass

from . import error_codes

logger = logging.getLogger(__name__)

STATE_MAX_AGE_SECONDS = 600


class StateError(Exception):
    """Base class for state decode failures."""

    public_code = error_codes.INVALID_STATE


class InvalidStateFormat(StateError):
    """Not base64url, not JSON, or missing fields."""


class InvalidStateSignature(StateError):
    """Signature absent or does not match the payload."""


class StateExpired(StateError):
    """Signature valid but the state is older than the validity window."""

    public_code = error_codes.STATE_EXPIRED


@dataclass(frozen=True)
class StatePayload:
    user_id: str
    nonce: str
    ts: int

    def to_dict(self) -> dict:
        return {"userId": self.user_id, "nonce": self.nonce, "ts": self.ts}


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64url_decode(s: str) -> bytes:
    pad = "=" * (-len(s) % 4)
    return base64.urlsafe_b64decode((s + pad).encode("ascii"))


def _canonical(payload: dict) -> str:
    return json.dumps(payload, separators=(",", ":"), sort_keys=True)


def _now_ms() -> int:
    return int(time.time() * 1000)


class StateCodec:
    """Encode and verify signed state tokens for one provider.

    Args:
        secret: HMAC key; each provider gets its own
        max_age_seconds: validity window measured from ``ts``
        clock: returns the current time in milliseconds
    """

    def __init__(
        self,
        secret: str,
        *,
        max_age_seconds: int = STATE_MAX_AGE_SECONDS,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        if not secret:
            raise ValueError("state secret must not be empty")
        self._key = secret.encode("utf-8")
        self._max_age_ms = max_age_seconds * 1000
        self._clock = clock

    def sign(self, data: str) -> str:
        return hmac.new(self._key, data.encode("utf-8"), hashlib.sha256).hexdigest()

    def verify(self, data: str, signature: str) -> bool:
        return hmac.compare_digest(
            self.sign(data).encode("ascii"), signature.encode("utf-8")
        )

    def issue(self, user_id: str) -> str:
        """Mint a fresh state for ``user_id`` with a random 32-byte nonce."""
        payload = StatePayload(
            user_id=user_id, nonce=secrets.token_hex(32), ts=self._clock()
        )
        return self.encode(payload)

    def encode(self, payload: StatePayload) -> str:
        data = _canonical(payload.to_dict())
        wrapper = json.dumps({"data": data, "sig": self.sign(data)}, separators=(",", ":"))
        return _b64url_encode(wrapper.encode("utf-8"))

    def decode(self, token: str) -> StatePayload:
        """Verify ``token`` and return its payload.

        Raises:
            InvalidStateFormat: structurally broken token
            InvalidStateSignature: signature missing or wrong
            StateExpired: authentic but older than the validity window
        """
        try:
            wrapper = json.loads(_b64url_decode(token).decode("utf-8"))
        except (binascii.Error, UnicodeError, ValueError) as e:
            raise InvalidStateFormat("state is not valid base64url JSON") from e

        if not isinstance(wrapper, dict):
            raise InvalidStateFormat("state wrapper is not an object")
        data, sig = wrapper.get("data"), wrapper.get("sig")
        if not isinstance(data, str):
            raise InvalidStateFormat("state data missing")
        if not isinstance(sig, str) or not sig:
            raise InvalidStateSignature("state signature missing")
        if not self.verify(data, sig):
            raise InvalidStateSignature("state signature mismatch")

        try:
            fields = json.loads(data)
            payload = StatePayload(
                user_id=str(fields["userId"]),
                nonce=str(fields["nonce"]),
                ts=int(fields["ts"]),
            )
        except (ValueError, TypeError, KeyError) as e:
            raise InvalidStateFormat("state payload malformed") from e

        if self._clock() - payload.ts > self._max_age_ms:
            raise StateExpired("state expired")
        return payload
