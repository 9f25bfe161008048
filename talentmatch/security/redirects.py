"""
Redirect sanitization for post-login destinations.

The ``next`` parameter on auth callbacks is attacker controlled. Only
same-origin relative paths survive; everything else collapses to the
default landing path. Rules enforced:
- Must start with a single ``/`` followed by a character that is neither
  ``/`` nor ``\\`` (blocks ``//host``, ``///host`` and ``/\\host``)
- No ASCII control characters (browsers silently strip tab/CR/LF, which
  would turn ``/\\t/evil.com`` into ``//evil.com``)
- No scheme or network location once parsed
- The same prefix rules hold after percent-decoding the leading characters

Safe paths are returned verbatim, query string included. This function
never raises.
"""

import logging
import re
from urllib.parse import unquote, urlsplit

from ..metrics import AUTH_REDIRECT_SANITIZED_TOTAL

logger = logging.getLogger(__name__)

DEFAULT_REDIRECT = "/dashboard"

_SAFE_PREFIX = re.compile(r"^/[^/\\]")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def safe_decode_url(url: str, max_decodes: int = 2) -> str:
    """Percent-decode ``url`` until stable, at most ``max_decodes`` times."""
    decoded = url
    for _ in range(max_decodes):
        previous = decoded
        decoded = unquote(decoded)
        if decoded == previous:
            break
    return decoded


def _reject(reason: str, raw: object, fallback: str) -> str:
    AUTH_REDIRECT_SANITIZED_TOTAL.labels(reason=reason).inc()
    logger.info(
        "Redirect sanitization fallback",
        extra={
            "meta": {
                "component": "auth.redirect",
                "reason": reason,
                "input_len": len(raw) if isinstance(raw, str) else 0,
                "output_path": fallback,
            }
        },
    )
    return fallback


def rejection_reason(candidate: object) -> str | None:
    """Return why ``candidate`` is unsafe, or None when it may be used as-is."""
    if not candidate or not isinstance(candidate, str):
        return "empty"
    if _CONTROL_CHARS.search(candidate):
        return "control_char"
    if not candidate.startswith("/"):
        return "not_relative"
    if not _SAFE_PREFIX.match(candidate):
        return "protocol_relative"

    parts = urlsplit(candidate)
    if parts.scheme or parts.netloc:
        return "absolute_url"

    # %2F%2F / %5C smuggled into the prefix
    head = safe_decode_url(candidate[:12])
    if _CONTROL_CHARS.search(head) or not _SAFE_PREFIX.match(head):
        return "encoded_prefix"
    return None


def sanitize_next_path(raw: str | None, fallback: str = DEFAULT_REDIRECT) -> str:
    """Narrow an untrusted ``next`` value to a same-origin relative path.

    Args:
        raw: Raw value from the query string (may be None)
        fallback: Path returned for anything unsafe

    Returns:
        ``raw`` unchanged when safe, otherwise ``fallback``
    """
    reason = rejection_reason(raw)
    if reason is not None:
        return _reject(reason, raw, fallback)
    return raw  # type: ignore[return-value]
