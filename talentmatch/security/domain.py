"""Legacy-host detection for the auth callback.

Links minted before a domain move still point at the old public hostname.
Verifying a one-time token there would burn it on a host that cannot finish
the session, so the callback bounces such requests to the canonical origin
before any provider call.
"""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

from fastapi import Request

from ..settings import Settings

logger = logging.getLogger(__name__)


def _bare_host(host: str | None) -> str:
    if not host:
        return ""
    host = host.strip().lower()
    if host.startswith("["):
        return host.split("]", 1)[0] + "]"
    return host.rsplit(":", 1)[0] if host.count(":") == 1 else host


def is_legacy_host(host: str | None, legacy_hosts: list[str]) -> bool:
    bare = _bare_host(host)
    if not bare:
        return False
    return any(bare == h or bare.endswith("." + h) for h in legacy_hosts)


def canonical_origin(request: Request, settings: Settings) -> str | None:
    """Configured app origin, else the one the proxy says it served."""
    if settings.APP_URL:
        return settings.APP_URL.rstrip("/")
    forwarded_host = request.headers.get("x-forwarded-host")
    if forwarded_host:
        proto = request.headers.get("x-forwarded-proto") or "https"
        return f"{proto}://{forwarded_host}"
    return None


def canonical_redirect_url(request: Request, settings: Settings) -> str | None:
    """URL on the canonical origin for this request, or None to proceed.

    Returns None unless the Host header names a legacy domain and a
    canonical origin is known whose host is neither the request host nor
    itself legacy. Hosts are compared without scheme or port.
    Path and query string are preserved.
    """
    host = request.headers.get("host")
    if not is_legacy_host(host, settings.legacy_host_list):
        return None

    target = canonical_origin(request, settings)
    if not target:
        logger.warning(
            "Legacy host with no canonical origin configured",
            extra={"meta": {"host": host}},
        )
        return None

    target_host = _bare_host(urlsplit(target).netloc)
    if target_host == _bare_host(host) or is_legacy_host(
        target_host, settings.legacy_host_list
    ):
        return None

    url = target + request.url.path
    if request.url.query:
        url += "?" + request.url.query
    return url
