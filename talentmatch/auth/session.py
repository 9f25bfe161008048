"""Resolve the calling user from an access token, through the TTL cache."""

from __future__ import annotations

import logging

from fastapi import Request

from ..cache import UserCache
from .errors import ProviderError
from .models import Principal
from .provider import AuthProviderClient

logger = logging.getLogger(__name__)


def read_access_token(request: Request, cookie_name: str) -> str | None:
    """Bearer header first, then the session cookie."""
    auth = request.headers.get("authorization") or ""
    scheme, _, value = auth.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return request.cookies.get(cookie_name) or None


class SessionResolver:
    def __init__(
        self,
        provider: AuthProviderClient,
        cache: UserCache[Principal],
        cookie_name: str,
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._cookie_name = cookie_name

    async def current_principal(self, request: Request) -> Principal | None:
        token = read_access_token(request, self._cookie_name)
        if not token:
            return None

        cached = self._cache.get(token)
        if cached is not None:
            return cached

        try:
            principal = await self._provider.get_user(token)
        except ProviderError:
            logger.warning("User lookup failed", exc_info=True)
            return None

        if principal is not None:
            self._cache.put(token, principal)
        return principal
