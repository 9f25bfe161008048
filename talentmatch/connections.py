"""Third-party account connections, one row per (user, provider)."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from .datastore import DataStore

logger = logging.getLogger(__name__)

CONNECTIONS_TABLE = "oauth_connections"
GITHUB = "github"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def github_metadata(
    username: str | None,
    name: str | None,
    avatar_url: str | None,
    *,
    profile_url: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    if profile_url is None and username:
        profile_url = f"https://github.com/{username}"
    return {
        "username": username,
        "name": name,
        "avatar_url": avatar_url,
        "profile_url": profile_url,
        **extra,
    }


class ConnectionRepository:
    def __init__(
        self, store: DataStore, *, now: Callable[[], str] = _utcnow_iso
    ) -> None:
        self._store = store
        self._now = now

    async def get(self, user_id: str, provider: str) -> dict[str, Any] | None:
        return await self._store.select_one(
            CONNECTIONS_TABLE, {"user_id": user_id, "provider": provider}, columns="*"
        )

    async def save(
        self,
        user_id: str,
        provider: str,
        *,
        access_token: str,
        token_type: str = "bearer",
        scope: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Update the (user, provider) row in place, or insert it.

        The insert is an upsert on ``user_id,provider`` so a concurrent
        writer that got there first is merged rather than duplicated.
        Returns ``"updated"`` or ``"inserted"``. Raises ``DataStoreError``.
        """
        values = {
            "access_token": access_token,
            "token_type": token_type,
            "scope": scope,
            "metadata": metadata or {},
            "connected_at": self._now(),
        }
        existing = await self._store.select_one(
            CONNECTIONS_TABLE, {"user_id": user_id, "provider": provider}
        )
        if existing:
            await self._store.update(CONNECTIONS_TABLE, {"id": existing["id"]}, values)
            return "updated"

        await self._store.insert(
            CONNECTIONS_TABLE,
            {"user_id": user_id, "provider": provider, **values},
            on_conflict="user_id,provider",
            resolution="merge-duplicates",
        )
        return "inserted"

    async def delete(self, user_id: str, provider: str) -> None:
        await self._store.delete(
            CONNECTIONS_TABLE, {"user_id": user_id, "provider": provider}
        )
