"""
Capture a GitHub connection from a GitHub sign-in.

The provider access token is only visible on the login that produced it; the
auth provider does not keep it. When a principal signed in with GitHub and
the token is present, it is stored as the user's GitHub connection so
profile import works without a second authorization.
"""

from __future__ import annotations

import logging

from .auth.models import Principal
from .connections import GITHUB, ConnectionRepository, github_metadata
from .datastore import DataStoreError

logger = logging.getLogger(__name__)


class IdentityLinker:
    def __init__(self, connections: ConnectionRepository, provider: str = GITHUB) -> None:
        self._connections = connections
        self._provider = provider

    async def sync_connection(
        self, principal: Principal, provider_token: str | None = None
    ) -> str:
        """Upsert the connection row; returns what happened, never raises.

        Outcomes: ``"skipped"`` (no identity or no token), ``"updated"``,
        ``"inserted"`` or ``"failed"``.
        """
        identity = principal.identity(self._provider)
        if identity is None:
            return "skipped"

        meta = principal.user_metadata
        token = provider_token or meta.get("provider_token")
        if not token:
            logger.info(
                "No provider token to link",
                extra={"meta": {"user_id": principal.id, "provider": self._provider}},
            )
            return "skipped"

        data = identity.identity_data
        metadata = github_metadata(
            identity.username or meta.get("user_name"),
            data.get("name") or meta.get("name"),
            data.get("avatar_url") or meta.get("avatar_url"),
            synced_from_auth=True,
        )
        try:
            outcome = await self._connections.save(
                principal.id,
                self._provider,
                access_token=token,
                token_type="bearer",
                scope="read:user",
                metadata=metadata,
            )
        except DataStoreError:
            logger.error(
                "Failed to save provider connection",
                exc_info=True,
                extra={"meta": {"user_id": principal.id, "provider": self._provider}},
            )
            return "failed"

        logger.info(
            "Provider connection saved",
            extra={"meta": {"user_id": principal.id, "outcome": outcome}},
        )
        return outcome
