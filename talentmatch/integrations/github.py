"""
GitHub OAuth app client.

Used by the account-connection endpoints: build the authorization URL,
exchange the returned code for an access token, and read the user's public
profile for connection metadata.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
TOKEN_URL = "https://github.com/login/oauth/access_token"
USER_URL = "https://api.github.com/user"
SCOPES = ("read:user", "repo")


class GitHubConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class GitHubToken:
    access_token: str
    token_type: str
    scope: str


class GitHubOAuthClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
    ) -> None:
        self._client = client
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri

    def _require_config(self) -> None:
        if not self._client_id or not self._client_secret:
            raise GitHubConfigError(
                "Missing GitHub OAuth credentials. Set GITHUB_CLIENT_ID and GITHUB_CLIENT_SECRET."
            )

    def authorize_url(self, state: str, force_account_selection: bool = False) -> str:
        self._require_config()
        params = {
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "scope": " ".join(SCOPES),
            "state": state,
        }
        # Only honoured by GitHub when several accounts are signed in
        if force_account_selection:
            params["prompt"] = "select_account"
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> GitHubToken | None:
        """Trade an authorization code for a token; None on any failure."""
        self._require_config()
        try:
            resp = await self._client.post(
                TOKEN_URL,
                json={
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "code": code,
                    "redirect_uri": self._redirect_uri,
                },
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.error("GitHub token exchange transport error", extra={"meta": {"error_type": type(e).__name__}})
            return None

        if resp.status_code != 200:
            logger.error("GitHub token exchange failed", extra={"meta": {"status": resp.status_code}})
            return None

        try:
            data = resp.json()
        except ValueError:
            logger.error("GitHub token exchange returned non-JSON")
            return None

        if data.get("error") or not data.get("access_token"):
            logger.error(
                "GitHub OAuth error",
                extra={"meta": {"error": data.get("error"), "description": data.get("error_description")}},
            )
            return None

        return GitHubToken(
            access_token=data["access_token"],
            token_type=data.get("token_type") or "bearer",
            scope=data.get("scope") or "",
        )

    async def fetch_user(self, access_token: str) -> dict[str, Any] | None:
        try:
            resp = await self._client.get(
                USER_URL,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/vnd.github+json",
                },
            )
        except httpx.HTTPError:
            logger.warning("GitHub user fetch failed", exc_info=True)
            return None
        if resp.status_code != 200:
            logger.warning("GitHub user fetch failed", extra={"meta": {"status": resp.status_code}})
            return None
        try:
            return resp.json()
        except ValueError:
            return None
