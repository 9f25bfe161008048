"""
HTTP client for the managed auth provider (GoTrue REST dialect).

Three calls are needed by the callback and session code:
- ``verify_otp``: email link token verification
- ``exchange_code_for_session``: PKCE authorization-code exchange
- ``get_user``: resolve an access token to its user

Provider-side failures raise ``ProviderError``; transport failures are
wrapped in the same type so callers deal with a single exception.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from .errors import ProviderError
from .models import AuthSession, Principal

logger = logging.getLogger(__name__)


class AuthProviderClient:
    def __init__(self, client: httpx.AsyncClient, auth_url: str, api_key: str) -> None:
        self._client = client
        self._base = auth_url.rstrip("/")
        self._api_key = api_key

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        headers = {"apikey": self._api_key, "Accept": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        access_token: str | None = None,
    ) -> Any:
        try:
            resp = await self._client.request(
                method,
                f"{self._base}{path}",
                json=json,
                params=params,
                headers=self._headers(access_token),
            )
        except httpx.HTTPError as e:
            logger.warning(
                "auth provider unreachable",
                extra={"meta": {"path": path, "error_type": type(e).__name__}},
            )
            raise ProviderError(None, code="transport_error") from e

        try:
            body = resp.json() if resp.content else {}
        except ValueError:
            body = {}

        if resp.status_code >= 400:
            err = ProviderError.from_body(body, resp.status_code)
            logger.info(
                "auth provider error",
                extra={
                    "meta": {
                        "path": path,
                        "status": resp.status_code,
                        "code": err.code,
                    }
                },
            )
            raise err
        return body

    @staticmethod
    def _parse_session(body: Any) -> AuthSession | None:
        if not isinstance(body, dict) or not body.get("access_token"):
            return None
        try:
            return AuthSession.model_validate(body)
        except ValidationError as e:
            raise ProviderError(None, code="bad_response") from e

    @staticmethod
    def _parse_user(body: Any) -> Principal | None:
        if not isinstance(body, dict) or not body.get("id"):
            return None
        try:
            return Principal.model_validate(body)
        except ValidationError as e:
            raise ProviderError(None, code="bad_response") from e

    async def verify_otp(
        self, token_hash: str, otp_type: str
    ) -> tuple[AuthSession | None, Principal | None]:
        """Verify an email-link token; returns the session and its user."""
        body = await self._request(
            "POST", "/verify", json={"type": otp_type, "token_hash": token_hash}
        )
        session = self._parse_session(body)
        if session is not None:
            return session, session.user
        user = body.get("user") if isinstance(body, dict) else None
        return None, self._parse_user(user if user is not None else body)

    async def exchange_code_for_session(
        self, auth_code: str, code_verifier: str | None
    ) -> AuthSession:
        """Exchange a PKCE authorization code for a session."""
        body = await self._request(
            "POST",
            "/token",
            params={"grant_type": "pkce"},
            json={"auth_code": auth_code, "code_verifier": code_verifier or ""},
        )
        session = self._parse_session(body)
        if session is None:
            raise ProviderError(None, code="no_session")
        return session

    async def get_user(self, access_token: str) -> Principal | None:
        """Return the user behind ``access_token``; None when it is not valid."""
        try:
            body = await self._request("GET", "/user", access_token=access_token)
        except ProviderError as e:
            if e.status in (401, 403):
                return None
            raise
        return self._parse_user(body)
