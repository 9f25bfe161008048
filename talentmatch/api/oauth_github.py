"""
GitHub account connection for signed-in users.

    GET  /api/oauth/github/authorize   start the OAuth dance (signed state)
    GET  /api/oauth/github/callback    finish it; always redirects to the
                                       popup success page with a status
    GET  /api/oauth/github/status      current connection, never cached
    POST /api/oauth/github/disconnect  drop the connection

The state value binds the round trip to the user who started it; the
callback refuses to save a token unless the same user is still signed in.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse, Response

from .. import error_codes
from ..auth.models import Principal
from ..connections import GITHUB, ConnectionRepository, github_metadata
from ..datastore import DataStoreError
from ..http_errors import error_response
from ..integrations.github import GitHubConfigError, GitHubOAuthClient
from ..metrics import GITHUB_OAUTH_CALLBACK_TOTAL, OAUTH_STATE_TOTAL
from ..oauth_state import StateCodec, StateError
from ..settings import Settings, get_settings
from .deps import (
    get_connections,
    get_current_principal,
    get_github_client,
    get_github_state_codec,
    require_principal,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/oauth/github", tags=["oauth"])

AUTHORIZE_FAILED_MESSAGE = "Failed to initiate GitHub authorization"
DISCONNECT_FAILED_MESSAGE = "Failed to disconnect GitHub"


def _result_redirect(settings: Settings, **params: str) -> RedirectResponse:
    url = f"{settings.GITHUB_SUCCESS_PATH}?{urlencode(params)}"
    return RedirectResponse(url, status_code=302)


def _callback_error(settings: Settings, code: str, result: str | None = None) -> RedirectResponse:
    GITHUB_OAUTH_CALLBACK_TOTAL.labels(result=result or code).inc()
    return _result_redirect(settings, github_error=code)


@router.get("/authorize", name="github_oauth_authorize")
async def github_authorize(
    force: bool = Query(False),
    principal: Principal = Depends(require_principal),
    codec: StateCodec | None = Depends(get_github_state_codec),
    github: GitHubOAuthClient = Depends(get_github_client),
) -> Response:
    if codec is None:
        logger.error("GitHub OAuth state secret is not configured")
        return error_response(error_codes.SERVER_MISCONFIGURED, AUTHORIZE_FAILED_MESSAGE, status=500)

    try:
        url = github.authorize_url(codec.issue(principal.id), force_account_selection=force)
    except GitHubConfigError:
        logger.error("GitHub OAuth client is not configured")
        return error_response(error_codes.SERVER_MISCONFIGURED, AUTHORIZE_FAILED_MESSAGE, status=500)

    logger.info(
        "GitHub authorization started",
        extra={"meta": {"user_id": principal.id, "force": force}},
    )
    return RedirectResponse(url, status_code=302)


@router.get("/callback", name="github_oauth_callback")
async def github_callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    settings: Settings = Depends(get_settings),
    codec: StateCodec | None = Depends(get_github_state_codec),
    principal: Principal | None = Depends(get_current_principal),
    github: GitHubOAuthClient = Depends(get_github_client),
    connections: ConnectionRepository = Depends(get_connections),
) -> Response:
    if codec is None:
        logger.error("GitHub OAuth state secret is not configured")
        return _callback_error(settings, error_codes.SERVER_MISCONFIGURED)

    if error:
        logger.warning("GitHub returned an OAuth error", extra={"meta": {"error": error[:64]}})
        return _callback_error(settings, error, result="upstream_error")

    if not code or not state:
        return _callback_error(settings, error_codes.MISSING_PARAMS)

    try:
        payload = codec.decode(state)
    except StateError as e:
        OAUTH_STATE_TOTAL.labels(provider=GITHUB, result=e.public_code).inc()
        logger.warning(
            "GitHub OAuth state rejected",
            extra={"meta": {"reason": type(e).__name__}},
        )
        return _callback_error(settings, e.public_code)
    OAUTH_STATE_TOTAL.labels(provider=GITHUB, result="ok").inc()

    if principal is None or principal.id != payload.user_id:
        logger.warning(
            "GitHub callback user mismatch",
            extra={"meta": {"signed_in": principal is not None}},
        )
        return _callback_error(settings, error_codes.UNAUTHORIZED)

    try:
        token = await github.exchange_code(code)
        if token is None:
            return _callback_error(settings, error_codes.TOKEN_EXCHANGE_FAILED)

        gh_user = await github.fetch_user(token.access_token)
        metadata = (
            github_metadata(
                gh_user.get("login"),
                gh_user.get("name"),
                gh_user.get("avatar_url"),
                profile_url=gh_user.get("html_url"),
            )
            if gh_user
            else {}
        )

        try:
            await connections.save(
                principal.id,
                GITHUB,
                access_token=token.access_token,
                token_type=token.token_type,
                scope=token.scope,
                metadata=metadata,
            )
        except DataStoreError:
            logger.error(
                "Failed to save GitHub connection",
                exc_info=True,
                extra={"meta": {"user_id": principal.id}},
            )
            return _callback_error(settings, error_codes.SAVE_FAILED)
    except Exception:
        logger.exception("Unexpected error in GitHub callback")
        return _callback_error(settings, error_codes.UNEXPECTED_ERROR)

    logger.info("GitHub connected", extra={"meta": {"user_id": principal.id}})
    GITHUB_OAUTH_CALLBACK_TOTAL.labels(result="connected").inc()
    return _result_redirect(settings, github_connected="true")


@router.get("/status", name="github_oauth_status")
async def github_status(
    principal: Principal = Depends(require_principal),
    connections: ConnectionRepository = Depends(get_connections),
) -> Response:
    try:
        row = await connections.get(principal.id, GITHUB)
    except DataStoreError:
        logger.error("GitHub status lookup failed", exc_info=True)
        return error_response(
            error_codes.INTERNAL, "Failed to load GitHub status", status=500
        )

    connection = None
    if row:
        connection = {
            "connected_at": row.get("connected_at"),
            "last_synced_at": row.get("last_synced_at"),
            "metadata": row.get("metadata") or {},
        }
    return JSONResponse(
        {"connected": row is not None, "connection": connection},
        headers={"Cache-Control": "no-store"},
    )


@router.post("/disconnect", name="github_oauth_disconnect")
async def github_disconnect(
    principal: Principal = Depends(require_principal),
    connections: ConnectionRepository = Depends(get_connections),
) -> Response:
    try:
        await connections.delete(principal.id, GITHUB)
    except DataStoreError:
        logger.error(
            "Failed to disconnect GitHub",
            exc_info=True,
            extra={"meta": {"user_id": principal.id}},
        )
        return error_response(error_codes.INTERNAL, DISCONNECT_FAILED_MESSAGE, status=500)

    logger.info("GitHub disconnected", extra={"meta": {"user_id": principal.id}})
    return JSONResponse({"success": True})
