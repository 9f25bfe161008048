"""
Auth callback endpoint.

    GET /auth/callback?code=...              PKCE code flow
    GET /auth/callback?token_hash=...&type=  email link token flow

Order of work for every request:
1. Legacy host check; bounce to the canonical origin before anything else
2. Verify through exactly one flow
3. On success run the post-auth tasks (profile, referral, GitHub link),
   each best-effort, then set the session cookies
4. Redirect: sanitized ``next`` (or the popup success page) on success,
   the login page with a message (or the popup page with ``error``) on
   failure
5. Clear the referral cookie on every response, the bounce included
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse, Response

from ..auth.errors import AuthFailure, AuthFailureKind, Flow
from ..auth.verifier import CallbackParams, IdentityVerifier
from ..cookies import clear_code_verifier_cookie, clear_referral_cookie, set_session_cookies
from ..linking import IdentityLinker
from ..metrics import AUTH_CALLBACK_TOTAL, AUTH_DOMAIN_REDIRECT_TOTAL
from ..post_auth import build_post_auth_tasks, run_post_auth_tasks
from ..provisioning import ProfileProvisioner
from ..referral import ReferralApplier, resolve_referral
from ..security.domain import canonical_redirect_url
from ..security.redirects import sanitize_next_path
from ..settings import Settings, get_settings
from .deps import (
    get_identity_linker,
    get_identity_verifier,
    get_provisioner,
    get_referral_applier,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"], include_in_schema=False)


def _with_query(path: str, **params: str) -> str:
    return f"{path}?{urlencode(params)}" if params else path


def success_location(safe_next: str, is_popup: bool, settings: Settings) -> str:
    return settings.POPUP_SUCCESS_PATH if is_popup else safe_next


def failure_location(failure: AuthFailure, is_popup: bool, settings: Settings) -> str:
    # Popup windows always land on the page that reports back to the opener
    path = settings.POPUP_SUCCESS_PATH if is_popup else settings.LOGIN_PATH
    return _with_query(path, error=failure.message)


@router.get("/auth/callback", name="auth_callback")
async def auth_callback(
    request: Request,
    settings: Settings = Depends(get_settings),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    provisioner: ProfileProvisioner = Depends(get_provisioner),
    referrals: ReferralApplier = Depends(get_referral_applier),
    linker: IdentityLinker = Depends(get_identity_linker),
) -> Response:
    bounce = canonical_redirect_url(request, settings)
    if bounce:
        AUTH_DOMAIN_REDIRECT_TOTAL.inc()
        logger.info(
            "Legacy host, redirecting to canonical origin",
            extra={"meta": {"host": request.headers.get("host")}},
        )
        resp = RedirectResponse(bounce, status_code=307)
        clear_referral_cookie(resp, settings)
        return resp

    query = request.query_params
    params = CallbackParams.from_query(
        query, request.cookies.get(settings.CODE_VERIFIER_COOKIE_NAME)
    )
    is_popup = query.get("popup") == "true"
    safe_next = sanitize_next_path(query.get("next"), fallback=settings.DEFAULT_REDIRECT)

    logger.info(
        "Auth callback",
        extra={
            "meta": {
                "flow": params.flow.value,
                "code_present": bool(params.code),
                "token_present": bool(params.token_hash),
                "otp_type": (params.otp_type or "")[:32] or None,
                "popup": is_popup,
            }
        },
    )

    try:
        login = await verifier.verify(params)
    except AuthFailure as failure:
        AUTH_CALLBACK_TOTAL.labels(
            flow=params.flow.value, result="failure", reason=failure.kind.value
        ).inc()
        resp = RedirectResponse(failure_location(failure, is_popup, settings), status_code=302)
    except Exception:
        logger.exception("Unexpected error during verification")
        failure = AuthFailure(AuthFailureKind.AUTHENTICATION_FAILED)
        AUTH_CALLBACK_TOTAL.labels(
            flow=params.flow.value, result="failure", reason="unexpected"
        ).inc()
        resp = RedirectResponse(failure_location(failure, is_popup, settings), status_code=302)
    else:
        referral = resolve_referral(
            query,
            request.cookies.get(settings.REFERRAL_COOKIE_NAME),
            login.principal.user_metadata,
        )
        tasks = build_post_auth_tasks(
            provisioner=provisioner,
            referrals=referrals,
            linker=linker,
            referral=referral,
        )
        outcomes = await run_post_auth_tasks(tasks, login)
        logger.info(
            "Post-auth complete",
            extra={"meta": {"user_id": login.principal.id, "outcomes": outcomes}},
        )
        AUTH_CALLBACK_TOTAL.labels(flow=login.flow.value, result="success", reason="ok").inc()

        resp = RedirectResponse(success_location(safe_next, is_popup, settings), status_code=302)
        if login.session is not None:
            set_session_cookies(resp, login.session, settings)

    if params.flow is Flow.CODE:
        clear_code_verifier_cookie(resp, settings)
    clear_referral_cookie(resp, settings)
    return resp
