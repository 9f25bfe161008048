"""
Cookie facade for the auth callback.

All Set-Cookie operations for auth flows go through this module so every
cookie gets the same Path/SameSite/Secure treatment:
- set_session_cookies() - access + refresh tokens after a verified login
- clear_referral_cookie() - pending referral code, cleared on every callback
- clear_code_verifier_cookie() - PKCE verifier, single use
"""

from fastapi import Response

from .auth.models import AuthSession
from .settings import Settings

DEFAULT_ACCESS_TTL = 3600


def set_session_cookies(resp: Response, session: AuthSession, settings: Settings) -> None:
    resp.set_cookie(
        settings.ACCESS_COOKIE_NAME,
        session.access_token,
        max_age=session.expires_in or DEFAULT_ACCESS_TTL,
        path="/",
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
    )
    if session.refresh_token:
        resp.set_cookie(
            settings.REFRESH_COOKIE_NAME,
            session.refresh_token,
            max_age=settings.REFRESH_COOKIE_MAX_AGE,
            path="/",
            httponly=True,
            secure=settings.secure_cookies,
            samesite="lax",
        )


def clear_referral_cookie(resp: Response, settings: Settings) -> None:
    # Readable by the signup page script, hence not HttpOnly
    resp.delete_cookie(
        settings.REFERRAL_COOKIE_NAME,
        path="/",
        httponly=False,
        secure=settings.secure_cookies,
        samesite="lax",
    )


def clear_code_verifier_cookie(resp: Response, settings: Settings) -> None:
    resp.delete_cookie(
        settings.CODE_VERIFIER_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
    )
