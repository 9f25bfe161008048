"""
Identity verification for the auth callback.

Inbound parameters pick exactly one flow:
- ``token_hash`` (or legacy ``token``) together with ``type``: token flow
- otherwise ``code``: PKCE code flow
- otherwise: nothing to verify

Each flow either returns a ``VerifiedLogin`` or raises ``AuthFailure``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from .errors import AuthFailure, AuthFailureKind, Flow, ProviderError, classify_provider_error
from .models import AuthSession, Principal
from .provider import AuthProviderClient

logger = logging.getLogger(__name__)

ALLOWED_OTP_TYPES = frozenset(
    {"recovery", "email", "signup", "invite", "magiclink", "email_change"}
)


@dataclass(frozen=True)
class CallbackParams:
    code: str | None = None
    token_hash: str | None = None
    otp_type: str | None = None
    code_verifier: str | None = None

    @classmethod
    def from_query(
        cls, query: Mapping[str, str], code_verifier: str | None = None
    ) -> "CallbackParams":
        return cls(
            code=query.get("code") or None,
            token_hash=query.get("token_hash") or query.get("token") or None,
            otp_type=query.get("type") or None,
            code_verifier=code_verifier,
        )

    @property
    def flow(self) -> Flow:
        if self.token_hash and self.otp_type:
            return Flow.TOKEN
        if self.code:
            return Flow.CODE
        return Flow.NONE


@dataclass(frozen=True)
class VerifiedLogin:
    principal: Principal
    session: AuthSession | None
    flow: Flow

    @property
    def provider_token(self) -> str | None:
        if self.session and self.session.provider_token:
            return self.session.provider_token
        token = self.principal.user_metadata.get("provider_token")
        return token if isinstance(token, str) and token else None


class IdentityVerifier:
    def __init__(self, provider: AuthProviderClient) -> None:
        self._provider = provider

    async def verify(self, params: CallbackParams) -> VerifiedLogin:
        flow = params.flow
        if flow is Flow.TOKEN:
            return await self._verify_token(params)
        if flow is Flow.CODE:
            return await self._verify_code(params)
        raise AuthFailure(AuthFailureKind.MISSING_PARAMETERS)

    async def _verify_token(self, params: CallbackParams) -> VerifiedLogin:
        otp_type = params.otp_type or ""
        if otp_type not in ALLOWED_OTP_TYPES:
            logger.warning(
                "Rejected link type", extra={"meta": {"otp_type": otp_type[:32]}}
            )
            raise AuthFailure(AuthFailureKind.INVALID_LINK_TYPE)

        try:
            session, user = await self._provider.verify_otp(
                params.token_hash or "", otp_type
            )
        except ProviderError as e:
            raise classify_provider_error(e, Flow.TOKEN) from e

        if user is None:
            logger.error("No user after token verification")
            raise AuthFailure(AuthFailureKind.AUTHENTICATION_FAILED)

        logger.info(
            "Token verified",
            extra={"meta": {"user_id": user.id, "otp_type": otp_type}},
        )
        return VerifiedLogin(principal=user, session=session, flow=Flow.TOKEN)

    async def _verify_code(self, params: CallbackParams) -> VerifiedLogin:
        try:
            session = await self._provider.exchange_code_for_session(
                params.code or "", params.code_verifier
            )
        except ProviderError as e:
            raise classify_provider_error(e, Flow.CODE) from e

        try:
            user = await self._provider.get_user(session.access_token)
        except ProviderError:
            logger.warning("User lookup failed after code exchange", exc_info=True)
            user = None

        if user is None:
            logger.error("No user found after code exchange")
            raise AuthFailure(AuthFailureKind.AUTHENTICATION_FAILED)

        logger.info("Session created", extra={"meta": {"user_id": user.id}})
        return VerifiedLogin(principal=user, session=session, flow=Flow.CODE)
