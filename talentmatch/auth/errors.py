"""Authentication failure taxonomy.

``classify_provider_error`` is the one place that looks inside auth-provider
error shapes; everything downstream switches on ``AuthFailureKind``.
"""

from __future__ import annotations

from enum import Enum


class AuthFailureKind(str, Enum):
    MISSING_PARAMETERS = "missing_parameters"
    INVALID_LINK_TYPE = "invalid_link_type"
    EXPIRED = "expired"
    ALREADY_USED_OR_INVALID = "already_used_or_invalid"
    AUTHENTICATION_FAILED = "authentication_failed"


class Flow(str, Enum):
    TOKEN = "token"
    CODE = "code"
    NONE = "none"


GENERIC_FAILURE_MESSAGE = "Authentication failed"

# User-facing text per failure kind (AUTHENTICATION_FAILED may carry the
# provider's own message instead)
FAILURE_MESSAGES: dict[AuthFailureKind, str] = {
    AuthFailureKind.MISSING_PARAMETERS: "Invalid or expired link",
    AuthFailureKind.INVALID_LINK_TYPE: "Invalid link type",
    AuthFailureKind.EXPIRED: "This link has expired. Please request a new one.",
    AuthFailureKind.ALREADY_USED_OR_INVALID: (
        "This link is invalid or has already been used."
    ),
    AuthFailureKind.AUTHENTICATION_FAILED: GENERIC_FAILURE_MESSAGE,
}


class ProviderError(Exception):
    """Error reported by the auth provider (or reaching it)."""

    def __init__(
        self, message: str | None = None, *, code: str | None = None, status: int | None = None
    ) -> None:
        super().__init__(message or code or "auth provider error")
        self.message = message
        self.code = code
        self.status = status

    @classmethod
    def from_body(cls, body: object, status: int) -> "ProviderError":
        """Build from a provider JSON error body of any known dialect."""
        if not isinstance(body, dict):
            return cls(None, status=status)
        code = body.get("error_code") or body.get("error")
        if not code and isinstance(body.get("code"), str):
            code = body["code"]
        message = body.get("msg") or body.get("message") or body.get("error_description")
        return cls(
            str(message) if message else None,
            code=str(code) if code else None,
            status=status,
        )


class AuthFailure(Exception):
    def __init__(self, kind: AuthFailureKind, message: str | None = None) -> None:
        super().__init__(kind.value)
        self.kind = kind
        self._message = message

    @property
    def message(self) -> str:
        """Text safe to put in a redirect URL."""
        return self._message or FAILURE_MESSAGES[self.kind]


def classify_provider_error(error: ProviderError, flow: Flow) -> AuthFailure:
    """Map a provider error onto the closed failure taxonomy.

    Token flow: ``otp_expired`` or "expired" wins, then ``otp_disabled`` or
    "invalid"; anything else keeps the provider's message.
    Code flow: ``invalid_grant``, "expired" or "invalid" read as an expired
    link; anything else keeps the provider's message.
    """
    message = error.message or ""
    lowered = message.lower()
    code = (error.code or "").lower()

    if flow is Flow.TOKEN:
        if code == "otp_expired" or "expired" in lowered:
            return AuthFailure(AuthFailureKind.EXPIRED)
        if code == "otp_disabled" or "invalid" in lowered:
            return AuthFailure(AuthFailureKind.ALREADY_USED_OR_INVALID)
    elif flow is Flow.CODE:
        if code == "invalid_grant" or "expired" in lowered or "invalid" in lowered:
            return AuthFailure(AuthFailureKind.EXPIRED)

    return AuthFailure(AuthFailureKind.AUTHENTICATION_FAILED, message or None)
