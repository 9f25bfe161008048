"""
Referral attribution on first login.

Which code to submit is a pure priority chain over three optional inputs:
URL parameter, then referral cookie, then the code stored in the user's
metadata at sign-up (covers confirming the email on another device). The
crediting itself, including already-referred and self-referral checks, is an
atomic data store function; this module only decides whether to call it.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from typing import Any, NamedTuple

from .datastore import DataStore, DataStoreError
from .metrics import REFERRAL_APPLY_TOTAL

logger = logging.getLogger(__name__)

REFERRAL_CODE_PATTERN = re.compile(r"^[a-z0-9]{8}$")
URL_PARAM_NAMES = ("ref", "referral", "referral_code")
METADATA_KEY = "referral_code"
APPLY_RPC = "apply_referral_code_admin"


class Referral(NamedTuple):
    code: str
    source: str


def validate_referral_code(code: Any) -> str | None:
    """Normalise ``code`` (trim, lowercase) and return it if well formed."""
    if not code or not isinstance(code, str):
        return None
    normalized = code.strip().lower()
    if not REFERRAL_CODE_PATTERN.match(normalized):
        return None
    return normalized


def extract_referral_code_from_params(params: Mapping[str, str]) -> str | None:
    """First non-empty value among the accepted parameter names, validated."""
    for name in URL_PARAM_NAMES:
        value = params.get(name)
        if value:
            return validate_referral_code(value)
    return None


def _sources(
    url_params: Mapping[str, str] | None,
    cookie: str | None,
    metadata: Mapping[str, Any] | None,
) -> Iterator[tuple[str, str | None]]:
    yield "url", extract_referral_code_from_params(url_params or {})
    yield "cookie", validate_referral_code(cookie)
    yield "metadata", validate_referral_code((metadata or {}).get(METADATA_KEY))


def resolve_referral(
    url_params: Mapping[str, str] | None,
    cookie: str | None,
    metadata: Mapping[str, Any] | None,
) -> Referral | None:
    for source, code in _sources(url_params, cookie, metadata):
        if code:
            return Referral(code, source)
    return None


def resolve_referral_code(
    url_params: Mapping[str, str] | None,
    cookie: str | None,
    metadata: Mapping[str, Any] | None,
) -> str | None:
    referral = resolve_referral(url_params, cookie, metadata)
    return referral.code if referral else None


class ReferralApplier:
    def __init__(self, store: DataStore) -> None:
        self._store = store

    async def apply_if_present(self, principal_id: str, referral: Referral | None) -> str:
        """Submit ``referral`` for ``principal_id``.

        Returns ``"absent"``, ``"applied"``, ``"declined"`` (the store said
        no: already referred, own code, unknown code) or ``"failed"``.
        Never raises.
        """
        if referral is None:
            return "absent"

        try:
            result = await self._store.rpc(
                APPLY_RPC, {"p_user_id": principal_id, "p_code": referral.code}
            )
        except DataStoreError:
            logger.error(
                "Failed to apply referral code",
                exc_info=True,
                extra={"meta": {"user_id": principal_id, "source": referral.source}},
            )
            REFERRAL_APPLY_TOTAL.labels(source=referral.source, result="failed").inc()
            return "failed"

        row = result[0] if isinstance(result, list) and result else result
        if not isinstance(row, dict) or not row.get("success"):
            reason = row.get("error_message") if isinstance(row, dict) else None
            logger.info(
                "Referral code not applied",
                extra={"meta": {"user_id": principal_id, "reason": reason}},
            )
            REFERRAL_APPLY_TOTAL.labels(source=referral.source, result="declined").inc()
            return "declined"

        logger.info(
            "Referral code applied",
            extra={"meta": {"user_id": principal_id, "source": referral.source}},
        )
        REFERRAL_APPLY_TOTAL.labels(source=referral.source, result="applied").inc()
        return "applied"
