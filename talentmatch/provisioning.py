"""
Idempotent profile bootstrap on login.

OAuth sign-ups carry no role choice, so a principal with neither a student
nor a company profile gets a student profile plus an API credential. Safe to
run on every login: existing profiles are never touched, and the insert uses
skip-if-exists so two racing callbacks for the same user still leave one row.

Failures are logged and swallowed. The next login retries, since the check is
by id and the insert is attempted again.
"""

from __future__ import annotations

import logging
import secrets

from .datastore import DataStore, DataStoreError

logger = logging.getLogger(__name__)

STUDENT_TABLE = "student"
COMPANY_TABLE = "company"
API_TOKENS_TABLE = "api_tokens"
CREATE_TOKEN_RPC = "create_api_token_if_missing"


def new_api_token() -> str:
    return secrets.token_hex(32)


class ProfileProvisioner:
    def __init__(self, store: DataStore) -> None:
        self._store = store

    async def ensure_profile(self, principal_id: str, email: str) -> str:
        """Make sure ``principal_id`` has a profile.

        Returns ``"exists"``, ``"created"`` or ``"failed"``; never raises
        for data store errors.
        """
        try:
            if await self._store.select_one(STUDENT_TABLE, {"id": principal_id}):
                logger.debug("Student profile present", extra={"meta": {"user_id": principal_id}})
                return "exists"
            if await self._store.select_one(COMPANY_TABLE, {"id": principal_id}):
                logger.debug("Company profile present", extra={"meta": {"user_id": principal_id}})
                return "exists"

            await self._store.insert(
                STUDENT_TABLE,
                {"id": principal_id, "mail_adress": email},
                on_conflict="id",
                resolution="ignore-duplicates",
            )
        except DataStoreError:
            logger.error(
                "Failed to create student profile",
                exc_info=True,
                extra={"meta": {"user_id": principal_id}},
            )
            return "failed"

        logger.info("Student profile created", extra={"meta": {"user_id": principal_id}})
        await self.ensure_api_token(principal_id)
        return "created"

    async def ensure_api_token(self, principal_id: str) -> bool:
        """Create the API credential if missing; best-effort."""
        try:
            await self._store.rpc(CREATE_TOKEN_RPC, {"p_user_id": principal_id})
            return True
        except DataStoreError as e:
            logger.info(
                "Token RPC failed, trying direct insert",
                extra={"meta": {"user_id": principal_id, "status": e.status}},
            )

        try:
            await self._store.insert(
                API_TOKENS_TABLE,
                {"user_id": principal_id, "token": new_api_token()},
                on_conflict="user_id",
                resolution="ignore-duplicates",
            )
            return True
        except DataStoreError:
            logger.warning(
                "Failed to create API token",
                exc_info=True,
                extra={"meta": {"user_id": principal_id}},
            )
            return False
