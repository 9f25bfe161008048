"""
Best-effort side effects after a successful login.

Each task gets the verified login and returns a short outcome string. The
runner wraps every task the same way: an exception is logged and counted,
and the next task still runs. Nothing here can fail the callback response.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import NamedTuple

from .auth.verifier import VerifiedLogin
from .linking import IdentityLinker
from .metrics import POST_AUTH_TASK_TOTAL
from .provisioning import ProfileProvisioner
from .referral import Referral, ReferralApplier

logger = logging.getLogger(__name__)


class PostAuthTask(NamedTuple):
    name: str
    run: Callable[[VerifiedLogin], Awaitable[str]]


async def run_post_auth_tasks(
    tasks: Sequence[PostAuthTask], login: VerifiedLogin
) -> dict[str, str]:
    outcomes: dict[str, str] = {}
    for task in tasks:
        try:
            outcome = await task.run(login)
        except Exception:
            logger.error(
                "Post-auth task failed",
                exc_info=True,
                extra={"meta": {"task": task.name, "user_id": login.principal.id}},
            )
            outcome = "error"
        outcomes[task.name] = outcome
        POST_AUTH_TASK_TOTAL.labels(task=task.name, result=outcome).inc()
    return outcomes


def build_post_auth_tasks(
    *,
    provisioner: ProfileProvisioner,
    referrals: ReferralApplier,
    linker: IdentityLinker,
    referral: Referral | None,
) -> list[PostAuthTask]:
    async def ensure_profile(login: VerifiedLogin) -> str:
        principal = login.principal
        if not principal.email:
            return "skipped"
        return await provisioner.ensure_profile(principal.id, principal.email)

    async def apply_referral(login: VerifiedLogin) -> str:
        return await referrals.apply_if_present(login.principal.id, referral)

    async def link_identity(login: VerifiedLogin) -> str:
        return await linker.sync_connection(login.principal, login.provider_token)

    return [
        PostAuthTask("profile", ensure_profile),
        PostAuthTask("referral", apply_referral),
        PostAuthTask("identity_link", link_identity),
    ]
