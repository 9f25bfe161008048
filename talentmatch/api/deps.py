"""FastAPI dependency providers.

Long-lived objects (HTTP client, user cache) live on ``app.state`` and are
created in the lifespan; the thin per-request wrappers around them are built
here. Tests swap any of these through ``app.dependency_overrides``.
"""

from __future__ import annotations

import httpx
from fastapi import Depends, Request

from ..auth.models import Principal
from ..auth.provider import AuthProviderClient
from ..auth.session import SessionResolver
from ..auth.verifier import IdentityVerifier
from ..cache import UserCache
from ..connections import ConnectionRepository
from ..datastore import DataStore
from ..http_errors import unauthorized
from ..integrations.github import GitHubOAuthClient
from ..linking import IdentityLinker
from ..oauth_state import StateCodec
from ..provisioning import ProfileProvisioner
from ..referral import ReferralApplier
from ..settings import Settings, get_settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_user_cache(request: Request) -> UserCache[Principal]:
    return request.app.state.user_cache


def get_auth_provider(
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> AuthProviderClient:
    return AuthProviderClient(client, settings.auth_url, settings.SUPABASE_ANON_KEY)


def get_datastore(
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> DataStore:
    return DataStore(client, settings.rest_url, settings.SUPABASE_SERVICE_ROLE_KEY)


def get_identity_verifier(
    provider: AuthProviderClient = Depends(get_auth_provider),
) -> IdentityVerifier:
    return IdentityVerifier(provider)


def get_provisioner(store: DataStore = Depends(get_datastore)) -> ProfileProvisioner:
    return ProfileProvisioner(store)


def get_referral_applier(store: DataStore = Depends(get_datastore)) -> ReferralApplier:
    return ReferralApplier(store)


def get_connections(store: DataStore = Depends(get_datastore)) -> ConnectionRepository:
    return ConnectionRepository(store)


def get_identity_linker(
    connections: ConnectionRepository = Depends(get_connections),
) -> IdentityLinker:
    return IdentityLinker(connections)


def get_session_resolver(
    settings: Settings = Depends(get_settings),
    provider: AuthProviderClient = Depends(get_auth_provider),
    cache: UserCache[Principal] = Depends(get_user_cache),
) -> SessionResolver:
    return SessionResolver(provider, cache, settings.ACCESS_COOKIE_NAME)


async def get_current_principal(
    request: Request,
    resolver: SessionResolver = Depends(get_session_resolver),
) -> Principal | None:
    return await resolver.current_principal(request)


def get_github_client(
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> GitHubOAuthClient:
    return GitHubOAuthClient(
        client,
        client_id=settings.GITHUB_CLIENT_ID,
        client_secret=settings.GITHUB_CLIENT_SECRET,
        redirect_uri=settings.github_callback_uri(),
    )


def get_github_state_codec(settings: Settings = Depends(get_settings)) -> StateCodec | None:
    """Codec keyed by the GitHub state secret; None when unconfigured."""
    secret = settings.github_state_key()
    if not secret:
        return None
    return StateCodec(secret, max_age_seconds=settings.STATE_MAX_AGE_SECONDS)


async def require_principal(
    principal: Principal | None = Depends(get_current_principal),
) -> Principal:
    if principal is None:
        raise unauthorized()
    return principal
