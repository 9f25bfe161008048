"""Authentication models for talentmatch."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProviderIdentity(BaseModel):
    model_config = ConfigDict(extra="ignore")

    provider: str
    id: str | None = None
    identity_data: dict[str, Any] = Field(default_factory=dict)

    @property
    def username(self) -> str | None:
        data = self.identity_data
        return data.get("user_name") or data.get("preferred_username")


class Principal(BaseModel):
    """Verified identity returned by the auth provider.

    Produced per request; persisted records are derived from it and it is
    never stored itself.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    email: str | None = None
    identities: list[ProviderIdentity] = Field(default_factory=list)
    user_metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: str | None = None
    email_confirmed_at: str | None = None

    def identity(self, provider: str) -> ProviderIdentity | None:
        for ident in self.identities:
            if ident.provider == provider:
                return ident
        return None


class AuthSession(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    token_type: str = "bearer"
    # OAuth provider token; handed over once at login, not kept by the provider
    provider_token: str | None = None
    user: Principal | None = None
