from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # Canonical public origin, e.g. https://www.example.com
    APP_URL: str | None = None
    # Comma separated deprecated public hostnames that bounce to APP_URL
    LEGACY_HOSTS: str = ""

    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_ANON_KEY: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""

    GITHUB_CLIENT_ID: str = ""
    GITHUB_CLIENT_SECRET: str = ""
    GITHUB_STATE_SECRET: str = ""
    GITHUB_REDIRECT_URI: str | None = None

    REFERRAL_COOKIE_NAME: str = "jobelix_referral"
    ACCESS_COOKIE_NAME: str = "sb-access-token"
    REFRESH_COOKIE_NAME: str = "sb-refresh-token"
    CODE_VERIFIER_COOKIE_NAME: str = "sb-code-verifier"
    COOKIE_SECURE: bool | None = None
    REFRESH_COOKIE_MAX_AGE: int = 60 * 60 * 24 * 30

    DEFAULT_REDIRECT: str = "/dashboard"
    LOGIN_PATH: str = "/login"
    POPUP_SUCCESS_PATH: str = "/auth/callback-success"
    GITHUB_SUCCESS_PATH: str = "/oauth/github/callback-success"

    STATE_MAX_AGE_SECONDS: int = 600
    USER_CACHE_TTL_SECONDS: float = 3.0
    USER_CACHE_MAX_ENTRIES: int = 1024
    HTTP_CLIENT_TIMEOUT: float = 10.0

    @property
    def legacy_host_list(self) -> list[str]:
        return [h.strip().lower() for h in self.LEGACY_HOSTS.split(",") if h.strip()]

    @property
    def auth_url(self) -> str:
        return self.SUPABASE_URL.rstrip("/") + "/auth/v1"

    @property
    def rest_url(self) -> str:
        return self.SUPABASE_URL.rstrip("/") + "/rest/v1"

    @property
    def secure_cookies(self) -> bool:
        if self.COOKIE_SECURE is not None:
            return self.COOKIE_SECURE
        return self.ENV.strip().lower() not in {"dev", "test", "local"}

    def github_state_key(self) -> str:
        """HMAC key for GitHub OAuth state; falls back to the client secret."""
        return self.GITHUB_STATE_SECRET or self.GITHUB_CLIENT_SECRET

    def github_callback_uri(self) -> str:
        if self.GITHUB_REDIRECT_URI:
            return self.GITHUB_REDIRECT_URI
        base = (self.APP_URL or "http://localhost:3000").rstrip("/")
        return f"{base}/api/oauth/github/callback"


@lru_cache
def get_settings() -> Settings:
    return Settings()
