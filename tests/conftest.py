"""Test-specific fixtures."""

import os

os.environ.setdefault("ENV", "test")
os.environ.setdefault("PYTEST_RUNNING", "1")

import httpx  # noqa: E402
import pytest  # noqa: E402
from starlette.testclient import TestClient  # noqa: E402

from talentmatch.api import deps  # noqa: E402
from talentmatch.integrations.github import GitHubOAuthClient  # noqa: E402
from talentmatch.main import create_app  # noqa: E402
from talentmatch.settings import Settings  # noqa: E402
from tests.helpers.fakes import FakeDataStore, FakeProvider  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    return Settings(
        ENV="test",
        APP_URL="https://www.example.com",
        LEGACY_HOSTS="old-example.com",
        SUPABASE_URL="https://project.supabase.test",
        SUPABASE_ANON_KEY="anon-key",
        SUPABASE_SERVICE_ROLE_KEY="service-key",
        GITHUB_CLIENT_ID="gh-client",
        GITHUB_CLIENT_SECRET="gh-secret",
        GITHUB_STATE_SECRET="gh-state-secret",
        GITHUB_REDIRECT_URI="https://www.example.com/api/oauth/github/callback",
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def store() -> FakeDataStore:
    return FakeDataStore()


@pytest.fixture
def github_routes():
    """Mocked GitHub API, keyed by URL without query; tests replace entries."""

    def token(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"access_token": "gho_abc", "token_type": "bearer", "scope": "read:user,repo"},
        )

    def user(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "login": "octocat",
                "name": "The Octocat",
                "avatar_url": "https://avatars.example/octocat",
                "html_url": "https://github.com/octocat",
            },
        )

    return {
        "https://github.com/login/oauth/access_token": token,
        "https://api.github.com/user": user,
    }


@pytest.fixture
def app(settings, provider, store, github_routes):
    application = create_app(settings)

    def route(request: httpx.Request) -> httpx.Response:
        handler = github_routes.get(f"{request.url.scheme}://{request.url.host}{request.url.path}")
        return handler(request) if handler else httpx.Response(404)

    gh_http = httpx.AsyncClient(transport=httpx.MockTransport(route))

    application.dependency_overrides[deps.get_auth_provider] = lambda: provider
    application.dependency_overrides[deps.get_datastore] = lambda: store
    application.dependency_overrides[deps.get_github_client] = lambda: GitHubOAuthClient(
        gh_http,
        client_id=settings.GITHUB_CLIENT_ID,
        client_secret=settings.GITHUB_CLIENT_SECRET,
        redirect_uri=settings.github_callback_uri(),
    )
    return application


@pytest.fixture
def client(app):
    with TestClient(app, follow_redirects=False) as c:
        yield c
