"""
Unit tests for legacy-host detection and canonical redirect URLs.
"""

import pytest
from starlette.requests import Request

from talentmatch.security.domain import (
    canonical_origin,
    canonical_redirect_url,
    is_legacy_host,
)
from talentmatch.settings import Settings


def _request(host: str, path: str = "/auth/callback", query: str = "", scheme: str = "https", headers=None):
    raw = [(b"host", host.encode())]
    for k, v in (headers or {}).items():
        raw.append((k.lower().encode(), v.encode()))
    scope = {
        "type": "http",
        "method": "GET",
        "scheme": scheme,
        "path": path,
        "raw_path": path.encode(),
        "query_string": query.encode(),
        "headers": raw,
        "server": (host, 443),
    }
    return Request(scope)


@pytest.fixture
def cfg():
    return Settings(APP_URL="https://www.example.com", LEGACY_HOSTS="old-example.com, legacy.io")


class TestIsLegacyHost:
    @pytest.mark.parametrize(
        "host",
        ["old-example.com", "www.old-example.com", "OLD-EXAMPLE.COM:443", "legacy.io"],
    )
    def test_matches(self, host):
        assert is_legacy_host(host, ["old-example.com", "legacy.io"])

    @pytest.mark.parametrize("host", [None, "", "www.example.com", "notold-example.com"])
    def test_non_matches(self, host):
        assert not is_legacy_host(host, ["old-example.com"])


class TestCanonicalRedirect:
    def test_preserves_path_and_query(self, cfg):
        req = _request("old-example.com", query="code=abc&next=%2Fprofile")
        assert (
            canonical_redirect_url(req, cfg)
            == "https://www.example.com/auth/callback?code=abc&next=%2Fprofile"
        )

    def test_canonical_host_not_redirected(self, cfg):
        assert canonical_redirect_url(_request("www.example.com"), cfg) is None

    def test_no_origin_known(self):
        cfg = Settings(APP_URL=None, LEGACY_HOSTS="old-example.com")
        assert canonical_redirect_url(_request("old-example.com"), cfg) is None

    def test_forwarded_headers_used_without_app_url(self):
        cfg = Settings(APP_URL=None)
        req = _request(
            "old-example.com",
            headers={"X-Forwarded-Host": "www.example.com", "X-Forwarded-Proto": "https"},
        )
        assert canonical_origin(req, cfg) == "https://www.example.com"

    def test_same_origin_target_is_not_a_loop(self):
        cfg = Settings(APP_URL="https://old-example.com", LEGACY_HOSTS="old-example.com")
        assert canonical_redirect_url(_request("old-example.com"), cfg) is None

    def test_forwarded_same_host_behind_tls_proxy_is_not_a_loop(self):
        cfg = Settings(APP_URL=None, LEGACY_HOSTS="old-example.com")
        req = _request(
            "old-example.com",
            query="code=abc",
            scheme="http",
            headers={"X-Forwarded-Host": "old-example.com", "X-Forwarded-Proto": "https"},
        )
        assert canonical_redirect_url(req, cfg) is None

    def test_target_on_another_legacy_host_is_not_followed(self):
        cfg = Settings(APP_URL="https://legacy.io", LEGACY_HOSTS="old-example.com, legacy.io")
        assert canonical_redirect_url(_request("old-example.com"), cfg) is None
