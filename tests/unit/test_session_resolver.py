"""
Unit tests for resolving the calling user through the cache.
"""

import pytest
from starlette.requests import Request

from talentmatch.auth.errors import ProviderError
from talentmatch.auth.session import SessionResolver, read_access_token
from talentmatch.cache import UserCache
from tests.helpers.fakes import FakeProvider, make_principal


def _request(headers=None, cookie=None):
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    if cookie:
        raw.append((b"cookie", cookie.encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "query_string": b"", "headers": raw})


def test_bearer_header_beats_cookie():
    req = _request({"Authorization": "Bearer hdr"}, "sb-access-token=ck")
    assert read_access_token(req, "sb-access-token") == "hdr"


def test_cookie_fallback():
    assert read_access_token(_request(cookie="sb-access-token=ck"), "sb-access-token") == "ck"
    assert read_access_token(_request(), "sb-access-token") is None


@pytest.fixture
def provider():
    p = FakeProvider()
    p.users["tok"] = make_principal()
    return p


async def test_lookup_is_cached(provider):
    resolver = SessionResolver(provider, UserCache(), "sb-access-token")
    req = _request({"Authorization": "Bearer tok"})
    assert (await resolver.current_principal(req)).id == "user-1"
    assert (await resolver.current_principal(req)).id == "user-1"
    assert len([c for c in provider.calls if c[0] == "get_user"]) == 1


async def test_anonymous(provider):
    resolver = SessionResolver(provider, UserCache(), "sb-access-token")
    assert await resolver.current_principal(_request()) is None
    assert provider.calls == []


async def test_provider_failure_is_anonymous(provider):
    provider.user_error = ProviderError(None, code="transport_error")
    resolver = SessionResolver(provider, UserCache(), "sb-access-token")
    assert await resolver.current_principal(_request({"Authorization": "Bearer tok"})) is None
