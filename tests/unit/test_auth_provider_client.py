"""
Unit tests for the auth provider HTTP client against a mocked transport.
"""

import json

import httpx
import pytest

from talentmatch.auth.errors import ProviderError
from talentmatch.auth.provider import AuthProviderClient

BASE = "https://project.supabase.test/auth/v1"

USER = {"id": "user-1", "email": "ada@example.com", "user_metadata": {"referral_code": "abcd1234"}}


def _client(handler) -> AuthProviderClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AuthProviderClient(http, BASE, "anon-key")


async def test_verify_otp_posts_token_hash():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        seen["apikey"] = request.headers["apikey"]
        return httpx.Response(200, json={"access_token": "a", "refresh_token": "r", "user": USER})

    session, user = await _client(handler).verify_otp("hash", "email")
    assert seen == {
        "url": f"{BASE}/verify",
        "body": {"type": "email", "token_hash": "hash"},
        "apikey": "anon-key",
    }
    assert session.access_token == "a"
    assert user.id == "user-1"


async def test_verify_otp_error_body():
    def handler(request):
        return httpx.Response(403, json={"code": 403, "error_code": "otp_expired", "msg": "Token has expired"})

    with pytest.raises(ProviderError) as exc:
        await _client(handler).verify_otp("hash", "email")
    assert exc.value.code == "otp_expired"
    assert exc.value.status == 403


async def test_exchange_code_uses_pkce_grant():
    seen = {}

    def handler(request):
        seen["grant"] = request.url.params["grant_type"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"access_token": "a", "expires_in": 3600, "user": USER})

    session = await _client(handler).exchange_code_for_session("code", "verifier")
    assert seen == {"grant": "pkce", "body": {"auth_code": "code", "code_verifier": "verifier"}}
    assert session.expires_in == 3600


async def test_exchange_without_session_raises():
    def handler(request):
        return httpx.Response(200, json={})

    with pytest.raises(ProviderError) as exc:
        await _client(handler).exchange_code_for_session("code", None)
    assert exc.value.code == "no_session"
    assert exc.value.message is None


async def test_get_user_unauthorized_is_none():
    def handler(request):
        assert request.headers["authorization"] == "Bearer tok"
        return httpx.Response(401, json={"msg": "invalid JWT"})

    assert await _client(handler).get_user("tok") is None


async def test_get_user_parses_principal():
    def handler(request):
        return httpx.Response(200, json=USER)

    user = await _client(handler).get_user("tok")
    assert user.user_metadata["referral_code"] == "abcd1234"


async def test_transport_error_wrapped():
    def handler(request):
        raise httpx.ConnectError("boom", request=request)

    with pytest.raises(ProviderError) as exc:
        await _client(handler).get_user("tok")
    assert exc.value.code == "transport_error"
