"""
Unit tests for the PostgREST data store client against a mocked transport.
"""

import json

import httpx
import pytest

from talentmatch.datastore import DataStore, DataStoreError

BASE = "https://project.supabase.test/rest/v1"


def _store(handler) -> DataStore:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DataStore(http, BASE, "service-key")


async def test_select_one_builds_eq_filters():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers["authorization"]
        return httpx.Response(200, json=[{"id": "user-1"}])

    row = await _store(handler).select_one("student", {"id": "user-1"})
    assert row == {"id": "user-1"}
    assert seen == {
        "path": "/rest/v1/student",
        "params": {"id": "eq.user-1", "select": "id", "limit": "1"},
        "auth": "Bearer service-key",
    }


async def test_select_one_empty():
    assert await _store(lambda r: httpx.Response(200, json=[])).select_one("company", {"id": "x"}) is None


async def test_insert_with_conflict_resolution():
    seen = {}

    def handler(request):
        seen["prefer"] = request.headers["prefer"]
        seen["on_conflict"] = request.url.params["on_conflict"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(201)

    await _store(handler).insert(
        "student", {"id": "u"}, on_conflict="id", resolution="ignore-duplicates"
    )
    assert seen == {
        "prefer": "resolution=ignore-duplicates,return=minimal",
        "on_conflict": "id",
        "body": {"id": "u"},
    }


async def test_rpc_returns_body():
    def handler(request):
        assert request.url.path == "/rest/v1/rpc/apply_referral_code_admin"
        return httpx.Response(200, json=[{"success": True, "error_message": None}])

    result = await _store(handler).rpc("apply_referral_code_admin", {"p_user_id": "u", "p_code": "abcd1234"})
    assert result == [{"success": True, "error_message": None}]


async def test_error_status_raises():
    def handler(request):
        return httpx.Response(409, json={"code": "23505", "message": "duplicate key"})

    with pytest.raises(DataStoreError) as exc:
        await _store(handler).delete("oauth_connections", {"user_id": "u"})
    assert exc.value.status == 409
    assert exc.value.code == "23505"


async def test_transport_error_raises():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(DataStoreError):
        await _store(handler).update("student", {"id": "u"}, {"mail_adress": "x"})
