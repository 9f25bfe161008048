"""
Unit tests for flow selection and verification.
"""

import pytest

from talentmatch.auth.errors import AuthFailure, AuthFailureKind, Flow, ProviderError
from talentmatch.auth.verifier import CallbackParams, IdentityVerifier, VerifiedLogin
from tests.helpers.fakes import FakeProvider, make_principal, make_session


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def verifier(provider):
    return IdentityVerifier(provider)


class TestFlowSelection:
    def test_token_flow(self):
        params = CallbackParams.from_query({"token_hash": "h", "type": "email"})
        assert params.flow is Flow.TOKEN

    def test_legacy_token_name(self):
        params = CallbackParams.from_query({"token": "h", "type": "signup"})
        assert params.token_hash == "h"
        assert params.flow is Flow.TOKEN

    def test_token_beats_code(self):
        params = CallbackParams.from_query({"code": "c", "token_hash": "h", "type": "email"})
        assert params.flow is Flow.TOKEN

    def test_token_without_type_falls_to_code(self):
        params = CallbackParams.from_query({"code": "c", "token_hash": "h"})
        assert params.flow is Flow.CODE

    def test_nothing(self):
        assert CallbackParams.from_query({}).flow is Flow.NONE


class TestTokenFlow:
    async def test_success(self, verifier, provider):
        user = make_principal()
        provider.otp_result = (make_session(user), user)
        login = await verifier.verify(CallbackParams(token_hash="h", otp_type="magiclink"))
        assert login.principal.id == "user-1"
        assert login.flow is Flow.TOKEN
        assert provider.calls == [("verify_otp", ("h", "magiclink"))]

    async def test_unknown_type_never_reaches_provider(self, verifier, provider):
        with pytest.raises(AuthFailure) as exc:
            await verifier.verify(CallbackParams(token_hash="h", otp_type="bogus"))
        assert exc.value.kind is AuthFailureKind.INVALID_LINK_TYPE
        assert provider.calls == []

    async def test_expired(self, verifier, provider):
        provider.otp_error = ProviderError("Token has expired or is invalid", code="otp_expired")
        with pytest.raises(AuthFailure) as exc:
            await verifier.verify(CallbackParams(token_hash="h", otp_type="email"))
        assert exc.value.kind is AuthFailureKind.EXPIRED

    async def test_no_user(self, verifier, provider):
        provider.otp_result = (None, None)
        with pytest.raises(AuthFailure) as exc:
            await verifier.verify(CallbackParams(token_hash="h", otp_type="email"))
        assert exc.value.kind is AuthFailureKind.AUTHENTICATION_FAILED


class TestCodeFlow:
    async def test_success_passes_verifier(self, verifier, provider):
        user = make_principal()
        provider.exchange_result = make_session(access_token="tok")
        provider.users["tok"] = user
        login = await verifier.verify(CallbackParams(code="c", code_verifier="v"))
        assert login.principal == user
        assert provider.calls[0] == ("exchange", ("c", "v"))

    async def test_invalid_grant_reads_as_expired(self, verifier, provider):
        provider.exchange_error = ProviderError("bad", code="invalid_grant")
        with pytest.raises(AuthFailure) as exc:
            await verifier.verify(CallbackParams(code="c"))
        assert exc.value.kind is AuthFailureKind.EXPIRED

    async def test_user_lookup_failure(self, verifier, provider):
        provider.exchange_result = make_session(access_token="tok")
        provider.user_error = ProviderError(None, code="transport_error")
        with pytest.raises(AuthFailure) as exc:
            await verifier.verify(CallbackParams(code="c"))
        assert exc.value.kind is AuthFailureKind.AUTHENTICATION_FAILED


async def test_missing_parameters(verifier, provider):
    with pytest.raises(AuthFailure) as exc:
        await verifier.verify(CallbackParams())
    assert exc.value.kind is AuthFailureKind.MISSING_PARAMETERS
    assert provider.calls == []


def test_provider_token_prefers_session():
    user = make_principal(user_metadata={"provider_token": "from-meta"})
    login = VerifiedLogin(user, make_session(provider_token="from-session"), Flow.CODE)
    assert login.provider_token == "from-session"
    assert VerifiedLogin(user, None, Flow.TOKEN).provider_token == "from-meta"
