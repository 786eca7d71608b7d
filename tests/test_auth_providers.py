"""Tests for the Google and Firebase sign-in providers."""

import json
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs

import httpx
import pytest
from google.auth.exceptions import RefreshError
from oauthlib.oauth2.rfc6749.errors import AccessDeniedError, MismatchingRedirectURIError

from delivery_calendar.auth.firebase import FirebaseAuthProvider
from delivery_calendar.auth.google_oauth import GoogleOAuthProvider, classify_sign_in_error
from delivery_calendar.exceptions import SignInError, SignInFailure
from delivery_calendar.models import AuthProvider, FirebaseUser, GoogleUser, SignInResult


def _userinfo_client(status=200):
    def handler(request):
        assert request.headers["Authorization"] == "Bearer tok"
        return httpx.Response(
            status, json={"sub": "42", "email": "owner@example.com", "name": "Owner"}
        )

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestClassifySignInError:
    """Test cases for sign-in failure reasons."""

    def test_cancelled(self):
        assert classify_sign_in_error(AccessDeniedError()) == SignInFailure.CANCELLED

    def test_redirect_mismatch(self):
        assert (
            classify_sign_in_error(MismatchingRedirectURIError())
            == SignInFailure.UNAUTHORIZED_DOMAIN
        )

    def test_network(self):
        assert classify_sign_in_error(ConnectionError("reset")) == SignInFailure.NETWORK

    def test_other(self):
        assert classify_sign_in_error(ValueError("boom")) == SignInFailure.OTHER


class TestGoogleOAuthProvider:
    """Test cases for GoogleOAuthProvider."""

    @pytest.mark.asyncio
    async def test_sign_in(self):
        async with _userinfo_client() as http:
            provider = GoogleOAuthProvider("cid", "secret", http_client=http)
            provider._run_consent_flow_sync = MagicMock(
                return_value=MagicMock(token="tok", refresh_token="ref")
            )

            result = await provider.sign_in()

        assert result.access_token == "tok"
        assert result.refresh_token == "ref"
        assert result.user == GoogleUser(
            access_token="tok", id="42", email="owner@example.com", name="Owner"
        )
        assert result.user.provider == AuthProvider.GOOGLE

    @pytest.mark.asyncio
    async def test_sign_in_profile_failure_keeps_token(self):
        async with _userinfo_client(status=500) as http:
            provider = GoogleOAuthProvider("cid", "secret", http_client=http)
            provider._run_consent_flow_sync = MagicMock(
                return_value=MagicMock(token="tok", refresh_token=None)
            )

            result = await provider.sign_in()

        assert result.user == GoogleUser(access_token="tok")

    @pytest.mark.asyncio
    async def test_sign_in_cancelled(self):
        provider = GoogleOAuthProvider("cid", "secret")
        provider._run_consent_flow_sync = MagicMock(side_effect=AccessDeniedError())

        with pytest.raises(SignInError) as exc_info:
            await provider.sign_in()

        assert exc_info.value.reason == SignInFailure.CANCELLED

    @pytest.mark.asyncio
    async def test_reauthenticate_with_refresh_token(self):
        provider = GoogleOAuthProvider("cid", "secret")
        provider._refresh_sync = MagicMock(return_value=MagicMock(token="new", refresh_token=None))
        provider.sign_in = AsyncMock()

        result = await provider.reauthenticate("ref")

        provider._refresh_sync.assert_called_once_with("ref")
        provider.sign_in.assert_not_awaited()
        assert result.access_token == "new"
        assert result.refresh_token == "ref"

    @pytest.mark.asyncio
    async def test_reauthenticate_without_refresh_token(self):
        provider = GoogleOAuthProvider("cid", "secret")
        expected = SignInResult(user=GoogleUser(access_token="t"), access_token="t")
        provider.sign_in = AsyncMock(return_value=expected)

        assert await provider.reauthenticate(None) is expected

    @pytest.mark.asyncio
    async def test_reauthenticate_rejected(self):
        provider = GoogleOAuthProvider("cid", "secret")
        provider._refresh_sync = MagicMock(side_effect=RefreshError("invalid_grant"))

        with pytest.raises(SignInError):
            await provider.reauthenticate("ref")


@pytest.fixture
def google_provider():
    google = MagicMock()
    google.kind = AuthProvider.GOOGLE
    google.sign_in = AsyncMock(
        return_value=SignInResult(
            user=GoogleUser(access_token="g-tok"), access_token="g-tok", refresh_token="g-ref"
        )
    )
    google.reauthenticate = AsyncMock(
        return_value=SignInResult(user=GoogleUser(access_token="g-new"), access_token="g-new")
    )
    return google


class TestFirebaseAuthProvider:
    """Test cases for FirebaseAuthProvider."""

    @pytest.mark.asyncio
    async def test_sign_in_exchanges_google_token(self, google_provider):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["key"] = request.url.params["key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "localId": "uid-1",
                    "email": "owner@example.com",
                    "displayName": "Owner",
                    "idToken": "id-token",
                },
            )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            provider = FirebaseAuthProvider("fb-key", google_provider, http_client=http)
            result = await provider.sign_in()

        assert seen["path"] == "/v1/accounts:signInWithIdp"
        assert seen["key"] == "fb-key"
        post_body = parse_qs(seen["body"]["postBody"])
        assert post_body == {"access_token": ["g-tok"], "providerId": ["google.com"]}

        assert result.user == FirebaseUser(
            uid="uid-1", email="owner@example.com", display_name="Owner"
        )
        assert result.access_token == "g-tok"
        assert result.refresh_token == "g-ref"
        assert provider.current_user == result.user

    @pytest.mark.asyncio
    async def test_unauthorized_domain(self, google_provider):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(
                400, json={"error": {"message": "UNAUTHORIZED_DOMAIN : host not allowed"}}
            )
        )
        async with httpx.AsyncClient(transport=transport) as http:
            provider = FirebaseAuthProvider("fb-key", google_provider, http_client=http)
            with pytest.raises(SignInError) as exc_info:
                await provider.sign_in()

        assert exc_info.value.reason == SignInFailure.UNAUTHORIZED_DOMAIN
        assert provider.current_user is None

    @pytest.mark.asyncio
    async def test_network_failure(self, google_provider):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            provider = FirebaseAuthProvider("fb-key", google_provider, http_client=http)
            with pytest.raises(SignInError) as exc_info:
                await provider.sign_in()

        assert exc_info.value.reason == SignInFailure.NETWORK

    @pytest.mark.asyncio
    async def test_reauthenticate_keeps_user(self, google_provider):
        provider = FirebaseAuthProvider("fb-key", google_provider)
        provider.current_user = FirebaseUser(uid="uid-1")

        result = await provider.reauthenticate("g-ref")

        google_provider.reauthenticate.assert_awaited_once_with("g-ref")
        assert result.user == FirebaseUser(uid="uid-1")
        assert result.access_token == "g-new"

    @pytest.mark.asyncio
    async def test_password_sign_in_has_no_sheets_token(self, google_provider):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"localId": "uid-2", "email": "a@b.c"})
        )
        async with httpx.AsyncClient(transport=transport) as http:
            provider = FirebaseAuthProvider("fb-key", google_provider, http_client=http)
            result = await provider.sign_in_with_password("a@b.c", "secret")

        assert result.access_token is None
        assert result.user.uid == "uid-2"

    @pytest.mark.asyncio
    async def test_register(self, google_provider):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["key"] = request.url.params["key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200, json={"localId": "uid-3", "email": "new@b.c", "idToken": "id-3"}
            )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            provider = FirebaseAuthProvider("fb-key", google_provider, http_client=http)
            result = await provider.register("new@b.c", "secret")

        assert seen["path"] == "/v1/accounts:signUp"
        assert seen["key"] == "fb-key"
        assert seen["body"] == {
            "email": "new@b.c",
            "password": "secret",
            "returnSecureToken": True,
        }
        assert result.access_token is None
        assert result.user == FirebaseUser(uid="uid-3", email="new@b.c")
        assert provider.current_user == result.user
        google_provider.sign_in.assert_not_called()

    @pytest.mark.asyncio
    async def test_sign_out(self, google_provider):
        provider = FirebaseAuthProvider("fb-key", google_provider)
        provider.current_user = FirebaseUser(uid="uid-1")

        await provider.sign_out()

        assert provider.current_user is None
