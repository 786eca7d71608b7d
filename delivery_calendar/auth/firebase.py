"""Federated sign-in through Firebase Authentication (Identity Toolkit REST API)."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import httpx

from ..exceptions import SignInError, SignInFailure
from ..models import AuthProvider, FirebaseUser, SignInResult
from .google_oauth import GoogleOAuthProvider

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1/accounts:{method}"

DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)

_UNAUTHORIZED_DOMAIN_CODES = (
    "UNAUTHORIZED_DOMAIN",
    "API_KEY_HTTP_REFERRER_BLOCKED",
    "INVALID_CONTINUE_URI",
)


def _classify_firebase_error(code: str) -> SignInFailure:
    if any(marker in code for marker in _UNAUTHORIZED_DOMAIN_CODES):
        return SignInFailure.UNAUTHORIZED_DOMAIN
    if "CANCELLED" in code:
        return SignInFailure.CANCELLED
    return SignInFailure.OTHER


class FirebaseAuthProvider:
    """Firebase identity backed by a Google OAuth credential.

    The Google access token from the consent flow is exchanged for a
    Firebase user; the same Google token then authorizes Sheets access.
    """

    kind = AuthProvider.FIREBASE

    def __init__(
        self,
        api_key: str,
        google: GoogleOAuthProvider,
        request_uri: str = "http://localhost",
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.google = google
        self.request_uri = request_uri
        self._http_client = http_client
        self.current_user: FirebaseUser | None = None
        self._id_token: str | None = None

    async def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST to an accounts:* endpoint and return the JSON body."""
        url = IDENTITY_TOOLKIT_URL.format(method=method)
        params = {"key": self.api_key}
        try:
            if self._http_client is None:
                async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
                    response = await client.post(url, params=params, json=payload)
            else:
                response = await self._http_client.post(url, params=params, json=payload)
        except httpx.TransportError as e:
            logger.error("Firebase %s request failed: %s", method, e)
            raise SignInError(SignInFailure.NETWORK, str(e)) from e

        if response.is_success:
            return response.json()

        try:
            code = response.json().get("error", {}).get("message", "")
        except ValueError:
            code = response.text
        reason = _classify_firebase_error(code)
        logger.error("Firebase %s failed (%s): %s", method, response.status_code, code)
        raise SignInError(reason, code or f"HTTP {response.status_code}")

    def _remember(self, data: dict[str, Any]) -> FirebaseUser:
        user = FirebaseUser(
            uid=data["localId"],
            email=data.get("email", ""),
            display_name=data.get("displayName"),
        )
        self.current_user = user
        self._id_token = data.get("idToken")
        return user

    async def sign_in(self) -> SignInResult:
        """Google consent, then exchange of the Google credential for a Firebase user."""
        google_result = await self.google.sign_in()
        if not google_result.access_token:
            raise SignInError(SignInFailure.OTHER, "Google не вернул токен доступа")

        data = await self._call(
            "signInWithIdp",
            {
                "postBody": urlencode(
                    {"access_token": google_result.access_token, "providerId": "google.com"}
                ),
                "requestUri": self.request_uri,
                "returnSecureToken": True,
                "returnIdpCredential": True,
            },
        )
        user = self._remember(data)
        access_token = data.get("oauthAccessToken") or google_result.access_token
        if not access_token:
            logger.warning("Firebase sign-in returned no Google access token; Sheets access limited")

        logger.info("Signed in with Firebase as %s", user.email or user.uid)
        return SignInResult(
            user=user,
            access_token=access_token,
            refresh_token=google_result.refresh_token,
        )

    async def reauthenticate(self, refresh_token: str | None = None) -> SignInResult:
        """New Google access token for the current Firebase user."""
        if self.current_user is None:
            return await self.sign_in()
        google_result = await self.google.reauthenticate(refresh_token)
        return SignInResult(
            user=self.current_user,
            access_token=google_result.access_token,
            refresh_token=google_result.refresh_token,
        )

    async def sign_in_with_password(self, email: str, password: str) -> SignInResult:
        """Email/password sign-in. Grants no Google Sheets token."""
        data = await self._call(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return SignInResult(user=self._remember(data), access_token=None)

    async def register(self, email: str, password: str) -> SignInResult:
        """Create an email/password account and sign it in."""
        data = await self._call(
            "signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        logger.info("Registered Firebase user %s", email)
        return SignInResult(user=self._remember(data), access_token=None)

    async def sign_out(self) -> None:
        self.current_user = None
        self._id_token = None
        logger.info("Signed out of Firebase")
