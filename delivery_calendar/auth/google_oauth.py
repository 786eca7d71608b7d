"""Direct Google OAuth sign-in (consent in the browser, tokens kept locally)."""

from __future__ import annotations

import asyncio
import logging

import httpx
from google.auth.exceptions import GoogleAuthError, RefreshError
from google.auth.exceptions import TransportError as GoogleTransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from oauthlib.oauth2.rfc6749.errors import (
    AccessDeniedError,
    MismatchingRedirectURIError,
    OAuth2Error,
)

from ..exceptions import SignInError, SignInFailure
from ..models import AuthProvider, GoogleUser, SignInResult
from ..sheets.constants import SCOPES

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"

DEFAULT_TIMEOUT = httpx.Timeout(15.0, connect=5.0)

_SIGN_IN_ERRORS = (OAuth2Error, GoogleAuthError, OSError, ValueError)


def classify_sign_in_error(error: BaseException) -> SignInFailure:
    """Map library errors onto the reasons shown to the user."""
    if isinstance(error, AccessDeniedError):
        return SignInFailure.CANCELLED
    text = str(error).lower()
    if isinstance(error, MismatchingRedirectURIError) or "redirect_uri_mismatch" in text:
        return SignInFailure.UNAUTHORIZED_DOMAIN
    if "unauthorized" in text and ("domain" in text or "origin" in text):
        return SignInFailure.UNAUTHORIZED_DOMAIN
    if isinstance(error, (GoogleTransportError, httpx.TransportError, ConnectionError, TimeoutError)):
        return SignInFailure.NETWORK
    return SignInFailure.OTHER


class GoogleOAuthProvider:
    """Google sign-in through the installed-app OAuth flow."""

    kind = AuthProvider.GOOGLE

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        scopes: list[str] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.scopes = scopes or list(SCOPES)
        self._http_client = http_client

    def _client_config(self) -> dict:
        return {
            "installed": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": ["http://localhost"],
            }
        }

    def _run_consent_flow_sync(self) -> Credentials:
        if not self.client_id:
            raise ValueError("GOOGLE_CLIENT_ID is not configured")
        flow = InstalledAppFlow.from_client_config(self._client_config(), self.scopes)
        logger.info("Running OAuth consent flow (local server)")
        return flow.run_local_server(
            port=0,
            access_type="offline",
            prompt="consent",
            include_granted_scopes="true",
        )

    def _refresh_sync(self, refresh_token: str) -> Credentials:
        creds = Credentials(
            token=None,
            refresh_token=refresh_token,
            client_id=self.client_id,
            client_secret=self.client_secret,
            token_uri=GOOGLE_TOKEN_URI,
            scopes=self.scopes,
        )
        creds.refresh(Request())
        return creds

    async def _fetch_profile(self, access_token: str) -> GoogleUser:
        """Profile of the signed-in user; a failed lookup keeps only the token."""
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            if self._http_client is None:
                async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
                    response = await client.get(USERINFO_URL, headers=headers)
            else:
                response = await self._http_client.get(USERINFO_URL, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.warning("Failed to load Google profile: %s", e)
            return GoogleUser(access_token=access_token)

        return GoogleUser(
            access_token=access_token,
            id=data.get("sub"),
            email=data.get("email"),
            name=data.get("name"),
        )

    async def sign_in(self) -> SignInResult:
        try:
            creds = await asyncio.to_thread(self._run_consent_flow_sync)
        except _SIGN_IN_ERRORS as e:
            reason = classify_sign_in_error(e)
            logger.error("Google sign-in failed (%s): %s", reason.value, e)
            raise SignInError(reason, str(e)) from e

        if not creds.token:
            raise SignInError(SignInFailure.OTHER, "Google не вернул токен доступа")

        user = await self._fetch_profile(creds.token)
        logger.info("Signed in with Google as %s", user.email or "<unknown>")
        return SignInResult(user=user, access_token=creds.token, refresh_token=creds.refresh_token)

    async def reauthenticate(self, refresh_token: str | None = None) -> SignInResult:
        """Refresh-token grant when possible, otherwise one more consent round trip."""
        if not refresh_token:
            logger.info("No refresh token stored; asking for consent again")
            return await self.sign_in()

        try:
            creds = await asyncio.to_thread(self._refresh_sync, refresh_token)
        except RefreshError as e:
            logger.error("Refresh token rejected: %s", e)
            raise SignInError(SignInFailure.OTHER, str(e)) from e
        except _SIGN_IN_ERRORS as e:
            raise SignInError(classify_sign_in_error(e), str(e)) from e

        return SignInResult(
            user=GoogleUser(access_token=creds.token),
            access_token=creds.token,
            refresh_token=creds.refresh_token or refresh_token,
        )

    async def sign_out(self) -> None:
        # Stored tokens are cleared by TokenManager; nothing server-side to end
        logger.info("Signed out of Google")
