"""Google access token lifecycle.

The token is stored together with the time it was issued. Google tokens
live 60 minutes; we treat them as stale after 58 to leave room for a
refresh, and never call a token younger than 5 minutes stale.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx

from ..exceptions import DeliveryCalendarError, ReauthRequiredError, SheetsApiError
from ..models import SignInResult, TokenState
from ..storage.kv import KeyValueStore
from .base import IdentityProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

ACCESS_TOKEN_KEY = "google_access_token"
AUTH_TIMESTAMP_KEY = "google_auth_timestamp"
REFRESH_TOKEN_KEY = "google_refresh_token"

GRACE_WINDOW_MS = 5 * 60 * 1000
EXPIRY_HORIZON_MS = 58 * 60 * 1000

TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"


def now_ms() -> int:
    return int(time.time() * 1000)


def is_token_stale(issued_at_ms: int, current_ms: int) -> bool:
    """Staleness rule for a token issued at issued_at_ms."""
    elapsed = current_ms - issued_at_ms
    if elapsed < GRACE_WINDOW_MS:
        return False
    return elapsed > EXPIRY_HORIZON_MS


def _parse_timestamp(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return -1


class TokenManager:
    """Persists the access token and replaces it through the identity provider."""

    def __init__(
        self,
        kv: KeyValueStore,
        provider: IdentityProvider | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.kv = kv
        self.provider = provider
        self.clock = clock

    async def get_access_token(self) -> str | None:
        return await self.kv.get(ACCESS_TOKEN_KEY)

    async def get_refresh_token(self) -> str | None:
        return await self.kv.get(REFRESH_TOKEN_KEY)

    async def get_state(self) -> TokenState | None:
        token = await self.get_access_token()
        if not token:
            return None
        return TokenState(
            access_token=token,
            issued_at_ms=_parse_timestamp(await self.kv.get(AUTH_TIMESTAMP_KEY)),
            refresh_token=await self.get_refresh_token(),
        )

    async def set_access_token(self, token: str) -> None:
        """Store a token and stamp its issuance time."""
        if not token:
            logger.error("Refusing to store an empty access token")
            return
        await self.kv.set(ACCESS_TOKEN_KEY, token)
        await self.kv.set(AUTH_TIMESTAMP_KEY, str(self.clock()))
        logger.info("Google access token stored (length %d)", len(token))

    async def set_refresh_token(self, token: str) -> None:
        if not token:
            logger.warning("Refusing to store an empty refresh token")
            return
        await self.kv.set(REFRESH_TOKEN_KEY, token)
        logger.info("Google refresh token stored")

    async def store(self, result: SignInResult) -> None:
        """Persist the tokens of a sign-in result."""
        if result.access_token:
            await self.set_access_token(result.access_token)
        if result.refresh_token:
            await self.set_refresh_token(result.refresh_token)

    async def clear(self) -> None:
        await self.kv.remove(ACCESS_TOKEN_KEY, AUTH_TIMESTAMP_KEY, REFRESH_TOKEN_KEY)
        logger.info("All stored Google tokens cleared")

    async def is_expired(self) -> bool:
        state = await self.get_state()
        if state is None:
            logger.debug("No access token stored")
            return True
        if state.issued_at_ms is None:
            logger.debug("No issuance timestamp stored")
            return True
        if state.issued_at_ms <= 0:
            # Unknown issuance time: let the API decide
            logger.warning("Invalid token timestamp; treating token as valid")
            return False

        current = self.clock()
        expired = is_token_stale(state.issued_at_ms, current)
        logger.debug(
            "Token age %ds, expired=%s, has_refresh_token=%s",
            (current - state.issued_at_ms) // 1000,
            expired,
            bool(state.refresh_token),
        )
        return expired

    async def refresh(self) -> bool:
        """One silent re-authentication round trip. True if a new token was stored."""
        if self.provider is None:
            logger.warning("No identity provider configured; cannot refresh token")
            return False

        logger.info("Refreshing Google access token via %s", self.provider.kind.value)
        try:
            result = await self.provider.reauthenticate(await self.get_refresh_token())
        except DeliveryCalendarError as e:
            logger.error("Token refresh failed: %s", e)
            return False

        if not result.access_token:
            logger.error("Identity provider returned no access token")
            return False

        await self.store(result)
        return True

    async def ensure_fresh(self) -> str | None:
        """Return a usable token, refreshing a stale one.

        Returns None when no token is stored (API-key access). Raises
        ReauthRequiredError when a stale token cannot be replaced.
        """
        token = await self.get_access_token()
        if not token:
            return None
        if not await self.is_expired():
            return token
        if await self.refresh():
            return await self.get_access_token()
        await self.clear()
        raise ReauthRequiredError("Требуется повторная авторизация OAuth")

    async def call_with_refresh(self, operation: Callable[[str | None], Awaitable[T]]) -> T:
        """Run operation(token); on 401 refresh once and retry once."""
        try:
            return await operation(await self.get_access_token())
        except SheetsApiError as e:
            if e.status != 401:
                raise
            logger.info("Got 401 from Sheets API, refreshing token")
            if not await self.refresh():
                await self.clear()
                raise ReauthRequiredError(
                    "Не удалось обновить токен. Требуется повторная авторизация."
                ) from e
        return await operation(await self.get_access_token())

    async def verify(self, client: httpx.AsyncClient | None = None) -> bool:
        """Ask Google whether the stored token still works; refresh once if not."""
        token = await self.get_access_token()
        if not token:
            logger.info("Cannot verify token: none stored")
            return False

        try:
            if client is None:
                async with httpx.AsyncClient(timeout=10.0) as own_client:
                    response = await own_client.get(TOKENINFO_URL, params={"access_token": token})
            else:
                response = await client.get(TOKENINFO_URL, params={"access_token": token})
        except httpx.HTTPError as e:
            logger.error("Token verification request failed: %s", e)
            return False

        if response.is_success:
            return True

        if response.status_code in (400, 401, 403):
            logger.info("Stored token rejected (%s), refreshing", response.status_code)
            if await self.refresh():
                return True
            await self.clear()
        return False
