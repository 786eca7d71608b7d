"""Identity provider interface."""

from __future__ import annotations

from typing import Protocol

from ..models import AuthProvider, SignInResult


class IdentityProvider(Protocol):
    """Sign-in backend. Failures raise SignInError with a SignInFailure reason."""

    kind: AuthProvider

    async def sign_in(self) -> SignInResult:
        """Interactive consent round trip."""
        ...

    async def reauthenticate(self, refresh_token: str | None = None) -> SignInResult:
        """Obtain a replacement access token with as little interaction as possible."""
        ...

    async def sign_out(self) -> None: ...
