"""Authentication package.

- tokens.py: access token storage, staleness and refresh
- google_oauth.py: direct Google OAuth sign-in
- firebase.py: federated Firebase sign-in
- base.py: IdentityProvider protocol
"""

from .base import IdentityProvider
from .firebase import FirebaseAuthProvider
from .google_oauth import GoogleOAuthProvider
from .tokens import (
    EXPIRY_HORIZON_MS,
    GRACE_WINDOW_MS,
    TokenManager,
    is_token_stale,
)

__all__ = [
    "IdentityProvider",
    "FirebaseAuthProvider",
    "GoogleOAuthProvider",
    "TokenManager",
    "is_token_stale",
    "GRACE_WINDOW_MS",
    "EXPIRY_HORIZON_MS",
]
