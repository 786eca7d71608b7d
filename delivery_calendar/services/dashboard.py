"""Application context: session, stores and services wired together."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence

from ..auth.firebase import FirebaseAuthProvider
from ..auth.google_oauth import GoogleOAuthProvider
from ..auth.tokens import TokenManager
from ..config import Settings, get_settings
from ..exceptions import ReauthRequiredError, SignInError, SignInFailure
from ..models import AuthProvider, AuthState, DeliveryEvent, FirebaseUser, GoogleUser
from ..monitoring import with_error_capture
from ..sheets.client import SheetsClient
from ..storage.base import ConfigStore
from ..storage.kv import KeyValueStore
from ..storage.local_configs import LocalConfigStore
from ..storage.remote_configs import FirestoreConfigStore, build_firestore_client
from .delivery_service import DeliveryService
from .updater import DeliveryUpdater

logger = logging.getLogger(__name__)

# Which sign-in method owns the stored tokens
SESSION_KEY = "auth_session"


class Dashboard:
    """Everything a dashboard session needs, passed around explicitly."""

    def __init__(
        self,
        settings: Settings,
        kv: KeyValueStore,
        sheets: SheetsClient,
        google: GoogleOAuthProvider,
        firebase: FirebaseAuthProvider | None = None,
        remote_store: FirestoreConfigStore | None = None,
    ):
        self.settings = settings
        self.kv = kv
        self.sheets = sheets
        self.google = google
        self.firebase = firebase

        self.tokens = TokenManager(kv, provider=google)
        self.local_store = LocalConfigStore(kv, allow_multi_letter=settings.multi_letter_columns)
        self.remote_store = remote_store
        self.service = DeliveryService(
            sheets,
            self.tokens,
            self.local_store,
            remote_store=remote_store,
            dev_mode=settings.dev_mode,
        )
        self.updater = DeliveryUpdater(sheets, self.tokens, self.service)
        self.auth = AuthState()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> Dashboard:
        settings = settings or get_settings()
        google = GoogleOAuthProvider(settings.google_client_id, settings.google_client_secret)

        firebase = None
        remote_store = None
        if settings.firebase_enabled:
            firebase = FirebaseAuthProvider(settings.firebase_api_key, google)
            remote_store = FirestoreConfigStore(
                build_firestore_client(settings),
                allow_multi_letter=settings.multi_letter_columns,
            )
        else:
            logger.info("Firebase not configured; only Google sign-in is available")

        return cls(
            settings=settings,
            kv=KeyValueStore(settings.db_path),
            sheets=SheetsClient(api_key=settings.google_sheets_api_key),
            google=google,
            firebase=firebase,
            remote_store=remote_store,
        )

    def active_store(self) -> ConfigStore:
        """Firestore for Firebase sessions, local storage otherwise."""
        if (
            self.auth.provider == AuthProvider.FIREBASE
            and self.remote_store is not None
        ):
            return self.remote_store
        return self.local_store

    def _bind_session(self) -> None:
        user = self.auth.user
        if self.remote_store is not None:
            self.remote_store.user_id = user.uid if isinstance(user, FirebaseUser) else None
        self.service.active_store = self.active_store()

    async def _save_session(self, user: FirebaseUser | GoogleUser) -> None:
        record: dict[str, str | None] = {"provider": user.provider.value}
        if isinstance(user, FirebaseUser):
            record.update(uid=user.uid, email=user.email, display_name=user.display_name)
        await self.kv.set(SESSION_KEY, json.dumps(record, ensure_ascii=False))

    async def _load_session(self) -> dict | None:
        raw = await self.kv.get(SESSION_KEY)
        if not raw:
            return None
        try:
            record = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored session record is not valid JSON; ignoring it")
            return None
        return record if isinstance(record, dict) else None

    async def _end_session(self) -> None:
        await self.tokens.clear()
        await self.kv.remove(SESSION_KEY)
        self.auth = AuthState()
        self.tokens.provider = self.google
        self._bind_session()

    async def sign_in(self, provider: AuthProvider = AuthProvider.GOOGLE) -> AuthState:
        """Interactive sign-in. Raises SignInError on failure."""
        if provider == AuthProvider.FIREBASE:
            if self.firebase is None:
                raise SignInError(SignInFailure.OTHER, "Firebase не настроен")
            idp = self.firebase
        else:
            idp = self.google

        result = await idp.sign_in()
        self.tokens.provider = idp
        await self.tokens.store(result)
        await self._save_session(result.user)
        self.auth = AuthState(user=result.user)
        self._bind_session()
        logger.info("Session started via %s", provider.value)
        return self.auth

    async def sign_out(self) -> None:
        """Stop refreshing, forget stored tokens and end the provider session."""
        self.service.stop_auto_refresh()
        if self.auth.provider == AuthProvider.FIREBASE and self.firebase is not None:
            await self.firebase.sign_out()
        else:
            await self.google.sign_out()
        await self._end_session()

    async def restore_session(self) -> AuthState:
        """Resume the stored session with the provider that started it."""
        record = await self._load_session()
        if record and record.get("provider") == AuthProvider.FIREBASE.value:
            return await self._restore_firebase(record)

        try:
            token = await self.tokens.ensure_fresh()
        except ReauthRequiredError:
            logger.info("Stored session expired; sign-in required")
            token = None
        self.auth = AuthState(user=GoogleUser(access_token=token) if token else None)
        self._bind_session()
        return self.auth

    async def _restore_firebase(self, record: dict) -> AuthState:
        uid = record.get("uid")
        if self.firebase is None or not uid:
            logger.warning("Cannot restore Firebase session; stored credentials dropped")
            await self._end_session()
            return self.auth

        user = FirebaseUser(
            uid=uid,
            email=record.get("email") or "",
            display_name=record.get("display_name"),
        )
        self.firebase.current_user = user
        self.tokens.provider = self.firebase
        try:
            await self.tokens.ensure_fresh()
        except ReauthRequiredError:
            logger.info("Stored Firebase session expired; sign-in required")
            await self.firebase.sign_out()
            await self._end_session()
            return self.auth

        self.auth = AuthState(user=user)
        self._bind_session()
        logger.info("Firebase session restored for %s", uid)
        return self.auth

    @with_error_capture
    async def refresh(self, config_ids: Sequence[str] | None = None) -> list[DeliveryEvent]:
        """One manual fetch of the selected (or all) configurations."""
        if config_ids:
            return await self.service.fetch_many(config_ids)
        return await self.service.fetch_all()
