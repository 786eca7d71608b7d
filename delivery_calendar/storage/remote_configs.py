"""Sheet configurations kept in Firestore, one document per configuration."""

from __future__ import annotations

import logging
from dataclasses import replace

from google.api_core.exceptions import GoogleAPIError, NotFound
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.oauth2 import service_account

from ..config import Settings
from ..models import GoogleSheetsConfig
from ..sheets.utils import extract_sheet_id
from .base import CONFIGS_KEY

logger = logging.getLogger(__name__)


def build_firestore_client(settings: Settings) -> firestore.AsyncClient:
    """Async Firestore client for the configured project."""
    info = settings.get_firebase_credentials_info()
    credentials = (
        service_account.Credentials.from_service_account_info(info) if info else None
    )
    return firestore.AsyncClient(project=settings.firebase_project_id, credentials=credentials)


class FirestoreConfigStore:
    """Configurations of the Firebase sign-in, scoped to one user."""

    def __init__(
        self,
        client: firestore.AsyncClient,
        user_id: str | None = None,
        allow_multi_letter: bool = False,
        collection: str = CONFIGS_KEY,
    ):
        self.client = client
        self.user_id = user_id
        self.allow_multi_letter = allow_multi_letter
        self._collection = collection

    @property
    def collection(self):
        return self.client.collection(self._collection)

    async def list_all(self) -> list[GoogleSheetsConfig]:
        """All configurations owned by the current user."""
        if not self.user_id:
            logger.debug("No user bound to Firestore store; nothing to list")
            return []
        try:
            query = self.collection.where(filter=FieldFilter("userId", "==", self.user_id))
            configs = [
                GoogleSheetsConfig.from_dict(snap.to_dict() or {}, config_id=snap.id)
                async for snap in query.stream()
            ]
        except GoogleAPIError as e:
            logger.error("Failed to list Firestore configs for %s: %s", self.user_id, e)
            return []
        logger.debug("Loaded %d Firestore configs for %s", len(configs), self.user_id)
        return configs

    async def get(self, config_id: str) -> GoogleSheetsConfig | None:
        try:
            snap = await self.collection.document(config_id).get()
        except GoogleAPIError as e:
            logger.error("Failed to read Firestore config %s: %s", config_id, e)
            return None
        if not snap.exists:
            logger.debug("Firestore config %s not found", config_id)
            return None
        return GoogleSheetsConfig.from_dict(snap.to_dict() or {}, config_id=snap.id)

    async def add(self, config: GoogleSheetsConfig) -> GoogleSheetsConfig | None:
        """Create a document stamped with the owning user; id comes from Firestore."""
        config.column_mappings.validate(self.allow_multi_letter)
        owned = replace(
            config,
            user_id=self.user_id,
            spreadsheet_id=extract_sheet_id(config.spreadsheet_id),
        )
        try:
            _, doc_ref = await self.collection.add(owned.to_dict(include_id=False))
        except GoogleAPIError as e:
            logger.error("Failed to add Firestore config %r: %s", config.name, e)
            return None
        logger.info("Firestore config added: %s (%s)", owned.name, doc_ref.id)
        return replace(owned, id=doc_ref.id)

    async def update(self, config: GoogleSheetsConfig) -> bool:
        """Partial field update of an existing document."""
        config.column_mappings.validate(self.allow_multi_letter)
        data = replace(
            config, spreadsheet_id=extract_sheet_id(config.spreadsheet_id)
        ).to_dict(include_id=False)
        try:
            await self.collection.document(config.id).update(data)
        except NotFound:
            return False
        except GoogleAPIError as e:
            logger.error("Failed to update Firestore config %s: %s", config.id, e)
            return False
        return True

    async def delete(self, config_id: str) -> bool:
        """Delete by id. False if the document does not exist."""
        doc_ref = self.collection.document(config_id)
        try:
            snap = await doc_ref.get()
            if not snap.exists:
                return False
            await doc_ref.delete()
        except GoogleAPIError as e:
            logger.error("Failed to delete Firestore config %s: %s", config_id, e)
            return False
        logger.info("Firestore config deleted: %s", config_id)
        return True
