"""Google Sheets values client authorized by API key or bearer token."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import Any

import httplib2
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import build_http

from ..exceptions import SheetsAccessError, SheetsApiError, SheetsTransportError
from ..monitoring import google_api_retry
from .constants import ACCESS_DENIED_MARKERS, VALUE_INPUT_OPTION

logger = logging.getLogger(__name__)

ServiceFactory = Callable[[str | None], Any]


def _http_error_text(error: HttpError) -> str:
    content = getattr(error, "content", b"") or b""
    if isinstance(content, bytes):
        return content.decode("utf-8", errors="replace")
    return str(content)


def translate_http_error(error: HttpError) -> SheetsApiError:
    """Map a googleapiclient HttpError onto our error types."""
    status = error.resp.status
    text = _http_error_text(error)
    if status == 403 or any(marker in text for marker in ACCESS_DENIED_MARKERS):
        logger.warning(
            "Sheets access denied (status %s); keeping stored credentials", status
        )
        return SheetsAccessError(status, text)
    return SheetsApiError(status, text)


class SheetsClient:
    """Google Sheets client with sync methods and async wrappers.

    Requests carry the bearer token when one is given and fall back to
    the API key otherwise.
    """

    def __init__(self, api_key: str = "", service_factory: ServiceFactory | None = None):
        self.api_key = api_key
        self._service_factory = service_factory or self._build_service
        self._service = None
        self._service_token: str | None = None
        self._service_lock = threading.Lock()

    def _build_service(self, access_token: str | None):
        if access_token:
            creds = Credentials(token=access_token)
            return build("sheets", "v4", credentials=creds, cache_discovery=False)
        return build(
            "sheets",
            "v4",
            developerKey=self.api_key,
            http=build_http(),
            cache_discovery=False,
        )

    def service_for(self, access_token: str | None):
        """Sheets service for the given token; rebuilt when the token changes."""
        with self._service_lock:
            if self._service is None or self._service_token != access_token:
                self._service = self._service_factory(access_token)
                self._service_token = access_token
            return self._service

    @staticmethod
    def _http_for(access_token: str | None):
        """Fresh transport for one request. httplib2.Http is not thread-safe."""
        if access_token:
            return AuthorizedHttp(Credentials(token=access_token), http=build_http())
        return build_http()

    # -------------------------------------------------------------------------
    # Low-level sync methods (blocking)
    # -------------------------------------------------------------------------
    @google_api_retry
    def _get_values_sync(
        self, spreadsheet_id: str, a1: str, access_token: str | None
    ) -> list[list[Any]]:
        resp = (
            self.service_for(access_token)
            .spreadsheets()
            .values()
            .get(spreadsheetId=spreadsheet_id, range=a1)
            .execute(http=self._http_for(access_token))
        )
        return resp.get("values", [])

    def _batch_update_values_sync(
        self, spreadsheet_id: str, data: list[dict[str, Any]], access_token: str
    ) -> dict[str, Any]:
        """Batch update multiple ranges in a single API call."""
        return (
            self.service_for(access_token)
            .spreadsheets()
            .values()
            .batchUpdate(
                spreadsheetId=spreadsheet_id,
                body={"valueInputOption": VALUE_INPUT_OPTION, "data": data},
            )
            .execute(http=self._http_for(access_token))
        )

    # -------------------------------------------------------------------------
    # Async wrappers (run blocking IO in thread pool)
    # -------------------------------------------------------------------------
    async def get_values(
        self, spreadsheet_id: str, a1: str, access_token: str | None = None
    ) -> list[list[Any]]:
        """Read a range (a bare sheet name reads the whole sheet)."""
        logger.debug(
            "Reading %s from %s using %s",
            a1,
            spreadsheet_id,
            "OAuth token" if access_token else "API key",
        )
        try:
            return await asyncio.to_thread(
                self._get_values_sync, spreadsheet_id, a1, access_token
            )
        except HttpError as e:
            raise translate_http_error(e) from e
        except (OSError, httplib2.HttpLib2Error) as e:
            raise SheetsTransportError(
                f"Не удалось выполнить запрос к Google Sheets API: {e}"
            ) from e

    async def batch_update_values(
        self, spreadsheet_id: str, data: list[dict[str, Any]], access_token: str
    ) -> dict[str, Any]:
        """Write several {range, values} pairs at once. Never retried."""
        if not data:
            return {}
        try:
            return await asyncio.to_thread(
                self._batch_update_values_sync, spreadsheet_id, data, access_token
            )
        except HttpError as e:
            raise translate_http_error(e) from e
        except (OSError, httplib2.HttpLib2Error) as e:
            raise SheetsTransportError(
                f"Не удалось обновить данные в Google Sheets API: {e}"
            ) from e
