"""Exception hierarchy for the delivery calendar."""

from __future__ import annotations

from enum import Enum


class DeliveryCalendarError(Exception):
    """Base error for the delivery calendar."""


class ConfigNotFoundError(DeliveryCalendarError):
    """Configuration is absent from both the local and the remote store."""

    def __init__(self, config_id: str):
        self.config_id = config_id
        super().__init__(f"Конфигурация с ID {config_id} не найдена ни локально, ни в Firestore")


class ReauthRequiredError(DeliveryCalendarError):
    """Token refresh failed; the user has to sign in interactively again."""


class SheetsApiError(DeliveryCalendarError):
    """Google Sheets API answered with a non-success status."""

    def __init__(self, status: int, message: str):
        self.status = status
        super().__init__(f"Ошибка Google Sheets API: {status} {message}")


class SheetsAccessError(SheetsApiError):
    """Access denied (403 or an origin/CORS complaint). Credentials are kept."""


class SheetsTransportError(DeliveryCalendarError):
    """The request never reached the API. Credentials are kept."""


class SignInFailure(str, Enum):
    """Distinguishable reasons for a failed sign-in."""

    CANCELLED = "cancelled"
    NETWORK = "network"
    UNAUTHORIZED_DOMAIN = "unauthorized_domain"
    OTHER = "other"


class SignInError(DeliveryCalendarError):
    """Interactive or silent sign-in failed."""

    def __init__(self, reason: SignInFailure, message: str = ""):
        self.reason = reason
        super().__init__(message or reason.value)
