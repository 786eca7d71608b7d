"""Data models for the delivery calendar."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

SINGLE_LETTER_COLUMN = re.compile(r"^[A-Z]$")
MULTI_LETTER_COLUMN = re.compile(r"^[A-Z]+$")


class Marketplace(str, Enum):
    """Canonical marketplace labels."""

    OZON = "Ozon"
    WILDBERRIES = "Wildberries"
    YANDEX_MARKET = "Яндекс.Маркет"


class AuthProvider(str, Enum):
    """Sign-in method that owns the current session."""

    GOOGLE = "google"
    FIREBASE = "firebase"


@dataclass(frozen=True)
class DeliveryEvent:
    """Canonical delivery record built from one spreadsheet row."""

    id: str
    title: str
    date: str
    marketplace: str
    warehouse: str
    department: str
    item_count: int
    realization_number: str | None = None
    delivery_number: str | None = None
    transit_warehouse: str | None = None
    config_id: str | None = None
    row_index: int | None = None

    @property
    def key(self) -> tuple[str, int | None]:
        """Composite key, unique across merged sheets (ids are per-sheet only)."""
        return (self.config_id or "", self.row_index)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "date": self.date,
            "marketplace": self.marketplace,
            "warehouse": self.warehouse,
            "department": self.department,
            "itemCount": self.item_count,
            "realizationNumber": self.realization_number,
            "deliveryNumber": self.delivery_number,
            "transitWarehouse": self.transit_warehouse,
            "configId": self.config_id,
        }


# Document field name <-> attribute name
_MAPPING_FIELDS = {
    "dateColumn": "date_column",
    "marketplaceColumn": "marketplace_column",
    "warehouseColumn": "warehouse_column",
    "departmentColumn": "department_column",
    "itemCountColumn": "item_count_column",
    "realizationNumberColumn": "realization_number_column",
    "deliveryNumberColumn": "delivery_number_column",
    "transitWarehouseColumn": "transit_warehouse_column",
}


@dataclass
class ColumnMappings:
    """Column letters for each semantic field of a delivery row."""

    date_column: str = "A"
    marketplace_column: str = "B"
    warehouse_column: str = "C"
    department_column: str = "D"
    item_count_column: str = "E"
    realization_number_column: str = "F"
    delivery_number_column: str = "G"
    transit_warehouse_column: str = "H"

    def validate(self, allow_multi_letter: bool = False) -> None:
        """Raise ValueError if any designator is not a column letter."""
        pattern = MULTI_LETTER_COLUMN if allow_multi_letter else SINGLE_LETTER_COLUMN
        bad = {
            doc_key: getattr(self, attr)
            for doc_key, attr in _MAPPING_FIELDS.items()
            if not pattern.match(str(getattr(self, attr)))
        }
        if bad:
            raise ValueError(f"Invalid column designators: {bad}")

    def to_dict(self) -> dict[str, str]:
        return {doc_key: getattr(self, attr) for doc_key, attr in _MAPPING_FIELDS.items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ColumnMappings:
        defaults = cls()
        values = {
            attr: str(data.get(doc_key) or getattr(defaults, attr)).strip().upper()
            for doc_key, attr in _MAPPING_FIELDS.items()
        }
        return cls(**values)


@dataclass
class GoogleSheetsConfig:
    """Named pointer to one spreadsheet sheet plus its column mapping."""

    id: str
    name: str
    spreadsheet_id: str
    sheet_name: str
    column_mappings: ColumnMappings = field(default_factory=ColumnMappings)
    user_id: str | None = None

    def to_dict(self, include_id: bool = True) -> dict[str, Any]:
        """Serialize using the document field names of the stored configs."""
        data: dict[str, Any] = {
            "name": self.name,
            "spreadsheetId": self.spreadsheet_id,
            "sheetName": self.sheet_name,
            "columnMappings": self.column_mappings.to_dict(),
        }
        if include_id:
            data["id"] = self.id
        if self.user_id is not None:
            data["userId"] = self.user_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], config_id: str | None = None) -> GoogleSheetsConfig:
        return cls(
            id=config_id if config_id is not None else str(data.get("id", "")),
            name=str(data.get("name", "")),
            spreadsheet_id=str(data.get("spreadsheetId", "")),
            sheet_name=str(data.get("sheetName", "")),
            column_mappings=ColumnMappings.from_dict(data.get("columnMappings") or {}),
            user_id=data.get("userId"),
        )


@dataclass
class TokenState:
    """Stored Google access credential."""

    access_token: str
    issued_at_ms: int | None
    refresh_token: str | None = None


@dataclass(frozen=True)
class GoogleUser:
    """Identity from the direct Google OAuth sign-in."""

    access_token: str
    id: str | None = None
    email: str | None = None
    name: str | None = None
    provider: AuthProvider = field(default=AuthProvider.GOOGLE, init=False)


@dataclass(frozen=True)
class FirebaseUser:
    """Identity from the federated Firebase sign-in."""

    uid: str
    email: str = ""
    display_name: str | None = None
    provider: AuthProvider = field(default=AuthProvider.FIREBASE, init=False)


User = GoogleUser | FirebaseUser


@dataclass
class SignInResult:
    """Outcome of a successful sign-in round trip."""

    user: User
    access_token: str | None
    refresh_token: str | None = None


@dataclass
class AuthState:
    """Current session."""

    user: User | None = None

    @property
    def is_logged_in(self) -> bool:
        return self.user is not None

    @property
    def provider(self) -> AuthProvider | None:
        return self.user.provider if self.user else None


@dataclass
class SchedulerState:
    """Auto-refresh bookkeeping."""

    active: bool = False
    last_tick_ms: int | None = None
    next_tick_ms: int | None = None
    interval_ms: int = 60_000


@dataclass
class DeliveryStats:
    """Aggregates over a list of deliveries."""

    total_deliveries: int = 0
    total_items: int = 0
    marketplace_breakdown: dict[str, int] = field(default_factory=dict)
    department_breakdown: dict[str, int] = field(default_factory=dict)


@dataclass
class FilterOptions:
    """Dashboard filters. Dates are ISO strings, bounds inclusive."""

    marketplace: str | None = None
    warehouse: str | None = None
    departments: list[str] | None = None
    start_date: str | None = None
    end_date: str | None = None


@dataclass
class WriteResult:
    """Result of writing one delivery back to its sheet row."""

    ok: bool
    row_number: int | None = None
    error: str | None = None
    reauth_required: bool = False
