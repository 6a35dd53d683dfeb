"""
Backup payload schema.

Export records are flat projections of the live records: scalar fields
plus identifier foreign keys. Nothing here holds a reference to another
record, so the payload is a plain tree and serializes without cycles.

Serialization is canonical: field order is fixed by to_dict(), timestamps
are ISO-8601 strings and decimals are strings.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from .transaction import Budget, Category, StoredTransaction

FORMAT_VERSION = "1.0"
SUPPORTED_FORMAT_VERSIONS = frozenset({FORMAT_VERSION})


def _ts(value: datetime) -> str:
    return value.isoformat()


def _parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value)


@dataclass(frozen=True)
class TransactionExport:
    """Flattened transaction for the backup payload."""

    id: str
    date: datetime
    amount: Decimal
    is_income: bool
    merchant: str
    description: str
    category_id: Optional[str]
    account_id: Optional[str]
    is_reviewed: bool
    needs_correction: bool
    original_text: str
    screenshot_hash: str
    created_at: datetime
    modified_at: datetime

    @classmethod
    def from_record(cls, tx: StoredTransaction) -> "TransactionExport":
        return cls(
            id=tx.id,
            date=tx.date,
            amount=tx.amount,
            is_income=tx.is_income,
            merchant=tx.merchant,
            description=tx.description,
            category_id=tx.category_id,
            account_id=tx.account_id,
            is_reviewed=tx.is_reviewed,
            needs_correction=tx.needs_correction,
            original_text=tx.original_text,
            screenshot_hash=tx.screenshot_hash,
            created_at=tx.created_at,
            modified_at=tx.modified_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": _ts(self.date),
            "amount": str(self.amount),
            "is_income": self.is_income,
            "merchant": self.merchant,
            "description": self.description,
            "category_id": self.category_id,
            "account_id": self.account_id,
            "is_reviewed": self.is_reviewed,
            "needs_correction": self.needs_correction,
            "original_text": self.original_text,
            "screenshot_hash": self.screenshot_hash,
            "created_at": _ts(self.created_at),
            "modified_at": _ts(self.modified_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TransactionExport":
        return cls(
            id=data["id"],
            date=_parse_ts(data["date"]),
            amount=Decimal(data["amount"]),
            is_income=bool(data.get("is_income", False)),
            merchant=data["merchant"],
            description=data.get("description", ""),
            category_id=data.get("category_id"),
            account_id=data.get("account_id"),
            is_reviewed=bool(data.get("is_reviewed", False)),
            needs_correction=bool(data.get("needs_correction", False)),
            original_text=data.get("original_text", ""),
            screenshot_hash=data.get("screenshot_hash", ""),
            created_at=_parse_ts(data["created_at"]),
            modified_at=_parse_ts(data["modified_at"]),
        )


@dataclass(frozen=True)
class BudgetExport:
    """Flattened budget for the backup payload."""

    id: str
    category_id: Optional[str]
    month_year: str
    limit: Decimal
    created_at: datetime
    modified_at: datetime

    @classmethod
    def from_record(cls, budget: Budget) -> "BudgetExport":
        return cls(
            id=budget.id,
            category_id=budget.category_id,
            month_year=budget.month_year,
            limit=budget.limit,
            created_at=budget.created_at,
            modified_at=budget.modified_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "category_id": self.category_id,
            "month_year": self.month_year,
            "limit": str(self.limit),
            "created_at": _ts(self.created_at),
            "modified_at": _ts(self.modified_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BudgetExport":
        return cls(
            id=data["id"],
            category_id=data.get("category_id"),
            month_year=data["month_year"],
            limit=Decimal(data["limit"]),
            created_at=_parse_ts(data["created_at"]),
            modified_at=_parse_ts(data["modified_at"]),
        )


@dataclass(frozen=True)
class CategoryExport:
    """Flattened category for the backup payload."""

    id: str
    name: str
    color_hex: str
    icon: str
    is_default: bool
    created_at: datetime

    @classmethod
    def from_record(cls, category: Category) -> "CategoryExport":
        return cls(
            id=category.id,
            name=category.name,
            color_hex=category.color_hex,
            icon=category.icon,
            is_default=category.is_default,
            created_at=category.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color_hex": self.color_hex,
            "icon": self.icon,
            "is_default": self.is_default,
            "created_at": _ts(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CategoryExport":
        return cls(
            id=data["id"],
            name=data["name"],
            color_hex=data.get("color_hex", "#007AFF"),
            icon=data.get("icon", "folder"),
            is_default=bool(data.get("is_default", False)),
            created_at=_parse_ts(data["created_at"]),
        )


@dataclass(frozen=True)
class BackupPayload:
    """
    One exported snapshot of the dataset.

    Categories are listed last in the document but must be restored
    first: budgets and transactions refer to them by identifier.
    """

    exported_at: datetime
    transactions: tuple[TransactionExport, ...] = field(default_factory=tuple)
    budgets: tuple[BudgetExport, ...] = field(default_factory=tuple)
    categories: tuple[CategoryExport, ...] = field(default_factory=tuple)
    format_version: str = FORMAT_VERSION

    @classmethod
    def from_records(
        cls,
        transactions: list[StoredTransaction],
        budgets: list[Budget],
        categories: list[Category],
        exported_at: datetime,
    ) -> "BackupPayload":
        """Project live records into an export payload."""
        return cls(
            exported_at=exported_at,
            transactions=tuple(TransactionExport.from_record(tx) for tx in transactions),
            budgets=tuple(BudgetExport.from_record(b) for b in budgets),
            categories=tuple(CategoryExport.from_record(c) for c in categories),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize with a fixed field order."""
        return {
            "format_version": self.format_version,
            "exported_at": _ts(self.exported_at),
            "transactions": [tx.to_dict() for tx in self.transactions],
            "budgets": [b.to_dict() for b in self.budgets],
            "categories": [c.to_dict() for c in self.categories],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BackupPayload":
        """Deserialize; the caller is responsible for checking format_version."""
        return cls(
            format_version=data["format_version"],
            exported_at=_parse_ts(data["exported_at"]),
            transactions=tuple(
                TransactionExport.from_dict(item) for item in data.get("transactions", [])
            ),
            budgets=tuple(BudgetExport.from_dict(item) for item in data.get("budgets", [])),
            categories=tuple(
                CategoryExport.from_dict(item) for item in data.get("categories", [])
            ),
        )
