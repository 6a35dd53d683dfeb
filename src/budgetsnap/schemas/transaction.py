"""
Canonical transaction objects.

CandidateTransaction is what the parser produces from recognized text.
StoredTransaction, Category, Budget and Account mirror the persisted
records. References between records are identifiers, never objects.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

# Candidates below this confidence are flagged for user review
REVIEW_THRESHOLD = 0.7


def new_id() -> str:
    """Generate a fresh record identifier."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RawLine:
    """A single line of recognized text and its position in the block."""

    index: int
    text: str

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()


@dataclass(frozen=True)
class CandidateTransaction:
    """
    Parser-produced transaction guess, not yet persisted.

    `date` is always populated: when no date could be read from the text
    it holds the parse time and `date_found` is False.
    """

    date: datetime
    amount: Decimal  # Always non-negative
    merchant: str
    description: str  # Source line, verbatim
    confidence: float
    source_text: str
    date_found: bool = True

    @property
    def needs_review(self) -> bool:
        """Low-confidence candidates must be reviewed by the user."""
        return self.confidence < REVIEW_THRESHOLD


@dataclass
class StoredTransaction:
    """A persisted transaction."""

    date: datetime
    amount: Decimal
    merchant: str
    id: str = field(default_factory=new_id)
    is_income: bool = False
    description: str = ""
    category_id: Optional[str] = None
    account_id: Optional[str] = None
    is_reviewed: bool = False
    needs_correction: bool = False
    original_text: str = ""
    screenshot_hash: str = ""
    created_at: datetime = field(default_factory=utc_now)
    modified_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_candidate(
        cls,
        candidate: CandidateTransaction,
        screenshot_hash: str = "",
        account_id: Optional[str] = None,
    ) -> "StoredTransaction":
        """
        Build a new transaction from a parser candidate.

        `needs_correction` is fixed here from the candidate's confidence
        and is not re-evaluated later.
        """
        return cls(
            date=candidate.date,
            amount=candidate.amount,
            merchant=candidate.merchant,
            description=candidate.description,
            account_id=account_id,
            needs_correction=candidate.needs_review,
            original_text=candidate.source_text,
            screenshot_hash=screenshot_hash,
        )


@dataclass
class Category:
    """Spending category."""

    name: str
    id: str = field(default_factory=new_id)
    color_hex: str = "#007AFF"
    icon: str = "folder"
    is_default: bool = False
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class Budget:
    """Monthly spending limit, optionally tied to a category."""

    month_year: str  # YYYY-MM
    limit: Decimal
    id: str = field(default_factory=new_id)
    category_id: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    modified_at: datetime = field(default_factory=utc_now)


@dataclass
class Account:
    """Bank account that scopes screenshots and transactions."""

    name: str
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)


# (name, color, icon) seeded into a fresh store
DEFAULT_CATEGORIES = [
    ("Groceries", "#34C759", "cart"),
    ("Dining", "#FF9500", "fork.knife"),
    ("Transportation", "#007AFF", "car"),
    ("Entertainment", "#AF52DE", "tv"),
    ("Shopping", "#FF2D55", "bag"),
    ("Bills & Utilities", "#5856D6", "bolt"),
    ("Healthcare", "#FF3B30", "heart"),
    ("Other", "#8E8E93", "ellipsis.circle"),
]


def default_categories() -> list[Category]:
    """Fresh Category records for the built-in defaults."""
    return [
        Category(name=name, color_hex=color, icon=icon, is_default=True)
        for name, color, icon in DEFAULT_CATEGORIES
    ]
