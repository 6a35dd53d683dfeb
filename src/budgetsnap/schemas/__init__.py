"""
Canonical schemas shared by every module.

Parser output, persisted records and backup export records are defined
here and nowhere else.
"""

from .backup import (
    FORMAT_VERSION,
    SUPPORTED_FORMAT_VERSIONS,
    BackupPayload,
    BudgetExport,
    CategoryExport,
    TransactionExport,
)
from .dedupe import (
    amount_to_cents,
    cents_to_amount,
    compute_image_hash,
    normalize_amount,
)
from .transaction import (
    DEFAULT_CATEGORIES,
    REVIEW_THRESHOLD,
    Account,
    Budget,
    CandidateTransaction,
    Category,
    RawLine,
    StoredTransaction,
    default_categories,
    new_id,
    utc_now,
)

__all__ = [
    # Parser output and persisted records
    "CandidateTransaction",
    "RawLine",
    "StoredTransaction",
    "Category",
    "Budget",
    "Account",
    "REVIEW_THRESHOLD",
    "DEFAULT_CATEGORIES",
    "default_categories",
    "new_id",
    "utc_now",
    # Backup payload
    "BackupPayload",
    "TransactionExport",
    "BudgetExport",
    "CategoryExport",
    "FORMAT_VERSION",
    "SUPPORTED_FORMAT_VERSIONS",
    # Dedupe helpers
    "compute_image_hash",
    "normalize_amount",
    "amount_to_cents",
    "cents_to_amount",
]
