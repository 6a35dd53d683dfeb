"""
Duplicate detection and fuzzy matching.

Exact screenshot/transaction duplicate checks and similar-transaction
search against previously stored records.
"""

from .duplicates import (
    DEFAULT_AMOUNT_TOLERANCE,
    DEFAULT_DATE_TOLERANCE,
    DEFAULT_TRANSACTION_TOLERANCE,
    MAX_MERCHANT_DISTANCE,
    DuplicateDetector,
    TransactionQuery,
)
from .similarity import levenshtein_distance

__all__ = [
    "DuplicateDetector",
    "TransactionQuery",
    "levenshtein_distance",
    "MAX_MERCHANT_DISTANCE",
    "DEFAULT_TRANSACTION_TOLERANCE",
    "DEFAULT_AMOUNT_TOLERANCE",
    "DEFAULT_DATE_TOLERANCE",
]
