"""
Field extractors for recognized screenshot text.

Provides:
- AmountExtractor: first monetary value in a line
- DateExtractor: first date in a window of lines (with fallback policy)
- MerchantExtractor: line remainder after removing amount and dates

Each extractor is independent and testable on its own.
"""

from .amount import AmountExtractor, AmountMatch, parse_amount
from .base import BaseExtractor
from .date import DateExtractor, DateMatch
from .merchant import UNKNOWN_MERCHANT, MerchantExtractor, is_unknown_merchant

__all__ = [
    "BaseExtractor",
    "AmountExtractor",
    "AmountMatch",
    "DateExtractor",
    "DateMatch",
    "MerchantExtractor",
    "UNKNOWN_MERCHANT",
    "is_unknown_merchant",
    "parse_amount",
]
