"""
Merchant extraction.

The merchant is whatever remains of a line once dates and the matched
amount are removed. Lines that reduce to nothing yield the
UNKNOWN_MERCHANT sentinel.
"""

import re
from decimal import Decimal
from typing import Optional, Union

from .amount import AmountExtractor, AmountMatch
from .base import BaseExtractor
from .date import DAY_MONTH_DATE, ISO_DATE, MONTH_DAY_DATE, SLASH_DATE

# Sentinel meaning "no merchant identified"; never a real merchant name
UNKNOWN_MERCHANT = "Unknown Merchant"

DATE_STRIP_PATTERNS = [SLASH_DATE, ISO_DATE, MONTH_DAY_DATE, DAY_MONTH_DATE]

# Separator debris left at the edges after removing amounts and dates
EDGE_CHARACTERS = " \t-–—|:;,•*$@"


def is_unknown_merchant(merchant: Optional[str]) -> bool:
    """True for empty merchants and the sentinel."""
    return not merchant or merchant == UNKNOWN_MERCHANT


class MerchantExtractor(BaseExtractor):
    """Derive a merchant name from a transaction line."""

    def __init__(self, amount_extractor: Optional[AmountExtractor] = None) -> None:
        self._amounts = amount_extractor or AmountExtractor()
        self._date_patterns = [re.compile(p, re.IGNORECASE) for p in DATE_STRIP_PATTERNS]

    @property
    def name(self) -> str:
        return "merchant"

    def extract(
        self,
        line: str,
        amount: Union[AmountMatch, Decimal, None] = None,
    ) -> str:
        """
        Strip dates and the amount from a line and return what is left.

        Args:
            line: Original line of recognized text
            amount: The amount already extracted from this line. A plain
                Decimal is located in the line again.

        Returns:
            Cleaned merchant string, or UNKNOWN_MERCHANT
        """
        if not self.can_extract(line):
            return UNKNOWN_MERCHANT

        amount_match = self._resolve_amount(line, amount)

        spans = [
            found.span() for regex in self._date_patterns for found in regex.finditer(line)
        ]
        # An "amount" read out of a date's digits is already covered by that date
        if amount_match and not any(
            start < amount_match.end and amount_match.start < end for start, end in spans
        ):
            spans.append((amount_match.start, amount_match.end))

        merchant = self._remove_spans(line, spans)
        merchant = re.sub(r"\s+", " ", merchant).strip(EDGE_CHARACTERS)

        return merchant or UNKNOWN_MERCHANT

    @staticmethod
    def _remove_spans(line: str, spans: list[tuple[int, int]]) -> str:
        """Replace every (possibly overlapping) span with a single space."""
        keep = [True] * len(line)
        for start, end in spans:
            for i in range(start, end):
                keep[i] = False

        chars = []
        for char, kept in zip(line, keep):
            if kept:
                chars.append(char)
            elif not chars or chars[-1] != " ":
                chars.append(" ")
        return "".join(chars)

    def _resolve_amount(
        self,
        line: str,
        amount: Union[AmountMatch, Decimal, None],
    ) -> Optional[AmountMatch]:
        if isinstance(amount, AmountMatch) or amount is None:
            return amount

        match = self._amounts.match(line)
        if match and abs(match.value) == abs(amount):
            return match
        return None
