"""
Amount extraction.

Recognized forms, in priority order:
- $123.45 / 123.45 (two decimal digits)
- $123 / 123 (integer)
- ($123.45) (negative)
- -$123.45 (negative)

The first pattern that matches anywhere in the line wins, even if a later
pattern would produce a longer match.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from .base import BaseExtractor

# (pattern, always_negative, pattern_type)
AMOUNT_PATTERNS = [
    (r"\$?(\d[\d,]*\.\d{2})", False, "decimal"),
    (r"\$?(\d[\d,]*)", False, "integer"),
    (r"\(\$?(\d[\d,]*\.?\d*)\)", True, "parenthesized"),
    (r"-\$?(\d[\d,]*\.?\d*)", True, "minus"),
]


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string (1,234.56) to Decimal."""
    return Decimal(amount_str.replace(",", ""))


@dataclass(frozen=True)
class AmountMatch:
    """An amount found in a line, with the exact text it was read from."""

    value: Decimal  # Signed
    text: str  # Matched substring including $, - or parentheses
    start: int
    end: int
    pattern_type: str

    @property
    def is_negative(self) -> bool:
        return self.value < 0


class AmountExtractor(BaseExtractor):
    """Find the first monetary value in a line of recognized text."""

    def __init__(self) -> None:
        self._patterns = [
            (re.compile(pattern), negative, pattern_type)
            for pattern, negative, pattern_type in AMOUNT_PATTERNS
        ]

    @property
    def name(self) -> str:
        return "amount"

    def extract(self, line: str) -> Optional[Decimal]:
        """
        Return the first amount in the line, or None.

        Args:
            line: A single line of recognized text

        Returns:
            Signed Decimal (negative for "(…)" or "-…" amounts) or None
        """
        match = self.match(line)
        return match.value if match else None

    def match(self, line: str) -> Optional[AmountMatch]:
        """Like extract(), but also report where the amount was found."""
        if not self.can_extract(line):
            return None

        for regex, always_negative, pattern_type in self._patterns:
            found = regex.search(line)
            if not found:
                continue

            try:
                value = parse_amount(found.group(1))
            except InvalidOperation:
                continue

            start, end = found.start(), found.end()
            negative = always_negative
            if not negative:
                negative, start, end = self._signed_span(line, start, end)

            return AmountMatch(
                value=-value if negative else value,
                text=line[start:end],
                start=start,
                end=end,
                pattern_type=pattern_type,
            )

        return None

    @staticmethod
    def _signed_span(line: str, start: int, end: int) -> tuple[bool, int, int]:
        """
        Check for a sign marker directly around a matched number.

        Returns (negative, start, end) with the span widened to include
        the marker.
        """
        before = line[start - 1] if start > 0 else ""
        after = line[end] if end < len(line) else ""

        if before == "(" and after == ")":
            return True, start - 1, end + 1
        if before == "-":
            return True, start - 1, end
        return False, start, end
