"""
Date extraction.

Supported forms, tried in this fixed order:
- Numeric slash dates: MM/DD/YYYY, MM/DD/YY, DD/MM/YYYY, DD/MM/YY
- ISO dates: YYYY-MM-DD
- Month-name dates: "Mar 1", "Mar 01, 2024", "March 1, 2024"
- Day-first month-name dates: "1 Mar", "01 Mar 2024"

Slash dates are ambiguous (03/04/2024). The first format that parses
wins; there is no locale inference.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .base import BaseExtractor

MONTH_NAMES = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?"
    r"|Aug(?:ust)?|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)"
)

MONTH_NUMBERS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

SLASH_DATE = r"\b\d{1,2}/\d{1,2}/\d{2,4}\b"
ISO_DATE = r"\b\d{4}-\d{2}-\d{2}\b"
MONTH_DAY_DATE = rf"\b(?P<month>{MONTH_NAMES})\.?\s+(?P<day>\d{{1,2}})(?:,?\s+(?P<year>\d{{4}}))?\b"
DAY_MONTH_DATE = rf"\b(?P<day>\d{{1,2}})\s+(?P<month>{MONTH_NAMES})\.?(?:\s+(?P<year>\d{{4}}))?\b"

# (pattern, strptime formats or None for month-name parsing, pattern_type)
DATE_PATTERNS = [
    (SLASH_DATE, ["%m/%d/%Y", "%m/%d/%y", "%d/%m/%Y", "%d/%m/%y"], "slash"),
    (ISO_DATE, ["%Y-%m-%d"], "iso"),
    (MONTH_DAY_DATE, None, "month_day"),
    (DAY_MONTH_DATE, None, "day_month"),
]


@dataclass(frozen=True)
class DateMatch:
    """A date read from text."""

    value: datetime
    text: str
    pattern_type: str
    has_year: bool = True


def parse_month_name_match(match: re.Match, default_year: int) -> Optional[datetime]:
    """Build a date from a month-name regex match; missing year → default_year."""
    month = MONTH_NUMBERS.get(match.group("month")[:3].lower())
    if month is None:
        return None

    year_text = match.group("year")
    year = int(year_text) if year_text else default_year
    try:
        return datetime(year, month, int(match.group("day")))
    except ValueError:
        return None


class DateExtractor(BaseExtractor):
    """
    Find the first date in a short window of recognized text.

    `find` reports only dates actually present in the text. `extract`
    applies the fallback policy: when nothing matches, the current
    date/time is returned so every candidate has a usable date.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self.clock = clock
        self._patterns = [
            (re.compile(pattern, re.IGNORECASE), formats, pattern_type)
            for pattern, formats, pattern_type in DATE_PATTERNS
        ]

    @property
    def name(self) -> str:
        return "date"

    def extract(self, text: str, now: Optional[datetime] = None) -> datetime:
        """
        Return the first date in the text, falling back to `now`.

        Args:
            text: Target line plus neighbouring lines, newline-joined
            now: Reference time (defaults to the extractor's clock)

        Returns:
            Parsed date (midnight) or the reference time
        """
        now = now or self.clock()
        match = self.find(text, now=now)
        return match.value if match else now

    def find(self, text: str, now: Optional[datetime] = None) -> Optional[DateMatch]:
        """Return the first parseable date in the text, or None."""
        if not self.can_extract(text):
            return None

        default_year = (now or self.clock()).year

        for regex, formats, pattern_type in self._patterns:
            for found in regex.finditer(text):
                date_text = found.group(0)

                if formats is None:
                    parsed = parse_month_name_match(found, default_year)
                    if parsed:
                        return DateMatch(
                            value=parsed,
                            text=date_text,
                            pattern_type=pattern_type,
                            has_year=found.group("year") is not None,
                        )
                    continue

                for date_format in formats:
                    try:
                        parsed = datetime.strptime(date_text, date_format)
                    except ValueError:
                        continue
                    return DateMatch(value=parsed, text=date_text, pattern_type=pattern_type)

        return None
