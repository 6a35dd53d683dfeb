"""
Recognized text → candidate transactions.

Every line carrying an amount becomes a candidate. Its date is looked up
in a small window around the line, since banking apps often print the
date on a row of its own. Lines without an amount are not transactions
and are skipped.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..confidence import ConfidenceScorer
from ..extractors import AmountExtractor, DateExtractor, MerchantExtractor
from ..schemas.transaction import CandidateTransaction, RawLine

logger = logging.getLogger(__name__)

# Two candidates closer than this are the same amount
AMOUNT_EPSILON = Decimal("0.01")


def split_lines(text: str) -> list[RawLine]:
    """Split a recognized-text block into positioned lines."""
    return [RawLine(index=i, text=line) for i, line in enumerate(text.splitlines())]


def context_window(lines: list[RawLine], index: int, radius: int) -> str:
    """Join the line at `index` with up to `radius` neighbours on each side."""
    start = max(0, index - radius)
    end = min(len(lines), index + radius + 1)
    return "\n".join(line.text for line in lines[start:end])


class TransactionParser:
    """
    Turns a block of recognized text into scored candidate transactions.

    The parser holds no state between calls. It never raises for odd
    input; the worst case is an empty list.
    """

    CONTEXT_LINES = 2

    def __init__(
        self,
        amount_extractor: Optional[AmountExtractor] = None,
        date_extractor: Optional[DateExtractor] = None,
        merchant_extractor: Optional[MerchantExtractor] = None,
        scorer: Optional[ConfidenceScorer] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.amounts = amount_extractor or AmountExtractor()
        self.dates = date_extractor or DateExtractor(clock=clock)
        self.merchants = merchant_extractor or MerchantExtractor(self.amounts)
        self.scorer = scorer or ConfidenceScorer()
        self.clock = clock

    def parse(self, text: Optional[str]) -> list[CandidateTransaction]:
        """
        Parse recognized text into candidates.

        Args:
            text: Full recognized text of one screenshot

        Returns:
            Candidates in line order, with repeated detections of the same
            row removed
        """
        if not text or not text.strip():
            return []

        now = self.clock()
        lines = split_lines(text)
        accepted: list[CandidateTransaction] = []

        for raw in lines:
            if raw.is_blank:
                continue

            candidate = self._parse_line(raw, lines, now)
            if candidate is None:
                continue

            if self._is_batch_duplicate(candidate, accepted):
                logger.debug("Dropping repeated row at line %d: %r", raw.index, raw.text)
                continue

            accepted.append(candidate)

        logger.debug("Parsed %d candidate(s) from %d line(s)", len(accepted), len(lines))
        return accepted

    def _parse_line(
        self,
        raw: RawLine,
        lines: list[RawLine],
        now: datetime,
    ) -> Optional[CandidateTransaction]:
        line = raw.text.strip()

        amount = self.amounts.match(line)
        if amount is None:
            return None

        window = context_window(lines, raw.index, self.CONTEXT_LINES)
        date_match = self.dates.find(window, now=now)
        merchant = self.merchants.extract(line, amount)

        return CandidateTransaction(
            date=date_match.value if date_match else now,
            amount=abs(amount.value),
            merchant=merchant,
            description=line,
            confidence=self.scorer.score(date_found=date_match is not None, merchant=merchant),
            source_text=line,
            date_found=date_match is not None,
        )

    @staticmethod
    def _is_batch_duplicate(
        candidate: CandidateTransaction,
        accepted: list[CandidateTransaction],
    ) -> bool:
        """Same amount (to the cent), same merchant, same calendar day."""
        for existing in accepted:
            if (
                abs(existing.amount - candidate.amount) < AMOUNT_EPSILON
                and existing.merchant == candidate.merchant
                and existing.date.date() == candidate.date.date()
            ):
                return True
        return False
