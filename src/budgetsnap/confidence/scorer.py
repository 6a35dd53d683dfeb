"""
Confidence scoring implementation.
"""

from dataclasses import dataclass
from typing import Optional

from ..extractors.merchant import is_unknown_merchant
from ..schemas.transaction import REVIEW_THRESHOLD


@dataclass
class ConfidenceThresholds:
    """Thresholds for review decisions."""

    review_threshold: float = REVIEW_THRESHOLD  # Below this: needs review

    # Merchant names strictly inside this length range earn a bonus
    min_merchant_length: int = 3
    max_merchant_length: int = 50


class ConfidenceScorer:
    """
    Additive confidence model for parsed candidates.

    Signals:
    1. Amount found: 0.4 (always, an amount is required to get here)
    2. Date read from the text: 0.3
    3. Merchant identified: 0.3, plus 0.1 for a plausible name length

    The total is capped at 1.0.
    """

    WEIGHT_AMOUNT = 0.4
    WEIGHT_DATE = 0.3
    WEIGHT_MERCHANT = 0.3
    MERCHANT_LENGTH_BONUS = 0.1

    def __init__(self, thresholds: Optional[ConfidenceThresholds] = None):
        """Initialize scorer with thresholds."""
        self.thresholds = thresholds or ConfidenceThresholds()

    def score(self, date_found: bool, merchant: Optional[str]) -> float:
        """
        Compute the confidence of a candidate.

        Args:
            date_found: Whether a date was read from the text (not the fallback)
            merchant: Extracted merchant string

        Returns:
            Confidence in [0.0, 1.0]
        """
        confidence = self.WEIGHT_AMOUNT

        if date_found:
            confidence += self.WEIGHT_DATE

        if not is_unknown_merchant(merchant):
            confidence += self.WEIGHT_MERCHANT
            if (
                self.thresholds.min_merchant_length
                < len(merchant)
                < self.thresholds.max_merchant_length
            ):
                confidence += self.MERCHANT_LENGTH_BONUS

        # Rounded so that 0.4 + 0.3 compares equal to the 0.7 threshold
        return round(min(confidence, 1.0), 4)

    def needs_review(self, confidence: float) -> bool:
        """Whether a candidate with this confidence must be reviewed."""
        return confidence < self.thresholds.review_threshold
