"""Tests for confidence scoring."""

import pytest

from budgetsnap.confidence import ConfidenceScorer, ConfidenceThresholds
from budgetsnap.extractors import UNKNOWN_MERCHANT


class TestConfidenceScorer:
    """Tests for the additive confidence model."""

    @pytest.fixture
    def scorer(self):
        return ConfidenceScorer()

    def test_all_signals_capped_at_one(self, scorer):
        """Amount + date + merchant + length bonus is capped at 1.0."""
        assert scorer.score(date_found=True, merchant="Coffee Shop") == 1.0

    def test_amount_only(self, scorer):
        """No date and no merchant leaves only the amount weight."""
        assert scorer.score(date_found=False, merchant=UNKNOWN_MERCHANT) == 0.4

    def test_amount_and_date_reach_threshold(self, scorer):
        """0.4 + 0.3 is exactly the review threshold and does not need review."""
        confidence = scorer.score(date_found=True, merchant=UNKNOWN_MERCHANT)

        assert confidence == 0.7
        assert scorer.needs_review(confidence) is False

    def test_merchant_without_date(self, scorer):
        """Merchant with a plausible length earns the bonus."""
        assert scorer.score(date_found=False, merchant="Spotify") == 0.8

    def test_short_merchant_no_bonus(self, scorer):
        """Names of 3 characters or fewer get no length bonus."""
        assert scorer.score(date_found=False, merchant="Abc") == 0.7
        assert scorer.score(date_found=False, merchant="Abcd") == 0.8

    def test_long_merchant_no_bonus(self, scorer):
        """Names of 50 characters or more get no length bonus."""
        assert scorer.score(date_found=False, merchant="x" * 50) == 0.7
        assert scorer.score(date_found=False, merchant="x" * 49) == 0.8

    def test_empty_merchant(self, scorer):
        """An empty merchant counts as no merchant."""
        assert scorer.score(date_found=True, merchant="") == 0.7

    def test_needs_review_below_threshold(self, scorer):
        """Anything under 0.7 needs review."""
        assert scorer.needs_review(0.4) is True
        assert scorer.needs_review(0.69) is True
        assert scorer.needs_review(0.8) is False

    def test_custom_threshold(self):
        """Review threshold can be tightened."""
        scorer = ConfidenceScorer(ConfidenceThresholds(review_threshold=0.9))
        assert scorer.needs_review(0.8) is True
