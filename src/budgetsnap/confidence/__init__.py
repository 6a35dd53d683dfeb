"""
Confidence scoring module.

Computes the confidence of parsed candidates and decides which ones
need user review.
"""

from .scorer import ConfidenceScorer, ConfidenceThresholds

__all__ = [
    "ConfidenceScorer",
    "ConfidenceThresholds",
]
