"""
Transaction parsing.

Orchestrates the field extractors over a full block of recognized text.
"""

from .transaction_parser import TransactionParser, context_window, split_lines

__all__ = [
    "TransactionParser",
    "context_window",
    "split_lines",
]
