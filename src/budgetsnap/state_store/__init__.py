"""
State store for transactions, categories, budgets and accounts.
"""

from .sqlite_store import (
    CommitError,
    QueryError,
    RecordValidationError,
    StoreError,
    StoreSession,
    TransactionStore,
)

__all__ = [
    "TransactionStore",
    "StoreSession",
    "StoreError",
    "QueryError",
    "CommitError",
    "RecordValidationError",
]
