"""Duplicate detection for imported screenshots and transactions.

Three checks run against a read-only query interface over stored
transactions:

- Screenshot duplicates: exact content-hash match. A screenshot that was
  imported before is skipped entirely.
- Transaction duplicates: exact amount, exact merchant, date within a
  tolerance. Used to decide whether a row is inserted at all, so it favours
  precision over recall.
- Similar transactions: amount and date tolerances plus a small merchant
  edit distance. Used to show possible duplicates to a human, never to
  reject rows automatically.

Query faults are logged and treated as "not a duplicate". Import stays
available when the store misbehaves, at the cost of possibly letting a
duplicate through.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, Protocol

from ..schemas.dedupe import normalize_amount
from ..schemas.transaction import StoredTransaction
from .similarity import levenshtein_distance

logger = logging.getLogger(__name__)

# Merchants closer than this edit distance are "similar"
MAX_MERCHANT_DISTANCE = 5

DEFAULT_TRANSACTION_TOLERANCE = timedelta(hours=24)
DEFAULT_AMOUNT_TOLERANCE = Decimal("0.01")
DEFAULT_DATE_TOLERANCE = timedelta(days=3)


class TransactionQuery(Protocol):
    """Read side of the transaction store, as needed by duplicate detection.

    Implementations raise on faults; the detector decides what a fault
    means. Date bounds are inclusive.
    """

    def find_by_screenshot_hash(
        self, screenshot_hash: str, account_id: Optional[str] = None
    ) -> list[StoredTransaction]: ...

    def find_exact(
        self,
        amount: Decimal,
        merchant: str,
        start: datetime,
        end: datetime,
        account_id: Optional[str] = None,
    ) -> list[StoredTransaction]: ...

    def find_in_range(
        self,
        min_amount: Decimal,
        max_amount: Decimal,
        start: datetime,
        end: datetime,
        account_id: Optional[str] = None,
    ) -> list[StoredTransaction]: ...


class DuplicateDetector:
    """Screens screenshots and candidates against stored transactions.

    The detector keeps no index of its own; every decision is a fresh query.
    `query_failures` counts the faults that were swallowed by the fail-open
    policy so callers can report them.
    """

    def __init__(self, query: TransactionQuery) -> None:
        """Initialize the detector.

        Args:
            query: Read-only query interface over stored transactions.
        """
        self.query = query
        self.query_failures = 0

    def is_screenshot_duplicate(
        self,
        screenshot_hash: str,
        account_id: Optional[str] = None,
    ) -> bool:
        """Check whether a screenshot has already been imported.

        Args:
            screenshot_hash: Content hash of the screenshot.
            account_id: Restrict the check to one account.

        Returns:
            True if any stored transaction carries this hash.
        """
        if not screenshot_hash:
            return False

        try:
            matches = self.query.find_by_screenshot_hash(screenshot_hash, account_id=account_id)
        except Exception as e:
            self._record_failure("screenshot duplicate check", e)
            return False

        return bool(matches)

    def is_transaction_duplicate(
        self,
        amount: Decimal,
        merchant: str,
        date: datetime,
        account_id: Optional[str] = None,
        tolerance: timedelta = DEFAULT_TRANSACTION_TOLERANCE,
    ) -> bool:
        """Check whether the same transaction is already stored.

        Amount and merchant must match exactly; the stored date must fall
        within ± tolerance of `date`.

        Args:
            amount: Candidate amount.
            merchant: Candidate merchant, compared verbatim.
            date: Candidate date.
            account_id: Restrict the check to one account.
            tolerance: Allowed date difference (default 24 hours).

        Returns:
            True if a matching stored transaction exists.
        """
        try:
            matches = self.query.find_exact(
                amount=normalize_amount(amount),
                merchant=merchant,
                start=date - tolerance,
                end=date + tolerance,
                account_id=account_id,
            )
        except Exception as e:
            self._record_failure("transaction duplicate check", e)
            return False

        return bool(matches)

    def find_similar_transactions(
        self,
        amount: Decimal,
        merchant: str,
        date: datetime,
        account_id: Optional[str],
        amount_tolerance: Decimal = DEFAULT_AMOUNT_TOLERANCE,
        date_tolerance: timedelta = DEFAULT_DATE_TOLERANCE,
    ) -> list[StoredTransaction]:
        """Find stored transactions that look like the given one.

        Args:
            amount: Amount to compare against.
            merchant: Merchant to compare against (edit distance < 5).
            date: Date to compare against.
            account_id: Account scope; None searches all accounts.
            amount_tolerance: Allowed amount difference (default 0.01).
            date_tolerance: Allowed date difference (default 3 days).

        Returns:
            Matching stored transactions, in store order.
        """
        amount = normalize_amount(amount)
        amount_tolerance = normalize_amount(amount_tolerance)

        try:
            candidates = self.query.find_in_range(
                min_amount=amount - amount_tolerance,
                max_amount=amount + amount_tolerance,
                start=date - date_tolerance,
                end=date + date_tolerance,
                account_id=account_id,
            )
        except Exception as e:
            self._record_failure("similar transaction search", e)
            return []

        return [
            tx
            for tx in candidates
            if levenshtein_distance(tx.merchant, merchant) < MAX_MERCHANT_DISTANCE
        ]

    def _record_failure(self, operation: str, error: Exception) -> None:
        self.query_failures += 1
        logger.warning("%s failed, treating as not a duplicate: %s", operation.capitalize(), error)
