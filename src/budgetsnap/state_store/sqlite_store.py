"""
SQLite-based transaction store implementation.

Tables:
- accounts: Bank accounts scoping screenshots and transactions
- categories: Spending categories
- budgets: Monthly limits per category
- transactions: Imported and restored transactions

Amounts are stored twice: the exact Decimal text (for faithful
round-trips) and an integer cent value (for exact and range queries).
"""

import logging
import re
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from ..schemas.dedupe import amount_to_cents
from ..schemas.transaction import (
    Account,
    Budget,
    Category,
    StoredTransaction,
    default_categories,
)

logger = logging.getLogger(__name__)

MONTH_YEAR_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

# Fixed-width so that text comparison orders dates correctly
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"


class StoreError(Exception):
    """Base class for store faults."""

    pass


class QueryError(StoreError):
    """Raised when a read query cannot be executed."""

    pass


class CommitError(StoreError):
    """Raised when writing or committing a batch fails.

    Distinct from RecordValidationError: the records were valid, the store
    refused them.
    """

    pass


class RecordValidationError(ValueError):
    """Raised when a record is rejected before it reaches the database."""

    pass


def _format_date(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value.strftime(DATE_FORMAT)


def _parse_date(value: str) -> datetime:
    return datetime.strptime(value, DATE_FORMAT)


def _format_ts(value: datetime) -> str:
    return value.isoformat()


def _parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _transaction_from_row(row: sqlite3.Row) -> StoredTransaction:
    return StoredTransaction(
        id=row["id"],
        date=_parse_date(row["date"]),
        amount=Decimal(row["amount"]),
        is_income=bool(row["is_income"]),
        merchant=row["merchant"],
        description=row["description"],
        category_id=row["category_id"],
        account_id=row["account_id"],
        is_reviewed=bool(row["is_reviewed"]),
        needs_correction=bool(row["needs_correction"]),
        original_text=row["original_text"],
        screenshot_hash=row["screenshot_hash"],
        created_at=_parse_ts(row["created_at"]),
        modified_at=_parse_ts(row["modified_at"]),
    )


def _category_from_row(row: sqlite3.Row) -> Category:
    return Category(
        id=row["id"],
        name=row["name"],
        color_hex=row["color_hex"],
        icon=row["icon"],
        is_default=bool(row["is_default"]),
        created_at=_parse_ts(row["created_at"]),
    )


def _budget_from_row(row: sqlite3.Row) -> Budget:
    return Budget(
        id=row["id"],
        category_id=row["category_id"],
        month_year=row["month_year"],
        limit=Decimal(row["limit_amount"]),
        created_at=_parse_ts(row["created_at"]),
        modified_at=_parse_ts(row["modified_at"]),
    )


def _account_from_row(row: sqlite3.Row) -> Account:
    return Account(
        id=row["id"],
        name=row["name"],
        created_at=_parse_ts(row["created_at"]),
    )


def _scoped(sql: str, params: list[Any], account_id: Optional[str]) -> tuple[str, list[Any]]:
    if account_id is not None:
        sql += " AND account_id = ?"
        params.append(account_id)
    return sql + " ORDER BY date, created_at", params


class _TransactionQueries:
    """
    Query side shared by the store and its write sessions.

    Subclasses provide _fetch(); everything here is read-only.
    """

    def _fetch(self, sql: str, params: tuple | list = ()) -> list[sqlite3.Row]:
        raise NotImplementedError

    def _query(self, sql: str, params: tuple | list = ()) -> list[sqlite3.Row]:
        try:
            return self._fetch(sql, params)
        except sqlite3.Error as e:
            raise QueryError(f"Query failed: {e}") from e

    def find_by_screenshot_hash(
        self, screenshot_hash: str, account_id: Optional[str] = None
    ) -> list[StoredTransaction]:
        """Transactions imported from the screenshot with this content hash."""
        sql, params = _scoped(
            "SELECT * FROM transactions WHERE screenshot_hash = ?",
            [screenshot_hash],
            account_id,
        )
        return [_transaction_from_row(row) for row in self._query(sql, params)]

    def find_exact(
        self,
        amount: Decimal,
        merchant: str,
        start: datetime,
        end: datetime,
        account_id: Optional[str] = None,
    ) -> list[StoredTransaction]:
        """Transactions with this exact amount and merchant between start and end."""
        sql, params = _scoped(
            "SELECT * FROM transactions WHERE amount_cents = ? AND merchant = ? "
            "AND date >= ? AND date <= ?",
            [amount_to_cents(amount), merchant, _format_date(start), _format_date(end)],
            account_id,
        )
        return [_transaction_from_row(row) for row in self._query(sql, params)]

    def find_in_range(
        self,
        min_amount: Decimal,
        max_amount: Decimal,
        start: datetime,
        end: datetime,
        account_id: Optional[str] = None,
    ) -> list[StoredTransaction]:
        """Transactions with an amount and a date inside the given ranges."""
        sql, params = _scoped(
            "SELECT * FROM transactions WHERE amount_cents >= ? AND amount_cents <= ? "
            "AND date >= ? AND date <= ?",
            [
                amount_to_cents(min_amount),
                amount_to_cents(max_amount),
                _format_date(start),
                _format_date(end),
            ],
            account_id,
        )
        return [_transaction_from_row(row) for row in self._query(sql, params)]

    def screenshot_hashes(self, account_id: Optional[str] = None) -> set[str]:
        """All screenshot hashes already imported (optionally for one account)."""
        sql = "SELECT DISTINCT screenshot_hash FROM transactions WHERE screenshot_hash != ''"
        params: list[Any] = []
        if account_id is not None:
            sql += " AND account_id = ?"
            params.append(account_id)
        return {row["screenshot_hash"] for row in self._query(sql, params)}

    def list_transactions(self, account_id: Optional[str] = None) -> list[StoredTransaction]:
        """All transactions, oldest first."""
        sql, params = _scoped("SELECT * FROM transactions WHERE 1 = 1", [], account_id)
        return [_transaction_from_row(row) for row in self._query(sql, params)]

    def list_categories(self) -> list[Category]:
        rows = self._query("SELECT * FROM categories ORDER BY created_at, name")
        return [_category_from_row(row) for row in rows]

    def list_budgets(self) -> list[Budget]:
        rows = self._query("SELECT * FROM budgets ORDER BY month_year, created_at")
        return [_budget_from_row(row) for row in rows]

    def list_accounts(self) -> list[Account]:
        rows = self._query("SELECT * FROM accounts ORDER BY name")
        return [_account_from_row(row) for row in rows]

    def get_transaction(self, transaction_id: str) -> Optional[StoredTransaction]:
        rows = self._query("SELECT * FROM transactions WHERE id = ?", (transaction_id,))
        return _transaction_from_row(rows[0]) if rows else None

    def get_account_by_name(self, name: str) -> Optional[Account]:
        rows = self._query("SELECT * FROM accounts WHERE name = ?", (name,))
        return _account_from_row(rows[0]) if rows else None

    def ids(self, table: str) -> set[str]:
        """Identifiers present in one of the record tables."""
        if table not in ("transactions", "budgets", "categories", "accounts"):
            raise ValueError(f"Unknown table: {table}")
        return {row["id"] for row in self._query(f"SELECT id FROM {table}")}


class StoreSession(_TransactionQueries):
    """
    A single all-or-nothing write batch.

    Records added through the session are visible to its own queries
    before commit, so duplicate checks within one batch see earlier rows
    of the same batch. Nothing is visible to other connections until
    commit() succeeds.
    """

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn
        self.committed = False

    def _fetch(self, sql: str, params: tuple | list = ()) -> list[sqlite3.Row]:
        return self._conn.execute(sql, params).fetchall()

    def _write(self, sql: str, params: tuple) -> None:
        try:
            self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise CommitError(f"Failed to write record: {e}") from e

    def add_transaction(self, tx: StoredTransaction) -> None:
        """Stage a transaction for the batch."""
        if tx.amount < 0:
            raise RecordValidationError(f"Transaction amount must not be negative: {tx.amount}")
        if not tx.merchant:
            raise RecordValidationError("Transaction merchant is required")

        self._write(
            """
            INSERT INTO transactions
            (id, date, amount, amount_cents, is_income, merchant, description,
             category_id, account_id, is_reviewed, needs_correction, original_text,
             screenshot_hash, created_at, modified_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
            (
                tx.id,
                _format_date(tx.date),
                str(tx.amount),
                amount_to_cents(tx.amount),
                int(tx.is_income),
                tx.merchant,
                tx.description,
                tx.category_id,
                tx.account_id,
                int(tx.is_reviewed),
                int(tx.needs_correction),
                tx.original_text,
                tx.screenshot_hash,
                _format_ts(tx.created_at),
                _format_ts(tx.modified_at),
            ),
        )

    def add_category(self, category: Category) -> None:
        """Stage a category for the batch."""
        if not category.name or not category.name.strip():
            raise RecordValidationError("Category name is required")

        self._write(
            """
            INSERT INTO categories (id, name, color_hex, icon, is_default, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """,
            (
                category.id,
                category.name,
                category.color_hex,
                category.icon,
                int(category.is_default),
                _format_ts(category.created_at),
            ),
        )

    def add_budget(self, budget: Budget) -> None:
        """Stage a budget for the batch."""
        if not MONTH_YEAR_PATTERN.match(budget.month_year or ""):
            raise RecordValidationError(f"Budget month must be YYYY-MM, got: {budget.month_year}")
        if budget.limit < 0:
            raise RecordValidationError(f"Budget limit must not be negative: {budget.limit}")

        self._write(
            """
            INSERT INTO budgets (id, category_id, month_year, limit_amount, created_at, modified_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """,
            (
                budget.id,
                budget.category_id,
                budget.month_year,
                str(budget.limit),
                _format_ts(budget.created_at),
                _format_ts(budget.modified_at),
            ),
        )

    def add_account(self, account: Account) -> None:
        """Stage an account for the batch."""
        if not account.name or not account.name.strip():
            raise RecordValidationError("Account name is required")

        self._write(
            "INSERT INTO accounts (id, name, created_at) VALUES (?, ?, ?)",
            (account.id, account.name, _format_ts(account.created_at)),
        )

    def commit(self) -> None:
        """Commit the batch. Raises CommitError and rolls back on failure."""
        try:
            self._conn.commit()
        except sqlite3.Error as e:
            self._conn.rollback()
            raise CommitError(f"Failed to save changes: {e}") from e
        self.committed = True

    def rollback(self) -> None:
        self._conn.rollback()


class TransactionStore(_TransactionQueries):
    """
    SQLite-based store for accounts, categories, budgets and transactions.

    Implements the read interface used by duplicate detection and hands
    out write sessions for batch imports and restores.

    Thread-safe for single-writer scenarios.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path | str):
        """
        Initialize transaction store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _fetch(self, sql: str, params: tuple | list = ()) -> list[sqlite3.Row]:
        with self._transaction() as conn:
            return conn.execute(sql, params).fetchall()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS accounts (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL UNIQUE,
                    created_at TEXT NOT NULL
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS categories (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    color_hex TEXT NOT NULL,
                    icon TEXT NOT NULL,
                    is_default INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS budgets (
                    id TEXT PRIMARY KEY,
                    category_id TEXT,
                    month_year TEXT NOT NULL,  -- YYYY-MM
                    limit_amount TEXT NOT NULL,  -- Decimal text
                    created_at TEXT NOT NULL,
                    modified_at TEXT NOT NULL,
                    FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE SET NULL
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS transactions (
                    id TEXT PRIMARY KEY,
                    date TEXT NOT NULL,
                    amount TEXT NOT NULL,  -- Decimal text, exact
                    amount_cents INTEGER NOT NULL,  -- For comparisons
                    is_income INTEGER NOT NULL DEFAULT 0,
                    merchant TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    category_id TEXT,
                    account_id TEXT,
                    is_reviewed INTEGER NOT NULL DEFAULT 0,
                    needs_correction INTEGER NOT NULL DEFAULT 0,
                    original_text TEXT NOT NULL DEFAULT '',
                    screenshot_hash TEXT NOT NULL DEFAULT '',
                    created_at TEXT NOT NULL,
                    modified_at TEXT NOT NULL,
                    FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE SET NULL,
                    FOREIGN KEY (account_id) REFERENCES accounts(id) ON DELETE CASCADE
                )
            """
            )

            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_transactions_screenshot ON transactions(screenshot_hash)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_transactions_amount_date ON transactions(amount_cents, date)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_transactions_account ON transactions(account_id)"
            )

            conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)", (self.SCHEMA_VERSION,)
            )

    @contextmanager
    def session(self) -> Iterator[StoreSession]:
        """
        Open a write session.

        Changes are only persisted by an explicit session.commit(); leaving
        the block without committing discards them.
        """
        conn = self._get_connection()
        session = StoreSession(conn)
        try:
            yield session
        finally:
            if not session.committed:
                conn.rollback()
            conn.close()

    # Convenience writers (one record per commit)

    def get_or_create_account(self, name: str) -> Account:
        """Look up an account by name, creating it if missing."""
        existing = self.get_account_by_name(name)
        if existing:
            return existing

        account = Account(name=name)
        with self.session() as session:
            session.add_account(account)
            session.commit()
        logger.info("Created account %r (%s)", name, account.id)
        return account

    def seed_default_categories(self) -> int:
        """Create the built-in categories if the store has none. Returns count added."""
        if self.list_categories():
            return 0

        categories = default_categories()
        with self.session() as session:
            for category in categories:
                session.add_category(category)
            session.commit()
        return len(categories)

    def get_stats(self) -> dict[str, Any]:
        """Get store statistics."""
        with self._transaction() as conn:
            stats = {}

            for table in ("transactions", "categories", "budgets", "accounts"):
                row = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
                stats[table] = row[0]

            row = conn.execute(
                "SELECT COUNT(*) FROM transactions WHERE needs_correction = 1 AND is_reviewed = 0"
            ).fetchone()
            stats["needs_review"] = row[0]

            row = conn.execute(
                "SELECT COUNT(DISTINCT screenshot_hash) FROM transactions WHERE screenshot_hash != ''"
            ).fetchone()
            stats["screenshots"] = row[0]

            return stats


