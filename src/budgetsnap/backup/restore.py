"""
Backup export and restore against the transaction store.

Restore order matters: categories first, then budgets and transactions,
which refer to categories by id. Records whose id already exists in the
store are skipped, so restoring the same backup twice is harmless.
Everything is written in one session and committed once.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..schemas.backup import BackupPayload
from ..schemas.transaction import Budget, Category, StoredTransaction, utc_now
from ..state_store import RecordValidationError, TransactionStore
from .codec import BackupCodec, InvalidBackupError, read_backup_file, write_backup_file

logger = logging.getLogger(__name__)


@dataclass
class RestoreSummary:
    """Counts from a single restore."""

    categories_created: int = 0
    categories_reused: int = 0
    budgets_restored: int = 0
    budgets_skipped: int = 0
    transactions_restored: int = 0
    transactions_skipped: int = 0
    dangling_references: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def total_restored(self) -> int:
        return self.categories_created + self.budgets_restored + self.transactions_restored


def build_payload(store: TransactionStore) -> BackupPayload:
    """Snapshot the whole store as an export payload."""
    return BackupPayload.from_records(
        transactions=store.list_transactions(),
        budgets=store.list_budgets(),
        categories=store.list_categories(),
        exported_at=utc_now(),
    )


def restore_payload(payload: BackupPayload, store: TransactionStore) -> RestoreSummary:
    """
    Reconcile a decrypted payload into the store.

    Args:
        payload: Decoded backup payload
        store: Target store

    Returns:
        RestoreSummary with created/skipped counts

    Raises:
        InvalidBackupError: A record in the backup is not valid; nothing was written
        CommitError: The batch could not be saved; nothing was written
    """
    summary = RestoreSummary()

    try:
        with store.session() as session:
            existing_categories = {c.id for c in session.list_categories()}
            existing_budgets = session.ids("budgets")
            existing_transactions = session.ids("transactions")
            existing_accounts = session.ids("accounts")

            # Category ids resolvable after this restore
            category_map: set[str] = set(existing_categories)

            for item in payload.categories:
                if item.id in existing_categories:
                    summary.categories_reused += 1
                    continue
                session.add_category(
                    Category(
                        id=item.id,
                        name=item.name,
                        color_hex=item.color_hex,
                        icon=item.icon,
                        is_default=item.is_default,
                        created_at=item.created_at,
                    )
                )
                category_map.add(item.id)
                summary.categories_created += 1

            def resolve_category(category_id: Optional[str]) -> Optional[str]:
                if category_id is None:
                    return None
                if category_id in category_map:
                    return category_id
                summary.dangling_references += 1
                return None

            for item in payload.budgets:
                if item.id in existing_budgets:
                    summary.budgets_skipped += 1
                    continue
                session.add_budget(
                    Budget(
                        id=item.id,
                        category_id=resolve_category(item.category_id),
                        month_year=item.month_year,
                        limit=item.limit,
                        created_at=item.created_at,
                        modified_at=item.modified_at,
                    )
                )
                existing_budgets.add(item.id)
                summary.budgets_restored += 1

            for item in payload.transactions:
                if item.id in existing_transactions:
                    summary.transactions_skipped += 1
                    continue

                account_id = item.account_id
                if account_id is not None and account_id not in existing_accounts:
                    summary.dangling_references += 1
                    account_id = None

                session.add_transaction(
                    StoredTransaction(
                        id=item.id,
                        date=item.date,
                        amount=item.amount,
                        is_income=item.is_income,
                        merchant=item.merchant,
                        description=item.description,
                        category_id=resolve_category(item.category_id),
                        account_id=account_id,
                        is_reviewed=item.is_reviewed,
                        needs_correction=item.needs_correction,
                        original_text=item.original_text,
                        screenshot_hash=item.screenshot_hash,
                        created_at=item.created_at,
                        modified_at=item.modified_at,
                    )
                )
                existing_transactions.add(item.id)
                summary.transactions_restored += 1

            session.commit()
    except RecordValidationError as e:
        raise InvalidBackupError(f"Backup contains an invalid record: {e}") from e

    if summary.dangling_references:
        summary.warnings.append(
            f"{summary.dangling_references} reference(s) to missing categories or accounts were cleared"
        )

    logger.info(
        "Restored %d categories, %d budgets, %d transactions (%d skipped)",
        summary.categories_created,
        summary.budgets_restored,
        summary.transactions_restored,
        summary.budgets_skipped + summary.transactions_skipped,
    )
    return summary


class BackupService:
    """File-level export and restore for a store."""

    def __init__(self, store: TransactionStore, codec: Optional[BackupCodec] = None):
        self.store = store
        self.codec = codec or BackupCodec()

    def export_to_file(self, path: Path | str, password: str) -> Path:
        """Encrypt the whole store into a backup file."""
        payload = build_payload(self.store)
        container = self.codec.export_payload(payload, password)
        logger.info(
            "Exporting %d transactions, %d budgets, %d categories",
            len(payload.transactions),
            len(payload.budgets),
            len(payload.categories),
        )
        return write_backup_file(path, container)

    def restore_from_file(self, path: Path | str, password: str) -> RestoreSummary:
        """Decrypt a backup file and merge it into the store."""
        payload = self.codec.import_payload(read_backup_file(path), password)
        return restore_payload(payload, self.store)
