"""
CLI main entry point.
"""

import argparse
import getpass
import logging
import os
import sys
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from ..backup import BackupError, BackupService, default_backup_name
from ..config import Config, create_default_config, load_config
from ..matching import DuplicateDetector
from ..ocr import SidecarTextRecognizer
from ..parsing import TransactionParser
from ..services import SaveStatus, ScreenshotImporter
from ..state_store import StoreError, TransactionStore

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="budgetsnap",
        description="Extract transactions from banking screenshots and keep encrypted backups",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # init command
    subparsers.add_parser("init", help="Create config, database and default categories")

    # parse command
    parse_parser = subparsers.add_parser("parse", help="Parse recognized text and print candidates")
    parse_parser.add_argument("file", type=Path, help="Text file with recognized screenshot text")

    # import command
    import_parser = subparsers.add_parser("import", help="Import transactions from screenshots")
    import_parser.add_argument("images", type=Path, nargs="+", help="Screenshot files")
    import_parser.add_argument(
        "--account",
        type=str,
        help="Account name (default: default_account from config)",
    )
    import_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be imported without saving",
    )

    # similar command
    similar_parser = subparsers.add_parser("similar", help="Find stored transactions like this one")
    similar_parser.add_argument("--amount", type=str, required=True, help="Amount, e.g. 42.50")
    similar_parser.add_argument("--merchant", type=str, required=True, help="Merchant name")
    similar_parser.add_argument("--date", type=str, required=True, help="Date (YYYY-MM-DD)")
    similar_parser.add_argument("--account", type=str, help="Restrict to this account name")

    # export command
    export_parser = subparsers.add_parser("export", help="Write an encrypted backup")
    export_parser.add_argument(
        "--output",
        type=Path,
        help="Backup file path (default: timestamped file in backup.directory)",
    )
    _add_password_argument(export_parser)

    # restore command
    restore_parser = subparsers.add_parser("restore", help="Restore an encrypted backup")
    restore_parser.add_argument("path", type=Path, help="Backup file")
    _add_password_argument(restore_parser)

    # status command
    subparsers.add_parser("status", help="Show store statistics")

    return parser


def _add_password_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--password-env",
        type=str,
        metavar="VAR",
        help="Read the backup password from this environment variable (default: prompt)",
    )


def _read_password(env_var: Optional[str], confirm: bool = False) -> Optional[str]:
    """Get the backup password from the environment or an interactive prompt."""
    if env_var:
        password = os.environ.get(env_var)
        if not password:
            print(f"❌ Environment variable {env_var} is not set")
            return None
        return password

    password = getpass.getpass("Backup password: ")
    if confirm and getpass.getpass("Repeat password: ") != password:
        print("❌ Passwords do not match")
        return None
    return password


def cmd_init(config_path: Path) -> int:
    """Create config file, database and default categories."""
    if config_path.exists():
        print(f"✓ Config already exists: {config_path}")
    else:
        create_default_config(config_path)
        print(f"✓ Created config: {config_path}")

    config = load_config(config_path)
    store = TransactionStore(config.state_db_path)
    added = store.seed_default_categories()

    print(f"✓ Database ready: {config.state_db_path}")
    if added:
        print(f"✓ Created {added} default categories")
    return 0


def cmd_parse(file: Path) -> int:
    """Parse a recognized-text file and print the candidates."""
    try:
        text = file.read_text(encoding="utf-8")
    except OSError as e:
        print(f"❌ Cannot read {file}: {e}")
        return 1

    candidates = TransactionParser().parse(text)
    if not candidates:
        print("No transactions found")
        return 0

    for candidate in candidates:
        flag = "⚠️ " if candidate.needs_review else "  "
        date_note = "" if candidate.date_found else " (no date found)"
        print(
            f"{flag}{candidate.date:%Y-%m-%d}{date_note}  {candidate.amount:>10}  "
            f"{candidate.merchant}  [{candidate.confidence:.0%}]"
        )

    print(f"\n✓ Found {len(candidates)} transaction(s)")
    return 0


def cmd_import(config: Config, images: list[Path], account: Optional[str], dry_run: bool) -> int:
    """Import transactions from screenshots."""
    store = TransactionStore(config.state_db_path)

    account_name = account or config.default_account
    account_id = None
    if account_name:
        if dry_run:
            existing = store.get_account_by_name(account_name)
            account_id = existing.id if existing else None
        else:
            account_id = store.get_or_create_account(account_name).id

    importer = ScreenshotImporter(
        store,
        SidecarTextRecognizer(suffix=config.ocr.sidecar_suffix),
        transaction_tolerance=config.duplicates.transaction_tolerance,
    )

    print(f"📷 Processing {len(images)} screenshot(s)...")
    batch = importer.process(images, account_id=account_id)

    for failed in batch.failed_images:
        print(f"  ❌ {Path(failed.image).name}: {failed.error}")
    for item in batch.pending:
        flag = "⚠️ " if item.candidate.needs_review else "  "
        print(
            f"  {flag}{item.candidate.date:%Y-%m-%d}  {item.candidate.amount:>10}  "
            f"{item.candidate.merchant}"
        )

    if batch.screenshots_skipped:
        print(f"  ⏭ Skipped {batch.screenshots_skipped} already imported screenshot(s)")

    result = importer.save(batch, dry_run=dry_run)

    if result.query_failures or batch.query_failures:
        print("⚠️  Some duplicate checks failed; duplicates may have been missed")

    if result.status == SaveStatus.SAVE_FAILED:
        print(f"❌ {result.message}")
        return 1

    if result.status == SaveStatus.DRY_RUN:
        print(f"\n[DRY RUN] {result.message}")
    else:
        print(f"\n✓ {result.message}")
    if result.duplicates_skipped:
        print(f"  ⏭ Skipped {result.duplicates_skipped} duplicate transaction(s)")
    if batch.needs_review_count:
        print(f"  ⚠️  {batch.needs_review_count} transaction(s) need review")

    return 0


def cmd_similar(
    config: Config,
    amount: str,
    merchant: str,
    date: str,
    account: Optional[str],
) -> int:
    """Find stored transactions similar to the given one."""
    try:
        amount_value = Decimal(amount.replace(",", "").lstrip("$"))
        date_value = datetime.fromisoformat(date)
    except (InvalidOperation, ValueError) as e:
        print(f"❌ Invalid amount or date: {e}")
        return 1

    store = TransactionStore(config.state_db_path)

    account_id = None
    if account:
        found = store.get_account_by_name(account)
        if found is None:
            print(f"❌ Unknown account: {account}")
            return 1
        account_id = found.id

    detector = DuplicateDetector(store)
    matches = detector.find_similar_transactions(
        amount_value,
        merchant,
        date_value,
        account_id,
        amount_tolerance=config.duplicates.similar_amount_tolerance,
        date_tolerance=config.duplicates.similar_date_tolerance,
    )

    if not matches:
        print("No similar transactions")
        return 0

    for tx in matches:
        print(f"  {tx.date:%Y-%m-%d}  {tx.amount:>10}  {tx.merchant}  ({tx.id})")
    print(f"\n✓ Found {len(matches)} similar transaction(s)")
    return 0


def cmd_export(config: Config, output: Optional[Path], password_env: Optional[str]) -> int:
    """Write an encrypted backup of the whole store."""
    password = _read_password(password_env, confirm=password_env is None)
    if password is None:
        return 1

    path = output or config.backup.directory / default_backup_name(config.backup.file_extension)
    service = BackupService(TransactionStore(config.state_db_path))

    try:
        written = service.export_to_file(path, password)
    except BackupError as e:
        logger.error("Backup export failed: %s", e)
        print(f"❌ {e.user_message}")
        return 1
    except OSError as e:
        logger.error("Backup export failed: %s", e)
        print(f"❌ Cannot write backup: {e}")
        return 1

    print(f"✓ Backup written: {written}")
    return 0


def cmd_restore(config: Config, path: Path, password_env: Optional[str]) -> int:
    """Restore an encrypted backup into the store."""
    if not path.exists():
        print(f"❌ Backup not found: {path}")
        return 1

    password = _read_password(password_env)
    if password is None:
        return 1

    service = BackupService(TransactionStore(config.state_db_path))

    try:
        summary = service.restore_from_file(path, password)
    except BackupError as e:
        logger.error("Backup restore failed: %s", e)
        print(f"❌ {e.user_message}")
        return 1
    except OSError as e:
        logger.error("Backup restore failed: %s", e)
        print(f"❌ Cannot read backup: {e}")
        return 1
    except StoreError as e:
        logger.error("Saving restored data failed: %s", e)
        print(f"❌ Failed to save restored data: {e}")
        return 1

    print("✓ Backup restored")
    print(f"  Categories:   {summary.categories_created} created, {summary.categories_reused} existing")
    print(f"  Budgets:      {summary.budgets_restored} restored, {summary.budgets_skipped} skipped")
    print(
        f"  Transactions: {summary.transactions_restored} restored, "
        f"{summary.transactions_skipped} skipped"
    )
    for warning in summary.warnings:
        print(f"  ⚠️  {warning}")
    return 0


def cmd_status(config: Config) -> int:
    """Show store status."""
    store = TransactionStore(config.state_db_path)
    stats = store.get_stats()

    print("\n📊 BudgetSnap Status")
    print("=" * 40)
    print(f"  Transactions:           {stats['transactions']}")
    print(f"  Needing review:         {stats['needs_review']}")
    print(f"  Screenshots imported:   {stats['screenshots']}")
    print(f"  Categories:             {stats['categories']}")
    print(f"  Budgets:                {stats['budgets']}")
    print(f"  Accounts:               {stats['accounts']}")
    print()

    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init":
        return cmd_init(parsed.config)
    if parsed.command == "parse":
        return cmd_parse(parsed.file)

    # Load config
    try:
        config = load_config(parsed.config)
    except Exception as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    # Route to command
    if parsed.command == "import":
        return cmd_import(config, parsed.images, parsed.account, parsed.dry_run)
    elif parsed.command == "similar":
        return cmd_similar(config, parsed.amount, parsed.merchant, parsed.date, parsed.account)
    elif parsed.command == "export":
        return cmd_export(config, parsed.output, parsed.password_env)
    elif parsed.command == "restore":
        return cmd_restore(config, parsed.path, parsed.password_env)
    elif parsed.command == "status":
        return cmd_status(config)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
