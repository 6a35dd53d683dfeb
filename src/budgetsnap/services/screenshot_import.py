"""Screenshot import pipeline.

Turns a batch of banking-app screenshots into stored transactions:

1. Recognize text for each image (skipping images that fail)
2. Skip screenshots imported before (content hash)
3. Parse the text into candidate transactions
4. Skip candidates already stored (amount, merchant, date within tolerance)
5. Persist the rest in a single commit

Steps 1-3 run in process(); steps 4-5 run in save(), after the user had
a chance to review the candidates. Nothing is written before save(), so
a cancelled or failed batch leaves no partial state behind.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ..matching.duplicates import DEFAULT_TRANSACTION_TOLERANCE, DuplicateDetector
from ..ocr import OCRError
from ..parsing import TransactionParser
from ..schemas.transaction import CandidateTransaction, StoredTransaction
from ..state_store import CommitError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..ocr import TextRecognizer
    from ..state_store import TransactionStore

logger = logging.getLogger(__name__)


class SaveStatus(str, Enum):
    """Outcome of saving a batch."""

    SAVED = "SAVED"
    SAVE_FAILED = "SAVE_FAILED"
    DRY_RUN = "DRY_RUN"
    NOTHING_TO_SAVE = "NOTHING_TO_SAVE"


@dataclass
class FailedImage:
    """An image whose text could not be recognized."""

    image: str
    error: str


@dataclass
class PendingTransaction:
    """A parsed candidate waiting to be saved, with the screenshot it came from."""

    candidate: CandidateTransaction
    screenshot_hash: str
    source_image: str


@dataclass
class ImportBatch:
    """In-memory result of processing a set of screenshots.

    Kept by the caller until save() succeeds, so a failed save can be
    retried without recognizing or parsing anything again.
    """

    account_id: Optional[str] = None
    pending: list[PendingTransaction] = field(default_factory=list)
    failed_images: list[FailedImage] = field(default_factory=list)
    screenshots_processed: int = 0
    screenshots_skipped: int = 0
    query_failures: int = 0
    cancelled: bool = False
    saved: bool = False

    @property
    def needs_review_count(self) -> int:
        return sum(1 for item in self.pending if item.candidate.needs_review)


@dataclass
class SaveResult:
    """Result of saving a batch."""

    status: SaveStatus
    inserted: int = 0
    duplicates_skipped: int = 0
    query_failures: int = 0
    message: str = ""

    @property
    def success(self) -> bool:
        """Return True unless the commit failed."""
        return self.status != SaveStatus.SAVE_FAILED


class ScreenshotImporter:
    """Runs the screenshot → transaction pipeline against one store.

    Usage:
        importer = ScreenshotImporter(store, SidecarTextRecognizer())
        batch = importer.process(images, account_id=account.id)
        result = importer.save(batch)
        if not result.success:
            result = importer.save(batch)  # retry, no re-parse
    """

    def __init__(
        self,
        store: TransactionStore,
        recognizer: TextRecognizer,
        parser: Optional[TransactionParser] = None,
        transaction_tolerance: timedelta = DEFAULT_TRANSACTION_TOLERANCE,
    ) -> None:
        """Initialize the importer.

        Args:
            store: Transaction store used for duplicate checks and saving.
            recognizer: Text recognition collaborator.
            parser: Transaction parser (a default one is created if omitted).
            transaction_tolerance: Date tolerance for transaction duplicates.
        """
        self.store = store
        self.recognizer = recognizer
        self.parser = parser or TransactionParser()
        self.transaction_tolerance = transaction_tolerance

    def process(
        self,
        images: Iterable[Path | str],
        account_id: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> ImportBatch:
        """Recognize and parse a set of screenshots.

        Args:
            images: Screenshot paths, processed in order.
            account_id: Account the screenshots belong to.
            cancel: When set, no further images are recognized.

        Returns:
            ImportBatch with pending candidates and per-image outcomes.
        """
        batch = ImportBatch(account_id=account_id)
        detector = DuplicateDetector(self.store)
        seen_hashes: set[str] = set()

        for image in images:
            if cancel is not None and cancel.is_set():
                logger.info("Import cancelled after %d screenshot(s)", batch.screenshots_processed)
                batch.cancelled = True
                break

            image = Path(image)
            try:
                recognized = self.recognizer.extract_text(image)
            except OCRError as e:
                logger.warning("Text recognition failed for %s: %s", image.name, e)
                batch.failed_images.append(FailedImage(image=str(image), error=str(e)))
                continue

            if recognized.image_hash in seen_hashes or detector.is_screenshot_duplicate(
                recognized.image_hash, account_id=account_id
            ):
                logger.info("Skipping already imported screenshot %s", image.name)
                batch.screenshots_skipped += 1
                continue
            seen_hashes.add(recognized.image_hash)

            candidates = self.parser.parse(recognized.text)
            logger.debug("%s: %d candidate(s)", image.name, len(candidates))
            batch.pending.extend(
                PendingTransaction(
                    candidate=candidate,
                    screenshot_hash=recognized.image_hash,
                    source_image=str(image),
                )
                for candidate in candidates
            )
            batch.screenshots_processed += 1

        batch.query_failures = detector.query_failures
        return batch

    def save(self, batch: ImportBatch, dry_run: bool = False) -> SaveResult:
        """Persist a batch's non-duplicate candidates in one commit.

        Duplicate checks run inside the write session, so a transaction
        seen on two screenshots of the same batch is inserted once.

        Args:
            batch: Batch returned by process().
            dry_run: Run the duplicate checks but write nothing.

        Returns:
            SaveResult. On SAVE_FAILED the batch is left untouched and can
            be passed to save() again.
        """
        if batch.saved:
            return SaveResult(status=SaveStatus.SAVED, message="Batch was already saved")

        if not batch.pending:
            return SaveResult(status=SaveStatus.NOTHING_TO_SAVE, message="No transactions to save")

        inserted = 0
        duplicates = 0

        try:
            with self.store.session() as session:
                detector = DuplicateDetector(session)

                for item in batch.pending:
                    candidate = item.candidate
                    if detector.is_transaction_duplicate(
                        candidate.amount,
                        candidate.merchant,
                        candidate.date,
                        account_id=batch.account_id,
                        tolerance=self.transaction_tolerance,
                    ):
                        logger.debug(
                            "Skipping duplicate %s %s on %s",
                            candidate.merchant,
                            candidate.amount,
                            candidate.date.date(),
                        )
                        duplicates += 1
                        continue

                    session.add_transaction(
                        StoredTransaction.from_candidate(
                            candidate,
                            screenshot_hash=item.screenshot_hash,
                            account_id=batch.account_id,
                        )
                    )
                    inserted += 1

                if not dry_run:
                    session.commit()
        except CommitError as e:
            logger.error("Saving %d transaction(s) failed: %s", inserted, e)
            return SaveResult(
                status=SaveStatus.SAVE_FAILED,
                duplicates_skipped=duplicates,
                query_failures=detector.query_failures,
                message=f"Failed to save transactions: {e}",
            )

        if dry_run:
            return SaveResult(
                status=SaveStatus.DRY_RUN,
                inserted=inserted,
                duplicates_skipped=duplicates,
                query_failures=detector.query_failures,
                message=f"Would save {inserted} transaction(s), skip {duplicates} duplicate(s)",
            )

        batch.saved = True
        logger.info("Saved %d transaction(s), skipped %d duplicate(s)", inserted, duplicates)
        return SaveResult(
            status=SaveStatus.SAVED,
            inserted=inserted,
            duplicates_skipped=duplicates,
            query_failures=detector.query_failures,
            message=f"Saved {inserted} transaction(s)",
        )
