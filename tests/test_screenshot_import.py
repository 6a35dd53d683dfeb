"""Tests for the screenshot import pipeline."""

import threading
from decimal import Decimal
from pathlib import Path

import pytest

from budgetsnap.ocr import OCRError, RecognizedText, SidecarTextRecognizer
from budgetsnap.schemas import compute_image_hash
from budgetsnap.services import SaveStatus, ScreenshotImporter
from budgetsnap.state_store import CommitError, StoreSession, TransactionStore


class CountingRecognizer:
    """Recognizer that counts calls and can cancel the batch."""

    def __init__(self, texts: dict[str, str], cancel_after: int | None = None, event=None):
        self.texts = texts
        self.calls = 0
        self.cancel_after = cancel_after
        self.event = event

    def extract_text(self, image: Path) -> RecognizedText:
        self.calls += 1
        if self.cancel_after is not None and self.calls >= self.cancel_after:
            self.event.set()
        name = Path(image).name
        if name not in self.texts:
            raise OCRError(f"No text found in {name}")
        return RecognizedText(text=self.texts[name], image_hash=compute_image_hash(name.encode()))


class TestSidecarTextRecognizer:
    """Tests for the sidecar-file recognizer."""

    def test_reads_sidecar_and_hashes_image(self, make_screenshot):
        """Text comes from the sidecar, the hash from the image bytes."""
        image = make_screenshot("shot.png", "Starbucks $5.75", image_bytes=b"\x89PNG data")

        result = SidecarTextRecognizer().extract_text(image)

        assert result.text == "Starbucks $5.75"
        assert result.image_hash == compute_image_hash(b"\x89PNG data")
        assert len(result.image_hash) == 64

    def test_missing_sidecar(self, tmp_path):
        """An image without recognized text is an OCR failure."""
        image = tmp_path / "shot.png"
        image.write_bytes(b"png")

        with pytest.raises(OCRError):
            SidecarTextRecognizer().extract_text(image)

    def test_missing_image(self, tmp_path):
        """A missing image is an OCR failure."""
        with pytest.raises(OCRError):
            SidecarTextRecognizer().extract_text(tmp_path / "nope.png")

    def test_blank_text(self, make_screenshot):
        """Whitespace-only text counts as nothing recognized."""
        image = make_screenshot("blank.png", "  \n ")

        with pytest.raises(OCRError):
            SidecarTextRecognizer().extract_text(image)


class TestScreenshotImporter:
    """Tests for process() and save()."""

    @pytest.fixture
    def store(self, temp_db):
        return TransactionStore(temp_db)

    @pytest.fixture
    def importer(self, store):
        return ScreenshotImporter(store, SidecarTextRecognizer())

    def test_import_screenshot(self, importer, store, make_screenshot, sample_screenshot_text):
        """All parsed transactions are saved with the screenshot hash."""
        image = make_screenshot("activity.png", sample_screenshot_text)

        batch = importer.process([image])
        result = importer.save(batch)

        assert result.status == SaveStatus.SAVED
        assert result.inserted == 3
        stored = store.list_transactions()
        assert {tx.merchant for tx in stored} == {
            "Starbucks Coffee",
            "Whole Foods Market",
            "Shell Gas Station",
        }
        assert {tx.screenshot_hash for tx in stored} == {compute_image_hash(b"PNG:activity.png")}

    def test_nothing_written_before_save(self, importer, store, make_screenshot, sample_screenshot_text):
        """process() only reads."""
        importer.process([make_screenshot("activity.png", sample_screenshot_text)])
        assert store.list_transactions() == []

    def test_same_screenshot_twice_is_skipped(
        self, importer, store, make_screenshot, sample_screenshot_text
    ):
        """A screenshot imported before is skipped entirely."""
        image = make_screenshot("activity.png", sample_screenshot_text)
        importer.save(importer.process([image]))

        batch = importer.process([image])

        assert batch.screenshots_skipped == 1
        assert batch.pending == []
        assert importer.save(batch).status == SaveStatus.NOTHING_TO_SAVE
        assert len(store.list_transactions()) == 3

    def test_same_image_within_batch(self, importer, make_screenshot, sample_screenshot_text):
        """Identical images in one batch are processed once."""
        first = make_screenshot("a.png", sample_screenshot_text, image_bytes=b"same")
        second = make_screenshot("b.png", sample_screenshot_text, image_bytes=b"same")

        batch = importer.process([first, second])

        assert batch.screenshots_processed == 1
        assert batch.screenshots_skipped == 1

    def test_overlapping_screenshots(
        self, importer, store, make_screenshot, sample_screenshot_text, sample_scrolled_text
    ):
        """A row visible on two screenshots is stored once."""
        first = make_screenshot("top.png", sample_screenshot_text)
        second = make_screenshot("scrolled.png", sample_scrolled_text)

        result = importer.save(importer.process([first, second]))

        assert result.inserted == 4
        assert result.duplicates_skipped == 1
        merchants = [tx.merchant for tx in store.list_transactions()]
        assert merchants.count("Shell Gas Station") == 1
        assert "Netflix.com" in merchants

    def test_previously_stored_transaction_skipped(
        self, importer, store, make_screenshot, sample_screenshot_text, sample_scrolled_text
    ):
        """Rows already stored from an earlier import are not inserted again."""
        importer.save(importer.process([make_screenshot("top.png", sample_screenshot_text)]))

        result = importer.save(
            importer.process([make_screenshot("scrolled.png", sample_scrolled_text)])
        )

        assert result.inserted == 1
        assert result.duplicates_skipped == 1

    def test_account_scope(self, importer, store, make_screenshot, sample_screenshot_text):
        """The same screenshot can be imported into two accounts."""
        checking = store.get_or_create_account("Checking")
        savings = store.get_or_create_account("Savings")
        image = make_screenshot("activity.png", sample_screenshot_text)

        importer.save(importer.process([image], account_id=checking.id))
        batch = importer.process([image], account_id=savings.id)
        result = importer.save(batch)

        assert batch.screenshots_skipped == 0
        assert result.inserted == 3
        assert len(store.list_transactions(account_id=savings.id)) == 3

    def test_ocr_failure_is_recorded(self, store, make_screenshot, sample_screenshot_text, tmp_path):
        """One failing image does not stop the batch."""
        good = make_screenshot("good.png", sample_screenshot_text)
        bad = tmp_path / "bad.png"
        bad.write_bytes(b"png")

        importer = ScreenshotImporter(store, SidecarTextRecognizer())
        batch = importer.process([bad, good])

        assert len(batch.failed_images) == 1
        assert batch.failed_images[0].image == str(bad)
        assert batch.screenshots_processed == 1
        assert len(batch.pending) == 3

    def test_cancel_stops_recognition(self, store, sample_screenshot_text):
        """After cancellation no further images are recognized."""
        cancel = threading.Event()
        recognizer = CountingRecognizer(
            {"a.png": sample_screenshot_text, "b.png": "Netflix $15.99"},
            cancel_after=1,
            event=cancel,
        )
        importer = ScreenshotImporter(store, recognizer)

        batch = importer.process(["a.png", "b.png", "c.png"], cancel=cancel)

        assert recognizer.calls == 1
        assert batch.cancelled is True
        assert store.list_transactions() == []

    def test_cancel_before_start(self, store):
        """A pre-set event recognizes nothing."""
        cancel = threading.Event()
        cancel.set()
        recognizer = CountingRecognizer({})

        batch = ScreenshotImporter(store, recognizer).process(["a.png"], cancel=cancel)

        assert recognizer.calls == 0
        assert batch.cancelled is True

    def test_dry_run_writes_nothing(self, importer, store, make_screenshot, sample_screenshot_text):
        """Dry runs report counts without saving."""
        batch = importer.process([make_screenshot("activity.png", sample_screenshot_text)])
        result = importer.save(batch, dry_run=True)

        assert result.status == SaveStatus.DRY_RUN
        assert result.inserted == 3
        assert store.list_transactions() == []
        assert batch.saved is False

    def test_needs_review_flag(self, importer, store, make_screenshot):
        """Low-confidence candidates are stored flagged for correction."""
        batch = importer.process([make_screenshot("refund.png", "($25.00)")])
        importer.save(batch)

        [tx] = store.list_transactions()
        assert tx.amount == Decimal("25.00")
        assert tx.needs_correction is True
        assert batch.needs_review_count == 1

    def test_commit_failure_then_retry(
        self, importer, store, make_screenshot, sample_screenshot_text, monkeypatch
    ):
        """SAVE_FAILED keeps the batch so a retry saves it without re-parsing."""
        batch = importer.process([make_screenshot("activity.png", sample_screenshot_text)])
        original_commit = StoreSession.commit

        def failing_commit(self):
            raise CommitError("database is locked")

        monkeypatch.setattr(StoreSession, "commit", failing_commit)
        failed = importer.save(batch)

        assert failed.status == SaveStatus.SAVE_FAILED
        assert failed.success is False
        assert "database is locked" in failed.message
        assert store.list_transactions() == []
        assert len(batch.pending) == 3

        monkeypatch.setattr(StoreSession, "commit", original_commit)
        retried = importer.save(batch)

        assert retried.status == SaveStatus.SAVED
        assert retried.inserted == 3
        assert len(store.list_transactions()) == 3

    def test_saved_batch_is_not_saved_again(
        self, importer, store, make_screenshot, sample_screenshot_text
    ):
        """Saving the same batch twice inserts once."""
        batch = importer.process([make_screenshot("activity.png", sample_screenshot_text)])
        importer.save(batch)
        second = importer.save(batch)

        assert second.inserted == 0
        assert len(store.list_transactions()) == 3
