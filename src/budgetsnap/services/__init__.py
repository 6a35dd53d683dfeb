"""Service layer: multi-step workflows built on the core modules."""

from .screenshot_import import (
    FailedImage,
    ImportBatch,
    PendingTransaction,
    SaveResult,
    SaveStatus,
    ScreenshotImporter,
)

__all__ = [
    "ScreenshotImporter",
    "ImportBatch",
    "PendingTransaction",
    "FailedImage",
    "SaveResult",
    "SaveStatus",
]
