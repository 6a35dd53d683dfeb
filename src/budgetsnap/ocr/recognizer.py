"""
Text recognition collaborator.

Recognition itself happens elsewhere (on-device OCR, a cloud service, a
manual transcription). The importer only needs the recognized text and a
content hash of the image it came from.

SidecarTextRecognizer reads text that was recognized ahead of time and
stored next to the image, e.g. `statement.png` + `statement.png.txt`.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ..schemas.dedupe import compute_image_hash

logger = logging.getLogger(__name__)


class OCRError(Exception):
    """Raised when text cannot be recognized for an image."""

    pass


@dataclass(frozen=True)
class RecognizedText:
    """Text recognized from one image plus the image's content hash."""

    text: str
    image_hash: str


class TextRecognizer(Protocol):
    """Anything that turns an image into RecognizedText or raises OCRError."""

    def extract_text(self, image: Path) -> RecognizedText: ...


class SidecarTextRecognizer:
    """Recognizer backed by pre-recognized text files beside each image."""

    def __init__(self, suffix: str = ".txt", encoding: str = "utf-8"):
        self.suffix = suffix
        self.encoding = encoding

    def sidecar_path(self, image: Path) -> Path:
        image = Path(image)
        return image.with_name(image.name + self.suffix)

    def extract_text(self, image: Path) -> RecognizedText:
        """
        Read the image (for its hash) and its sidecar text.

        Args:
            image: Path to the screenshot

        Returns:
            RecognizedText with the sidecar content and SHA-256 of the image

        Raises:
            OCRError: Image or sidecar is missing or unreadable
        """
        image = Path(image)
        try:
            image_bytes = image.read_bytes()
        except OSError as e:
            raise OCRError(f"Cannot read image {image}: {e}") from e

        sidecar = self.sidecar_path(image)
        try:
            text = sidecar.read_text(encoding=self.encoding)
        except FileNotFoundError as e:
            raise OCRError(f"No recognized text found for {image.name} (expected {sidecar.name})") from e
        except (OSError, UnicodeDecodeError) as e:
            raise OCRError(f"Cannot read recognized text {sidecar}: {e}") from e

        if not text.strip():
            raise OCRError(f"No text found in {image.name}")

        logger.debug("Read %d characters of recognized text for %s", len(text), image.name)
        return RecognizedText(text=text, image_hash=compute_image_hash(image_bytes))
