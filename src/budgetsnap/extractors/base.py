"""
Base extractor interface.
"""

from abc import ABC, abstractmethod


class BaseExtractor(ABC):
    """
    Base class for the line-level pattern matchers.

    Each extractor looks for one kind of field (amount, date, merchant)
    in recognized text. Absence of a field is never an error: extractors
    return None (or a documented fallback) instead of raising.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Extractor name for logging."""
        pass

    def can_extract(self, content: str) -> bool:
        """Any non-blank text can be attempted."""
        return bool(content and content.strip())
