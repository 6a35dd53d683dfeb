"""Test fixtures and utilities."""

from datetime import datetime
from pathlib import Path

import pytest

# Recognized text of a typical banking app activity screen
SAMPLE_SCREENSHOT_TEXT = """
Recent Activity

Starbucks Coffee $5.75 03/01/2024
Whole Foods Market $82.14 03/01/2024
Shell Gas Station ($38.20) 03/01/2024
Pending
"""

# Second screenshot of the same account, scrolled: one row overlaps
SAMPLE_SCREENSHOT_TEXT_SCROLLED = """
Shell Gas Station ($38.20) 03/01/2024
Netflix.com $15.99 03/01/2024
"""

# No dates anywhere: every candidate falls back to the parse time
SAMPLE_UNDATED_TEXT = """
Spotify $9.99
Uber Trip $23.40
"""

FIXED_NOW = datetime(2024, 6, 15, 12, 30)


@pytest.fixture
def sample_screenshot_text() -> str:
    """Recognized text with three dated transactions."""
    return SAMPLE_SCREENSHOT_TEXT


@pytest.fixture
def sample_scrolled_text() -> str:
    """Recognized text overlapping sample_screenshot_text by one row."""
    return SAMPLE_SCREENSHOT_TEXT_SCROLLED


@pytest.fixture
def sample_undated_text() -> str:
    """Recognized text without any dates."""
    return SAMPLE_UNDATED_TEXT


@pytest.fixture
def fixed_clock():
    """Clock returning a fixed reference time."""
    return lambda: FIXED_NOW


@pytest.fixture
def temp_db(tmp_path) -> Path:
    """Temporary database path for testing."""
    return tmp_path / "test_state.db"


@pytest.fixture
def make_screenshot(tmp_path):
    """Create a fake screenshot with a sidecar text file.

    The image bytes include the name so every screenshot hashes differently.
    """

    def _make(name: str, text: str, image_bytes: bytes | None = None) -> Path:
        image = tmp_path / name
        image.write_bytes(image_bytes if image_bytes is not None else b"PNG:" + name.encode())
        (tmp_path / f"{name}.txt").write_text(text, encoding="utf-8")
        return image

    return _make
