"""
Identity helpers for duplicate detection.

Screenshots are identified by a SHA-256 of their raw bytes. Amounts are
compared at cent precision, so every comparison and every stored amount
goes through the normalization below.
"""

import hashlib
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def normalize_amount(amount: Decimal | str | int | float) -> Decimal:
    """
    Normalize an amount to a Decimal with 2 decimal places.

    Args:
        amount: Amount in various formats

    Returns:
        Decimal quantized to cents
    """
    if isinstance(amount, str):
        amount = Decimal(amount.replace(",", ""))
    elif isinstance(amount, float):
        amount = Decimal(str(amount))
    elif isinstance(amount, int) and not isinstance(amount, bool):
        amount = Decimal(amount)
    elif not isinstance(amount, Decimal):
        raise ValueError(f"amount must be Decimal, str, int or float, got: {type(amount)}")

    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def amount_to_cents(amount: Decimal | str | int | float) -> int:
    """Convert an amount to an integer number of cents."""
    return int(normalize_amount(amount) * 100)


def cents_to_amount(cents: int) -> Decimal:
    """Convert an integer number of cents back to a Decimal amount."""
    return (Decimal(cents) / 100).quantize(CENT)


def compute_image_hash(image_bytes: bytes) -> str:
    """
    Compute the content hash of a screenshot.

    Args:
        image_bytes: Raw image file content

    Returns:
        64-character lowercase hex SHA-256 string
    """
    return hashlib.sha256(image_bytes).hexdigest()
