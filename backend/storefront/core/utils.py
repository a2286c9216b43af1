"""
Core Utilities

Shared helpers used across the application.
"""
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP


def utcnow() -> datetime:
    """
    Return timezone-aware UTC datetime.

    Use this instead of datetime.utcnow() which returns naive datetime.
    """
    return datetime.now(timezone.utc)


def to_money(amount) -> Decimal:
    """Quantize a price-like value to two decimal places."""
    if amount is None:
        return Decimal("0.00")
    return Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
