"""
Helper functions for bursary applications.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

MIN_HARDSHIP_WORDS = 50
MAX_HARDSHIP_WORDS = 120

MIN_FEE_BALANCE = Decimal("1000")
MAX_FEE_BALANCE = Decimal("10000000")


def count_words(text: str | None) -> int:
    """Whitespace-separated word count."""
    if not text:
        return 0
    return len(text.split())


def format_application_number(prefix: str, year: int, sequence: int) -> str:
    """
    Build a human-readable application number.

    Example:
        format_application_number("BUR", 2026, 42) -> "BUR-2026-00042"
    """
    return f"{prefix}-{year}-{sequence:05d}"


def compute_overall_score(*scores: int) -> Decimal:
    """Mean of the sub-scores, rounded to two decimal places."""
    mean = Decimal(sum(scores)) / Decimal(len(scores))
    return mean.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def start_of_month(moment: datetime, months_back: int = 0) -> datetime:
    """
    Midnight on the first day of the month `months_back` months before moment.

    Example:
        start_of_month(datetime(2026, 3, 15, 9, 30), 6) -> datetime(2025, 9, 1)
    """
    index = moment.year * 12 + moment.month - 1 - months_back
    return moment.replace(
        year=index // 12, month=index % 12 + 1, day=1, hour=0, minute=0, second=0, microsecond=0
    )


def percentage(part: int, whole: int) -> int:
    """part as a whole-number percentage of whole; 0 when whole is 0."""
    if whole <= 0:
        return 0
    share = Decimal(part) * 100 / Decimal(whole)
    return int(share.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
