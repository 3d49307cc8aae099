"""
Unit tests for student profile helpers.
"""

from datetime import date

from bursary.modules.profiles.helpers import (
    calculate_age,
    get_age_range,
    is_valid_phone,
    normalize_phone,
)


class TestAgeRange:
    """Tests for calculate_age and get_age_range."""

    def test_age_counts_whole_years(self):
        assert calculate_age(date(2004, 10, 19), today=date(2026, 10, 18)) == 21
        assert calculate_age(date(2004, 10, 18), today=date(2026, 10, 18)) == 22

    def test_buckets(self):
        today = date(2026, 6, 1)
        assert get_age_range(date(2010, 1, 1), today) == "Under 18"
        assert get_age_range(date(2008, 1, 1), today) == "18-22"
        assert get_age_range(date(2000, 1, 1), today) == "23-27"
        assert get_age_range(date(1995, 1, 1), today) == "28-32"
        assert get_age_range(date(1980, 1, 1), today) == "33+"

    def test_missing_date_of_birth(self):
        assert get_age_range(None) is None


class TestPhone:
    """Tests for phone normalisation."""

    def test_international_prefix_is_rewritten(self):
        assert normalize_phone("+254 712 345 678") == "0712345678"
        assert normalize_phone("254112345678") == "0112345678"

    def test_valid_numbers(self):
        assert is_valid_phone("0712345678")
        assert is_valid_phone("+254712345678")

    def test_invalid_numbers(self):
        assert not is_valid_phone("0812345678")
        assert not is_valid_phone("07123")
