"""
Duration and overlap arithmetic tests.

Covers the day counts used for proration, the whole-year rule that keeps
leap days out of annual prices, upgrade overlap, and fractional months.
"""

from datetime import date
from decimal import Decimal

from pricing.duration import day_count, license_duration_days, month_count, overlap_days


class TestDayCount:
    """Plain calendar day differences."""

    def test_one_month(self):
        """May has 31 days."""
        assert day_count(date(2025, 5, 1), date(2025, 6, 1)) == 31

    def test_same_day_is_zero(self):
        assert day_count(date(2025, 5, 1), date(2025, 5, 1)) == 0

    def test_reversed_is_negative(self):
        assert day_count(date(2025, 6, 1), date(2025, 5, 1)) == -31


class TestLicenseDurationDays:
    """Duration used for pricing."""

    def test_leap_year_counts_as_365(self):
        """A whole year spanning Feb 29 is still 365 days."""
        assert license_duration_days(date(2024, 1, 1), date(2025, 1, 1)) == 365

    def test_multi_year(self):
        """Three whole years (crossing 2028-02-29) is 3 * 365."""
        assert license_duration_days(date(2025, 3, 27), date(2028, 3, 27)) == 1095

    def test_year_plus_one_day_counts_as_year(self):
        """End dates one day past the anniversary count as a whole year."""
        assert license_duration_days(date(2024, 1, 1), date(2025, 1, 2)) == 365

    def test_one_day_license(self):
        """A one-day license is not mistaken for zero whole years."""
        assert license_duration_days(date(2025, 1, 1), date(2025, 1, 2)) == 1

    def test_zero_day_license(self):
        assert license_duration_days(date(2023, 12, 1), date(2023, 12, 1)) == 0

    def test_partial_year(self):
        """Eleven months is the exact day count."""
        assert license_duration_days(date(2025, 4, 15), date(2026, 3, 15)) == 334

    def test_short_period(self):
        assert license_duration_days(date(2025, 2, 19), date(2025, 3, 7)) == 16


class TestOverlapDays:
    """Remaining days of an earlier period at the start of a new one."""

    def test_no_previous_period(self):
        assert overlap_days(date(2025, 6, 1), None) == 0

    def test_previous_ended_before_start(self):
        """Never negative when periods don't overlap."""
        assert overlap_days(date(2025, 6, 1), date(2025, 5, 1)) == 0

    def test_previous_ends_on_start(self):
        assert overlap_days(date(2025, 6, 1), date(2025, 6, 1)) == 0

    def test_overlapping_upgrade(self):
        assert overlap_days(date(2025, 4, 14), date(2026, 1, 29)) == 290

    def test_overlap_uses_whole_year_rule(self):
        assert overlap_days(date(2024, 3, 1), date(2025, 3, 1)) == 365


class TestMonthCount:
    """Fractional month counts."""

    def test_same_day_of_month(self):
        """Matching days give a whole number of months."""
        assert month_count(date(2024, 1, 15), date(2024, 4, 15)) == Decimal(3)

    def test_partial_first_and_last_month(self):
        """17/31 of January, all of February, 19/31 of March."""
        result = month_count(date(2024, 1, 15), date(2024, 3, 20))
        expected = Decimal(1) + Decimal(36) / Decimal(31)
        assert abs(result - expected) < Decimal("1e-20")

    def test_within_one_month(self):
        """Fraction of a leap February."""
        result = month_count(date(2024, 2, 10), date(2024, 2, 24))
        assert result == Decimal(14) / Decimal(29)

    def test_reversed_is_negative(self):
        assert month_count(date(2024, 4, 15), date(2024, 1, 15)) == Decimal(-3)
