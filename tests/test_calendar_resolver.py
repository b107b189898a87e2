"""Tests for the calendar resolver."""
import unittest
from datetime import date, datetime

from savings_fund.data_structures import FundSettings, Track
from savings_fund.exceptions import ValidationError
from savings_fund.services import calendar_resolver


class TestMonthIdentifiers(unittest.TestCase):

    def test_parse_month_id(self):
        self.assertEqual(calendar_resolver.parse_month_id("2025-03"), date(2025, 3, 1))

    def test_parse_month_id_with_timestamp_suffix(self):
        """Identifiers stored as full timestamps resolve to their month."""
        self.assertEqual(
            calendar_resolver.parse_month_id("2026-02-01T00:00:00.000000Z"),
            date(2026, 2, 1)
        )

    def test_parse_invalid_month_id(self):
        with self.assertRaises(ValidationError):
            calendar_resolver.parse_month_id("March")
        with self.assertRaises(ValidationError):
            calendar_resolver.parse_month_id("2025-13")

    def test_format_month_id(self):
        self.assertEqual(calendar_resolver.format_month_id(date(2025, 7, 19)), "2025-07")


class TestDeadlines(unittest.TestCase):

    def setUp(self):
        self.settings = FundSettings(
            start_date=date(2025, 1, 15),
            end_date=date(2025, 12, 10),
            interest_rate=2,
        )

    def test_deadlines_are_end_of_day(self):
        resolved = calendar_resolver.resolve_period("2025-03", self.settings)
        self.assertEqual(resolved.month_start, datetime(2025, 3, 1))
        self.assertEqual(resolved.q1_deadline, datetime(2025, 3, 3, 23, 59, 59, 999999))
        self.assertEqual(resolved.q2_deadline, datetime(2025, 3, 18, 23, 59, 59, 999999))
        self.assertEqual(resolved.deadline(Track.Q2), resolved.q2_deadline)

    def test_fund_range_rounds_to_month_boundaries(self):
        """Fund starts on the 15th and ends on the 10th; both months still count."""
        self.assertTrue(calendar_resolver.resolve_period("2025-01", self.settings).within_fund_range)
        self.assertTrue(calendar_resolver.resolve_period("2025-12", self.settings).within_fund_range)
        self.assertFalse(calendar_resolver.resolve_period("2024-12", self.settings).within_fund_range)
        self.assertFalse(calendar_resolver.resolve_period("2026-01", self.settings).within_fund_range)

    def test_has_month_started(self):
        self.assertFalse(calendar_resolver.has_month_started("2025-04", datetime(2025, 3, 31, 23, 59)))
        self.assertTrue(calendar_resolver.has_month_started("2025-03", datetime(2025, 3, 1)))
        self.assertTrue(calendar_resolver.has_month_started("2025-02", datetime(2025, 3, 1)))

    def test_months_until_close(self):
        self.assertEqual(calendar_resolver.months_until_close(self.settings, datetime(2025, 3, 20)), 9)
        self.assertEqual(calendar_resolver.months_until_close(self.settings, datetime(2025, 12, 1)), 0)

    def test_months_until_close_after_fund_end(self):
        self.assertEqual(calendar_resolver.months_until_close(self.settings, datetime(2026, 2, 1)), 0)


if __name__ == '__main__':
    unittest.main()
