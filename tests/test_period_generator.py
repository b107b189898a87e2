"""Tests for the period generator."""
import unittest
from datetime import date

from dateutil.relativedelta import relativedelta

from savings_fund.data_structures import FundSettings, Period, Saver
from savings_fund.services import period_generator


def settled(month_id):
    return Period(month_id=month_id, q1_paid=True, q2_paid=True)


class TestPeriodGenerator(unittest.TestCase):

    def setUp(self):
        self.settings = FundSettings(start_date=date(2025, 1, 1), end_date=date(2025, 12, 31))

    def test_initial_period(self):
        period = period_generator.initial_period(date(2025, 1, 10))
        self.assertEqual(period.month_id, "2025-01")
        self.assertFalse(period.is_locked)
        self.assertFalse(period.q1_paid or period.q2_paid)

    def test_next_period_appended(self):
        saver = Saver(id=4, name="Ana", bi_weekly_amount=100.0, start_date=date(2025, 1, 10),
                      periods=(settled("2025-01"),))
        period = period_generator.generate_next_period(saver, self.settings)
        self.assertEqual(period.month_id, "2025-02")
        self.assertEqual(period.saver_id, 4)
        self.assertEqual(period.q1_penalty, 0.0)
        self.assertEqual(period.q2_penalty, 0.0)
        self.assertFalse(period.is_locked)

    def test_counts_from_start_date(self):
        """Start on the 31st: month arithmetic does not drift or skip February."""
        saver = Saver(name="Ana", bi_weekly_amount=100.0, start_date=date(2025, 1, 31),
                      periods=(settled("2025-01"),))
        self.assertEqual(period_generator.generate_next_period(saver, self.settings).month_id, "2025-02")

    def test_fund_closed(self):
        start = date(2025, 1, 1)
        periods = tuple(settled((start + relativedelta(months=i)).strftime("%Y-%m")) for i in range(12))
        saver = Saver(name="Ana", bi_weekly_amount=100.0, start_date=start, periods=periods)
        self.assertIsNone(period_generator.generate_next_period(saver, self.settings))

    def test_next_month_start_on_end_date(self):
        settings = FundSettings(start_date=date(2025, 1, 1), end_date=date(2025, 2, 1))
        saver = Saver(name="Ana", bi_weekly_amount=100.0, start_date=date(2025, 1, 1),
                      periods=(settled("2025-01"),))
        self.assertEqual(period_generator.generate_next_period(saver, settings).month_id, "2025-02")

    def test_unsettled_last_period(self):
        saver = Saver(name="Ana", bi_weekly_amount=100.0, start_date=date(2025, 1, 1),
                      periods=(Period(month_id="2025-01", q1_paid=True),))
        self.assertIsNone(period_generator.generate_next_period(saver, self.settings))

    def test_should_generate_only_for_last_period(self):
        periods = (settled("2025-01"), settled("2025-02"))
        self.assertFalse(period_generator.should_generate(periods, 0))
        self.assertTrue(period_generator.should_generate(periods, 1))
        self.assertFalse(period_generator.should_generate((Period(month_id="2025-01"),), 0))


if __name__ == '__main__':
    unittest.main()
