"""Tests for the loan eligibility guard."""
import unittest
from datetime import date, datetime

from savings_fund.data_structures import FundSettings, Period, Track
from savings_fund.exceptions import IneligibleError
from savings_fund.services.eligibility import check_loan_eligibility, require_eligible


def settled(month_id, **kwargs):
    return Period(month_id=month_id, q1_paid=True, q2_paid=True, **kwargs)


class TestLoanEligibility(unittest.TestCase):

    def setUp(self):
        self.settings = FundSettings(start_date=date(2025, 1, 1), end_date=date(2025, 12, 31))
        self.now = datetime(2025, 3, 20)

    def test_clean_history_is_eligible(self):
        periods = [settled("2025-01"), settled("2025-02"), settled("2025-03")]
        verdict = check_loan_eligibility(periods, self.settings, self.now)
        self.assertTrue(verdict.eligible)
        self.assertIsNone(verdict.reason)

    def test_old_unpaid_penalty_blocks(self):
        """An earlier settled month with an unpaid Q2 penalty blocks a clean present."""
        periods = [
            settled("2025-01", q2_penalty=5000.0, q2_penalty_paid=False),
            settled("2025-02"),
            settled("2025-03"),
        ]
        verdict = check_loan_eligibility(periods, self.settings, self.now)
        self.assertFalse(verdict.eligible)
        self.assertEqual(verdict.track, Track.Q2)
        self.assertEqual(verdict.kind, "penalty")
        self.assertEqual(verdict.month_id, "2025-01")
        self.assertIn("Q2", verdict.reason)

    def test_paid_penalty_does_not_block(self):
        periods = [settled("2025-01", q2_penalty=5000.0, q2_penalty_paid=True)]
        self.assertTrue(check_loan_eligibility(periods, self.settings, self.now).eligible)

    def test_overdue_first_half_blocks(self):
        periods = [settled("2025-01"), settled("2025-02"), Period(month_id="2025-03", q2_paid=True)]
        verdict = check_loan_eligibility(periods, self.settings, self.now)
        self.assertFalse(verdict.eligible)
        self.assertEqual(verdict.track, Track.Q1)
        self.assertEqual(verdict.kind, "overdue")
        self.assertEqual(verdict.month_id, "2025-03")

    def test_second_half_not_yet_due(self):
        periods = [Period(month_id="2025-03", q1_paid=True)]
        self.assertTrue(check_loan_eligibility(periods, self.settings, datetime(2025, 3, 10)).eligible)
        verdict = check_loan_eligibility(periods, self.settings, datetime(2025, 3, 19))
        self.assertFalse(verdict.eligible)
        self.assertEqual(verdict.track, Track.Q2)

    def test_future_period_is_skipped(self):
        periods = [settled("2025-03"), Period(month_id="2025-04", q1_penalty=100.0)]
        self.assertTrue(check_loan_eligibility(periods, self.settings, self.now).eligible)

    def test_first_offending_period_wins(self):
        periods = [
            Period(month_id="2025-01", q1_paid=True),
            settled("2025-02", q1_penalty=300.0),
        ]
        verdict = check_loan_eligibility(periods, self.settings, self.now)
        self.assertEqual(verdict.month_id, "2025-01")
        self.assertEqual(verdict.kind, "overdue")

    def test_penalty_reported_before_overdue_in_same_period(self):
        periods = [Period(month_id="2025-02", q1_penalty=200.0)]
        verdict = check_loan_eligibility(periods, self.settings, self.now)
        self.assertEqual(verdict.kind, "penalty")
        self.assertEqual(verdict.track, Track.Q1)

    def test_outside_fund_range_not_overdue(self):
        settings = FundSettings(start_date=date(2025, 2, 1), end_date=date(2025, 12, 31))
        periods = [Period(month_id="2025-01"), settled("2025-02")]
        self.assertTrue(check_loan_eligibility(periods, settings, self.now).eligible)

    def test_outside_fund_range_penalty_still_blocks(self):
        settings = FundSettings(start_date=date(2025, 2, 1), end_date=date(2025, 12, 31))
        periods = [Period(month_id="2025-01", q1_penalty=100.0), settled("2025-02")]
        self.assertFalse(check_loan_eligibility(periods, settings, self.now).eligible)

    def test_require_eligible_raises(self):
        periods = [settled("2025-01", q1_penalty=50.0)]
        with self.assertRaises(IneligibleError) as context:
            require_eligible(periods, self.settings, self.now)
        self.assertEqual(context.exception.verdict.track, Track.Q1)
        self.assertEqual(context.exception.details['track'], "Q1")


if __name__ == '__main__':
    unittest.main()
