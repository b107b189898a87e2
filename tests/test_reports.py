"""Tests for the report frames."""
import unittest
from datetime import date, datetime

import pandas as pd

from savings_fund.database import DatabaseManager
from savings_fund.engine import FundEngine
from savings_fund.reports import LOANS_COLUMNS, PAYMENTS_COLUMNS, SAVERS_COLUMNS, ReportGenerator


class TestReportGenerator(unittest.TestCase):

    def setUp(self):
        self.db = DatabaseManager(":memory:")
        self.engine = FundEngine(self.db)
        self.session = self.engine.register_user("Ana", "ana@example.com")
        self.engine.update_settings(self.session, interest_rate=2,
                                    start_date=date(2025, 1, 1), end_date=date(2025, 12, 31))
        self.reports = ReportGenerator(self.engine)

        lucia = self.engine.create_saver(self.session, "Lucia", 1000)
        jan = lucia.periods[0]
        self.engine.toggle_due(self.session, jan.id, "q1")
        self.engine.toggle_due(self.session, jan.id, "q2")
        self.engine.assess_penalty(self.session, jan.id, "q2", 50)
        self.lucia = self.engine.get_saver(self.session, lucia.id)

        self.mateo = self.engine.create_saver(self.session, "Mateo", 500)
        self.engine.toggle_due(self.session, self.mateo.periods[0].id, "q1")
        self.engine.toggle_due(self.session, self.mateo.periods[0].id, "q2")
        self.engine.create_loan(self.session, self.mateo.id, 1500, 3, now=datetime(2025, 1, 20))

    def tearDown(self):
        self.db.close()

    def test_fund_summary(self):
        df = self.reports.fund_summary_frame(self.session)
        values = dict(zip(df["Item"], df["Value"]))
        self.assertEqual(values["Savers"], 2)
        self.assertEqual(values["Total Savings"], 3000.0)
        self.assertEqual(values["Available Funds"], 1500.0)
        self.assertEqual(values["Expected Monthly Collection"], 3000.0)

    def test_savers_frame(self):
        df = self.reports.savers_frame(self.session)
        self.assertEqual(list(df.columns), SAVERS_COLUMNS)
        status = dict(zip(df["Name"], df["Status"]))
        self.assertEqual(status["Lucia"], "Pending Penalties")
        self.assertEqual(status["Mateo"], "Up To Date")

    def test_payments_frame(self):
        df = self.reports.payments_frame(self.session, self.lucia.id)
        self.assertEqual(list(df.columns), PAYMENTS_COLUMNS)
        self.assertEqual(list(df["Month"]), ["January 2025", "February 2025"])
        jan = df.iloc[0]
        self.assertEqual(jan["Q2 Penalty"], 50.0)
        self.assertFalse(jan["Q2 Penalty Paid"])
        self.assertTrue(pd.isna(jan["Q1 Penalty"]))

        self.assertEqual(len(self.reports.payments_frame(self.session)), 4)

    def test_loans_frame(self):
        df = self.reports.loans_frame(self.session)
        self.assertEqual(list(df.columns), LOANS_COLUMNS)
        self.assertEqual(len(df), 1)
        self.assertEqual(df.iloc[0]["Saver"], "Mateo")
        self.assertEqual(df.iloc[0]["Status"], "Active")

    def test_saver_totals_frame(self):
        df = self.reports.saver_totals_frame(self.session)
        self.assertEqual(df.loc[self.lucia.id, "outstanding_penalties"], 50.0)
        self.assertEqual(df.loc[self.mateo.id, "active_loans_count"], 1)


if __name__ == '__main__':
    unittest.main()
