"""
Report frames for the savings fund.
Builds the tables an exporter renders (fund summary, savers, payment detail,
loans). Rendering the spreadsheet itself is left to the exporter.
"""
from dataclasses import asdict

import pandas as pd

from savings_fund.data_structures import Track
from savings_fund.services import fund_ledger

SAVERS_COLUMNS = ["Name", "Bi-weekly Due", "Total Saved", "Active Loans", "Status"]
PAYMENTS_COLUMNS = ["Saver", "Month", "Q1 Paid", "Q1 Penalty", "Q1 Penalty Paid",
                    "Q2 Paid", "Q2 Penalty", "Q2 Penalty Paid"]
LOANS_COLUMNS = ["Saver", "Amount", "Duration (months)", "Payments Made", "Status", "Start Date"]


class ReportGenerator:
    def __init__(self, engine):
        self.engine = engine

    def fund_summary_frame(self, session):
        """Two-column summary: fund settings followed by the aggregate figures."""
        settings = self.engine.get_settings(session)
        report = self.engine.get_report(session)
        rows = [
            ("Start Date", settings.start_date.isoformat()),
            ("End Date", settings.end_date.isoformat()),
            ("Interest Rate (%)", settings.interest_rate),
            ("Savers", report.savers_count),
            ("Available Funds", report.available_funds),
            ("Total Savings", report.total_savings),
            ("Expected Monthly Collection", report.expected_monthly_collection),
            ("Penalties Collected", report.total_penalties_collected),
            ("Interest Earned", report.total_interest_earned),
            ("Loans Given", report.total_loans_given),
            ("Active Loans Capital", report.active_loans_capital),
            ("Loan Payments Received", report.total_loan_payments_received),
            ("Active Loans", report.active_loans_count),
        ]
        return pd.DataFrame(rows, columns=["Item", "Value"])

    def savers_frame(self, session):
        rows = []
        for saver in self.engine.list_savers(session):
            totals = fund_ledger.saver_totals(saver)
            rows.append({
                "Name": saver.name,
                "Bi-weekly Due": float(saver.bi_weekly_amount),
                "Total Saved": totals.total_saved,
                "Active Loans": totals.active_loans_count,
                "Status": "Pending Penalties" if totals.has_outstanding_issues else "Up To Date",
            })
        return pd.DataFrame(rows, columns=SAVERS_COLUMNS)

    def payments_frame(self, session, saver_id=None):
        """Period-by-period detail, for one saver or the whole fund.

        Penalty columns are None where no penalty was assessed.
        """
        if saver_id is not None:
            savers = [self.engine.get_saver(session, saver_id)]
        else:
            savers = self.engine.list_savers(session)

        rows = []
        for saver in savers:
            for period in saver.periods:
                row = {"Saver": saver.name, "Month": period.label}
                for track in Track:
                    assessed = float(period.penalty(track)) > 0
                    row[f"{track.value} Paid"] = period.paid(track)
                    row[f"{track.value} Penalty"] = float(period.penalty(track)) if assessed else None
                    row[f"{track.value} Penalty Paid"] = period.penalty_paid(track) if assessed else None
                rows.append(row)
        return pd.DataFrame(rows, columns=PAYMENTS_COLUMNS)

    def loans_frame(self, session):
        rows = [
            {
                "Saver": saver.name,
                "Amount": float(loan.amount),
                "Duration (months)": loan.duration_months,
                "Payments Made": loan.payments_made,
                "Status": "Active" if loan.is_active else "Paid",
                "Start Date": loan.start_date.isoformat(),
            }
            for saver in self.engine.list_savers(session)
            for loan in saver.loans
        ]
        return pd.DataFrame(rows, columns=LOANS_COLUMNS)

    def saver_totals_frame(self, session):
        """Per-saver totals indexed by saver id."""
        totals = [fund_ledger.saver_totals(s) for s in self.engine.list_savers(session)]
        df = pd.DataFrame([asdict(t) for t in totals])
        if df.empty:
            return df
        return df.set_index("saver_id")
