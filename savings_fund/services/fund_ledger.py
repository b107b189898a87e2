"""Fund ledger aggregator.

Available funds are recomputed from the full saver and loan history on
every call; no running balance is stored or trusted.

    inflow  = paid dues + paid penalties + recorded loan installments
    outflow = principal of every loan ever issued
    available_funds = inflow - outflow

Principal leaves the pool the moment a loan is created, whatever its
repayment progress.
"""
from savings_fund.config import CURRENCY_DECIMALS
from savings_fund.data_structures import FundReport, Saver, SaverTotals, Track
from savings_fund.services.penalty_policy import (
    collected_penalties,
    has_outstanding_penalties,
    outstanding_penalty_total,
)


def _money(value: float) -> float:
    return round(value, CURRENCY_DECIMALS)


def dues_collected(saver: Saver) -> float:
    due = float(saver.bi_weekly_amount)
    return sum(due for period in saver.periods for track in Track if period.paid(track))


def penalties_collected(saver: Saver) -> float:
    return sum(collected_penalties(period) for period in saver.periods)


def loan_payments_received(saver: Saver) -> float:
    return sum(float(loan.monthly_payment) * loan.payments_made for loan in saver.loans)


def loans_disbursed(saver: Saver) -> float:
    return sum(float(loan.amount) for loan in saver.loans)


def interest_earned(saver: Saver) -> float:
    """Interest share of the installments recorded so far."""
    return sum(
        float(loan.total_interest) / loan.duration_months * loan.payments_made
        for loan in saver.loans
    )


def calculate_inflow(savers) -> float:
    return sum(
        dues_collected(s) + penalties_collected(s) + loan_payments_received(s)
        for s in savers
    )


def calculate_outflow(savers) -> float:
    return sum(loans_disbursed(s) for s in savers)


def calculate_available_funds(savers) -> float:
    """Net disposable cash across every saver of the fund."""
    savers = list(savers)
    return _money(calculate_inflow(savers) - calculate_outflow(savers))


def saver_totals(saver: Saver) -> SaverTotals:
    active = [loan for loan in saver.loans if loan.is_active]
    return SaverTotals(
        saver_id=saver.id,
        name=saver.name,
        total_saved=_money(dues_collected(saver)),
        penalties_collected=_money(penalties_collected(saver)),
        outstanding_penalties=_money(outstanding_penalty_total(saver.periods)),
        loan_payments_received=_money(loan_payments_received(saver)),
        active_loans_count=len(active),
        active_loans_balance=_money(sum(loan.balance_due for loan in active)),
        has_outstanding_issues=has_outstanding_penalties(saver.periods),
    )


def build_fund_report(savers) -> FundReport:
    """Aggregate report figures for the whole fund."""
    savers = list(savers)
    loans = [loan for s in savers for loan in s.loans]
    active = [loan for loan in loans if loan.is_active]

    return FundReport(
        available_funds=calculate_available_funds(savers),
        total_savings=_money(sum(dues_collected(s) for s in savers)),
        expected_monthly_collection=_money(sum(2 * float(s.bi_weekly_amount) for s in savers)),
        total_interest_earned=_money(sum(interest_earned(s) for s in savers)),
        total_penalties_collected=_money(sum(penalties_collected(s) for s in savers)),
        active_loans_capital=_money(sum(float(loan.amount) for loan in active)),
        total_loans_given=_money(calculate_outflow(savers)),
        total_loan_payments_received=_money(sum(loan_payments_received(s) for s in savers)),
        savers_count=len(savers),
        active_loans_count=len(active),
    )
