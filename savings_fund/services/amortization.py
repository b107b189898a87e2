"""Amortization calculator and loan lifecycle.

Interest is simple and non-compounding:

    total_interest  = principal * (rate / 100) * duration
    total_to_pay    = principal + total_interest
    monthly_payment = total_to_pay / duration

The amounts are fixed when the loan is created. Later changes to the fund's
interest rate never touch an existing loan.
"""
import math
from dataclasses import replace
from datetime import date, datetime

from savings_fund.config import (
    CURRENCY_DECIMALS,
    LOAN_STATUS_ACTIVE,
    LOAN_STATUS_PAID,
    MIN_LOAN_DURATION,
)
from savings_fund.data_structures import AmortizationQuote, FundSettings, Loan
from savings_fund.exceptions import (
    ExceedsFundHorizonError,
    InsufficientFundsError,
    LoanInactiveError,
    ValidationError,
)
from savings_fund.services.calendar_resolver import months_until_close


def _money(value: float) -> float:
    return round(value, CURRENCY_DECIMALS)


def _validate_principal(principal) -> float:
    if isinstance(principal, bool):
        raise ValidationError(f"Invalid loan amount '{principal}'", {'amount': principal})
    try:
        principal = float(principal)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid loan amount '{principal}'", {'amount': principal})
    if not math.isfinite(principal):
        raise ValidationError(f"Invalid loan amount '{principal}'", {'amount': str(principal)})
    if principal <= 0:
        raise ValidationError("Loan amount must be greater than zero", {'amount': principal})
    return principal


def _validate_duration(duration) -> int:
    if isinstance(duration, bool) or not isinstance(duration, int):
        if isinstance(duration, float) and duration.is_integer():
            duration = int(duration)
        else:
            raise ValidationError(f"Invalid loan duration '{duration}'", {'duration_months': duration})
    if duration < MIN_LOAN_DURATION:
        raise ValidationError("Loan duration must be at least one month",
                              {'duration_months': duration})
    return duration


def calculate_amortization(principal, interest_rate, duration_months) -> AmortizationQuote:
    """Compute interest, total and installment for a proposed loan.

    Args:
        principal: Amount lent.
        interest_rate: Monthly rate as a percentage (2 means 2%).
        duration_months: Number of monthly installments.

    Raises:
        ValidationError: On a non-positive amount or duration, or a negative rate.
    """
    principal = _validate_principal(principal)
    duration = _validate_duration(duration_months)
    rate = float(interest_rate)
    if not math.isfinite(rate):
        raise ValidationError(f"Invalid interest rate '{rate}'", {'interest_rate': str(rate)})
    if rate < 0:
        raise ValidationError("Interest rate cannot be negative", {'interest_rate': rate})

    monthly_interest = principal * (rate / 100)
    total_interest = monthly_interest * duration
    total_to_pay = principal + total_interest

    return AmortizationQuote(
        principal=_money(principal),
        duration_months=duration,
        interest_rate=rate,
        monthly_interest=_money(monthly_interest),
        total_interest=_money(total_interest),
        total_to_pay=_money(total_to_pay),
        monthly_payment=_money(total_to_pay / duration),
    )


def max_duration(settings: FundSettings, now: datetime) -> int:
    """Longest duration allowed before the fund closes."""
    return months_until_close(settings, now)


def validate_terms(principal, duration_months, settings: FundSettings, now: datetime):
    """Check amount, duration and fund horizon.

    Returns:
        Tuple of (principal, duration) normalised to float and int.

    Raises:
        ValidationError: On a non-positive amount or duration.
        ExceedsFundHorizonError: If the duration runs past the fund close.
    """
    principal = _validate_principal(principal)
    duration = _validate_duration(duration_months)

    limit = max_duration(settings, now)
    if duration > limit:
        raise ExceedsFundHorizonError(duration, limit, settings.end_date.isoformat())
    return principal, duration


def require_funds(principal: float, available_funds: float):
    """Reject a principal larger than the available funds by any margin."""
    if principal > available_funds:
        raise InsufficientFundsError(principal, available_funds)


def validate_loan_request(principal, duration_months, settings: FundSettings,
                          now: datetime, available_funds: float):
    """Terms, horizon and funds checks for a saver already found eligible."""
    principal, duration = validate_terms(principal, duration_months, settings, now)
    require_funds(principal, available_funds)
    return principal, duration


def new_loan(saver_id, quote: AmortizationQuote, start_date: date) -> Loan:
    """Build a loan from a quote, snapshotting the rate."""
    return Loan(
        saver_id=saver_id,
        amount=quote.principal,
        duration_months=quote.duration_months,
        interest_rate=quote.interest_rate,
        total_interest=quote.total_interest,
        total_to_pay=quote.total_to_pay,
        monthly_payment=quote.monthly_payment,
        start_date=start_date,
        status=LOAN_STATUS_ACTIVE,
        payments_made=0,
    )


def record_payment(loan: Loan) -> Loan:
    """Record one installment. The loan becomes paid on the last one.

    Raises:
        LoanInactiveError: If the loan is already paid.
    """
    if loan.status != LOAN_STATUS_ACTIVE or loan.payments_made >= loan.duration_months:
        raise LoanInactiveError(loan.id, loan.status)

    payments_made = loan.payments_made + 1
    status = LOAN_STATUS_PAID if payments_made == loan.duration_months else LOAN_STATUS_ACTIVE
    return replace(loan, payments_made=payments_made, status=status)


def payment_progress(loan: Loan) -> dict:
    """Progress of a loan against its schedule, for display."""
    return {
        'payments_made': loan.payments_made,
        'remaining_payments': loan.remaining_payments,
        'amount_paid': _money(loan.amount_paid),
        'balance_due': _money(loan.balance_due),
        'percent_complete': _money(100.0 * loan.payments_made / loan.duration_months),
        'status': loan.status,
    }
