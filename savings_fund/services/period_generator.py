"""Period generator.

A saver's next period is appended once the last one is settled. The next
month is counted from the saver's start date plus the number of existing
periods, never by stepping the last period's date.
"""
from datetime import date
from typing import Optional, Sequence

from dateutil.relativedelta import relativedelta

from savings_fund.data_structures import FundSettings, Period, Saver
from savings_fund.services.calendar_resolver import format_month_id, month_start


def initial_period(start_date: date) -> Period:
    """First period of a new saver, open for payments."""
    return Period(month_id=format_month_id(month_start(start_date)), is_locked=False)


def next_month_start(saver: Saver) -> date:
    return month_start(saver.start_date) + relativedelta(months=len(saver.periods))


def should_generate(periods: Sequence[Period], index: int) -> bool:
    """True when the period at ``index`` is the last one and is settled."""
    return bool(periods) and index == len(periods) - 1 and periods[index].is_settled


def generate_next_period(saver: Saver, settings: FundSettings) -> Optional[Period]:
    """Build the period that follows the saver's last one.

    Returns:
        The new Period (both dues unpaid, no penalties, unlocked), or None if
        the last period is not settled or the fund closes before the next month.
    """
    if not saver.periods:
        return initial_period(saver.start_date)
    if not saver.periods[-1].is_settled:
        return None

    next_start = next_month_start(saver)
    if next_start > settings.end_date:
        return None

    return Period(month_id=format_month_id(next_start), saver_id=saver.id, is_locked=False)
