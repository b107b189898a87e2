"""Calendar resolver for the savings fund.

Turns a period identifier ("YYYY-MM") into the instants the rest of the
engine compares against: the month start, the two half-month deadlines and
whether the month falls inside the fund's date range.

All instants are naive datetimes in local time.
"""
from datetime import date, datetime, time

from savings_fund.config import MONTH_ID_FORMAT
from savings_fund.data_structures import FundSettings, PeriodDeadlines, Track
from savings_fund.exceptions import ValidationError


def parse_month_id(month_id: str) -> date:
    """Return the first day of the month named by ``month_id``.

    Raises:
        ValidationError: If the identifier is not in YYYY-MM form.
    """
    try:
        return datetime.strptime(str(month_id)[:7], MONTH_ID_FORMAT).date()
    except ValueError:
        raise ValidationError(f"Invalid month identifier '{month_id}'", {'month_id': month_id})


def format_month_id(value) -> str:
    return value.strftime(MONTH_ID_FORMAT)


def month_start(value) -> date:
    """First day of the month containing ``value`` (a date or datetime)."""
    return date(value.year, value.month, 1)


def current_month_start(now: datetime) -> datetime:
    return datetime(now.year, now.month, 1)


def deadline_for(month_id: str, track: Track) -> datetime:
    """End of the deadline day of ``track`` in the given month."""
    first = parse_month_id(month_id)
    return datetime.combine(date(first.year, first.month, track.deadline_day), time.max)


def is_within_fund_range(month_id: str, settings: FundSettings) -> bool:
    """Compare at month granularity against the fund start and end months."""
    first = parse_month_id(month_id)
    return month_start(settings.start_date) <= first <= month_start(settings.end_date)


def resolve_period(month_id: str, settings: FundSettings) -> PeriodDeadlines:
    first = parse_month_id(month_id)
    return PeriodDeadlines(
        month_id=format_month_id(first),
        month_start=datetime.combine(first, time.min),
        q1_deadline=deadline_for(month_id, Track.Q1),
        q2_deadline=deadline_for(month_id, Track.Q2),
        within_fund_range=is_within_fund_range(month_id, settings),
    )


def has_month_started(month_id: str, now: datetime) -> bool:
    """True once the evaluation instant's month is at or after the period's month."""
    return datetime.combine(parse_month_id(month_id), time.min) <= current_month_start(now)


def months_until_close(settings: FundSettings, now: datetime) -> int:
    """Whole calendar months between ``now`` and the fund end date, floored at 0.

    Counted against the evaluation instant rather than the loan's persisted
    start date, so a quote and its confirmation on either side of a month
    boundary can disagree by one month.
    """
    end = settings.end_date
    remaining = (end.year - now.year) * 12 + (end.month - now.month)
    return max(0, remaining)
