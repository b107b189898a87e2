"""Penalty policy.

Penalty amounts and their paid flags are recorded by whoever assesses them;
this module only reads them. A zero penalty means none was assessed.
"""
import math

from savings_fund.data_structures import Period, Track
from savings_fund.exceptions import ValidationError


def has_outstanding_penalty(period: Period, track: Track) -> bool:
    return float(period.penalty(track)) > 0 and not period.penalty_paid(track)


def outstanding_penalty_tracks(period: Period):
    return [track for track in Track if has_outstanding_penalty(period, track)]


def has_outstanding_penalties(periods) -> bool:
    return any(outstanding_penalty_tracks(p) for p in periods)


def collected_penalties(period: Period) -> float:
    """Penalty amounts already paid on this period."""
    return sum(float(period.penalty(t)) for t in Track if period.penalty_paid(t))


def outstanding_penalty_total(periods) -> float:
    return sum(
        float(p.penalty(t))
        for p in periods
        for t in Track
        if has_outstanding_penalty(p, t)
    )


def is_free_of_issues(period: Period) -> bool:
    """Both dues paid and no penalty left unpaid."""
    return period.is_settled and not outstanding_penalty_tracks(period)


def validate_penalty_amount(amount) -> float:
    if isinstance(amount, bool):
        raise ValidationError(f"Invalid penalty amount '{amount}'", {'amount': amount})
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid penalty amount '{amount}'", {'amount': amount})
    if not math.isfinite(amount):
        raise ValidationError(f"Invalid penalty amount '{amount}'", {'amount': str(amount)})
    if amount < 0:
        raise ValidationError("Penalty amount cannot be negative", {'amount': amount})
    return amount


def require_assessed(period: Period, track: Track):
    """Reject toggling the paid flag of a penalty that was never assessed."""
    if float(period.penalty(track)) <= 0:
        raise ValidationError(
            f"No penalty assessed on {period.month_id} ({track.value})",
            {'month_id': period.month_id, 'track': track.value}
        )
