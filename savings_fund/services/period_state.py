"""Period state machine.

Each period has two independent tracks (Q1, Q2) that move through
FUTURE -> OPEN -> LATE -> PAID, plus an overall lock. A period is locked when
its persisted lock flag is set or when the period before it is not settled.

The evaluation instant is always passed in; nothing here reads the clock.
"""
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from savings_fund.data_structures import FundSettings, Period, PeriodStatus, Track, TrackState
from savings_fund.exceptions import LockedPeriodError, PeriodNotFoundError
from savings_fund.services import calendar_resolver
from savings_fund.services.penalty_policy import (
    is_free_of_issues,
    outstanding_penalty_tracks,
    require_assessed,
)


def track_state(period: Period, track: Track, settings: FundSettings, now: datetime) -> TrackState:
    """Derive the state of one track at ``now``."""
    if period.paid(track):
        return TrackState.PAID

    if not calendar_resolver.has_month_started(period.month_id, now):
        return TrackState.FUTURE

    deadlines = calendar_resolver.resolve_period(period.month_id, settings)
    if not deadlines.within_fund_range:
        return TrackState.OPEN

    if now > deadlines.deadline(track):
        return TrackState.LATE
    return TrackState.OPEN


def lock_reason(periods: Sequence[Period], index: int) -> Optional[str]:
    """Why the period at ``index`` is locked, or None if it is open for toggles."""
    period = periods[index]
    if period.is_locked:
        return "period is locked"
    if index > 0 and not periods[index - 1].is_settled:
        return f"previous period {periods[index - 1].month_id} is not fully paid"
    return None


def is_locked(periods: Sequence[Period], index: int) -> bool:
    return lock_reason(periods, index) is not None


def evaluate_period(periods: Sequence[Period], index: int,
                    settings: FundSettings, now: datetime) -> PeriodStatus:
    period = periods[index]
    return PeriodStatus(
        month_id=period.month_id,
        q1_state=track_state(period, Track.Q1, settings, now),
        q2_state=track_state(period, Track.Q2, settings, now),
        is_locked=is_locked(periods, index),
        within_fund_range=calendar_resolver.is_within_fund_range(period.month_id, settings),
        has_outstanding_penalty=bool(outstanding_penalty_tracks(period)),
        is_clear=is_free_of_issues(period),
    )


def evaluate_periods(periods: Sequence[Period], settings: FundSettings, now: datetime):
    """Status of every period of a saver, in chronological order."""
    return tuple(evaluate_period(periods, i, settings, now) for i in range(len(periods)))


def index_of(periods: Sequence[Period], period_id) -> int:
    for i, period in enumerate(periods):
        if period.id == period_id:
            return i
    raise PeriodNotFoundError(period_id)


def _require_unlocked(periods: Sequence[Period], index: int):
    reason = lock_reason(periods, index)
    if reason:
        raise LockedPeriodError(periods[index].month_id, reason)


def toggle_due(periods: Sequence[Period], index: int, track: Track) -> Period:
    """Flip the due-paid flag of ``track``. Returns the new period value.

    Raises:
        LockedPeriodError: If the period is locked.
    """
    _require_unlocked(periods, index)
    period = periods[index]
    return replace(period, **{f"{track.prefix}_paid": not period.paid(track)})


def toggle_penalty_paid(periods: Sequence[Period], index: int, track: Track) -> Period:
    """Flip the penalty-paid flag of ``track``. The due flag is left alone.

    Raises:
        LockedPeriodError: If the period is locked.
        ValidationError: If no penalty was assessed on the track.
    """
    _require_unlocked(periods, index)
    period = periods[index]
    require_assessed(period, track)
    return replace(period, **{f"{track.prefix}_penalty_paid": not period.penalty_paid(track)})


def assess_penalty(periods: Sequence[Period], index: int, track: Track, amount: float) -> Period:
    """Set the penalty amount of ``track``.

    Re-recording the same amount keeps its paid flag; any other amount is
    unpaid. Zero clears the penalty.

    Raises:
        LockedPeriodError: If the period is locked.
    """
    _require_unlocked(periods, index)
    period = periods[index]
    paid = period.penalty_paid(track) if amount > 0 and amount == float(period.penalty(track)) else False
    return replace(period, **{
        f"{track.prefix}_penalty": amount,
        f"{track.prefix}_penalty_paid": paid,
    })
