"""Loan eligibility guard.

Scans a saver's whole period history. The first period (oldest first) with an
unpaid penalty or an overdue due blocks new loans; older infractions are not
forgiven by a clean current month.
"""
from datetime import datetime
from typing import Sequence

from savings_fund.data_structures import EligibilityVerdict, FundSettings, Period, Track
from savings_fund.exceptions import IneligibleError
from savings_fund.services import calendar_resolver
from savings_fund.services.penalty_policy import has_outstanding_penalty

PENALTY = "penalty"
OVERDUE = "overdue"


def _blocked(period: Period, track: Track, kind: str) -> EligibilityVerdict:
    if kind == PENALTY:
        reason = f"Outstanding penalty in {period.month_id} ({track.value}, {track.label})."
    else:
        reason = f"Overdue due in {period.month_id} ({track.value}, {track.label})."
    return EligibilityVerdict(eligible=False, reason=reason, month_id=period.month_id,
                              track=track, kind=kind)


def check_loan_eligibility(periods: Sequence[Period], settings: FundSettings,
                           now: datetime) -> EligibilityVerdict:
    """Approve or deny a new loan for a saver.

    Args:
        periods: The saver's periods in chronological order.
        settings: Fund settings, used for the fund date range.
        now: Single evaluation instant for every deadline check of this scan.

    Returns:
        An EligibilityVerdict. When ineligible, it names the period, the track
        and whether a penalty or an overdue due triggered the block.
    """
    for period in sorted(periods, key=lambda p: p.month_id):
        if not calendar_resolver.has_month_started(period.month_id, now):
            continue

        for track in Track:
            if has_outstanding_penalty(period, track):
                return _blocked(period, track, PENALTY)

        deadlines = calendar_resolver.resolve_period(period.month_id, settings)
        if not deadlines.within_fund_range:
            continue

        for track in Track:
            if not period.paid(track) and now > deadlines.deadline(track):
                return _blocked(period, track, OVERDUE)

    return EligibilityVerdict(eligible=True)


def require_eligible(periods: Sequence[Period], settings: FundSettings,
                     now: datetime) -> EligibilityVerdict:
    """Same as check_loan_eligibility but raises IneligibleError on a block."""
    verdict = check_loan_eligibility(periods, settings, now)
    if not verdict.eligible:
        raise IneligibleError(verdict)
    return verdict
