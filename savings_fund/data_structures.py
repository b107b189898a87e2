"""Value types shared by the rules engine, the database layer and reports.

Every type here is a frozen dataclass. Changes are made with
``dataclasses.replace`` so callers never hold a value that moves under them.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple

from savings_fund.config import (
    Q1_DEADLINE_DAY,
    Q2_DEADLINE_DAY,
    DEFAULT_INTEREST_RATE,
    DEFAULT_ENABLE_REMINDERS,
    LOAN_STATUS_ACTIVE,
    MONTH_ID_FORMAT,
    MONTH_LABEL_FORMAT,
)


class Track(Enum):
    """One of the two half-month dues of a period."""
    Q1 = "Q1"
    Q2 = "Q2"

    @property
    def deadline_day(self) -> int:
        return Q1_DEADLINE_DAY if self is Track.Q1 else Q2_DEADLINE_DAY

    @property
    def label(self) -> str:
        return "first half-month" if self is Track.Q1 else "second half-month"

    @property
    def prefix(self) -> str:
        """Column prefix used by Period and the periods table."""
        return self.value.lower()


class TrackState(Enum):
    FUTURE = "future"
    OPEN = "open"
    LATE = "late"
    PAID = "paid"


@dataclass(frozen=True)
class FundSettings:
    """Fund-wide settings for one account scope."""
    start_date: date
    end_date: date
    interest_rate: float = DEFAULT_INTEREST_RATE
    enable_reminders: bool = DEFAULT_ENABLE_REMINDERS
    id: Optional[int] = None
    user_id: Optional[int] = None


@dataclass(frozen=True)
class Period:
    """One calendar month's pair of half-month dues for one saver."""
    month_id: str
    q1_paid: bool = False
    q1_penalty: float = 0.0
    q1_penalty_paid: bool = False
    q2_paid: bool = False
    q2_penalty: float = 0.0
    q2_penalty_paid: bool = False
    is_locked: bool = False
    id: Optional[int] = None
    saver_id: Optional[int] = None

    def paid(self, track: Track) -> bool:
        return getattr(self, f"{track.prefix}_paid")

    def penalty(self, track: Track) -> float:
        return getattr(self, f"{track.prefix}_penalty")

    def penalty_paid(self, track: Track) -> bool:
        return getattr(self, f"{track.prefix}_penalty_paid")

    @property
    def is_settled(self) -> bool:
        """Both dues paid. Penalties do not take part in settlement."""
        return self.q1_paid and self.q2_paid

    @property
    def label(self) -> str:
        return datetime.strptime(self.month_id, MONTH_ID_FORMAT).strftime(MONTH_LABEL_FORMAT)


@dataclass(frozen=True)
class Loan:
    """A loan to one saver. Amounts are fixed when the loan is created."""
    saver_id: Optional[int]
    amount: float
    duration_months: int
    interest_rate: float
    total_interest: float
    total_to_pay: float
    monthly_payment: float
    start_date: date
    status: str = LOAN_STATUS_ACTIVE
    payments_made: int = 0
    id: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.status == LOAN_STATUS_ACTIVE

    @property
    def remaining_payments(self) -> int:
        return max(0, self.duration_months - self.payments_made)

    @property
    def amount_paid(self) -> float:
        return self.monthly_payment * self.payments_made

    @property
    def balance_due(self) -> float:
        return max(0.0, self.total_to_pay - self.amount_paid)


@dataclass(frozen=True)
class Saver:
    name: str
    bi_weekly_amount: float
    start_date: date
    periods: Tuple[Period, ...] = ()
    loans: Tuple[Loan, ...] = ()
    id: Optional[int] = None
    user_id: Optional[int] = None

    @property
    def last_period(self) -> Optional[Period]:
        return self.periods[-1] if self.periods else None


@dataclass(frozen=True)
class User:
    name: str
    email: str
    id: Optional[int] = None


# =============================================================================
# RESULT VALUES
# =============================================================================

@dataclass(frozen=True)
class PeriodDeadlines:
    """Concrete instants for a period identifier."""
    month_id: str
    month_start: datetime
    q1_deadline: datetime
    q2_deadline: datetime
    within_fund_range: bool

    def deadline(self, track: Track) -> datetime:
        return self.q1_deadline if track is Track.Q1 else self.q2_deadline


@dataclass(frozen=True)
class PeriodStatus:
    """Derived status of a period at an evaluation instant."""
    month_id: str
    q1_state: TrackState
    q2_state: TrackState
    is_locked: bool
    within_fund_range: bool
    has_outstanding_penalty: bool
    is_clear: bool

    def state(self, track: Track) -> TrackState:
        return self.q1_state if track is Track.Q1 else self.q2_state

    @property
    def q1_late(self) -> bool:
        return self.q1_state is TrackState.LATE

    @property
    def q2_late(self) -> bool:
        return self.q2_state is TrackState.LATE

    @property
    def is_late(self) -> bool:
        return self.q1_late or self.q2_late


@dataclass(frozen=True)
class EligibilityVerdict:
    eligible: bool
    reason: Optional[str] = None
    month_id: Optional[str] = None
    track: Optional[Track] = None
    kind: Optional[str] = None

    def __bool__(self) -> bool:
        return self.eligible


@dataclass(frozen=True)
class AmortizationQuote:
    principal: float
    duration_months: int
    interest_rate: float
    monthly_interest: float
    total_interest: float
    total_to_pay: float
    monthly_payment: float


@dataclass(frozen=True)
class SaverTotals:
    saver_id: Optional[int]
    name: str
    total_saved: float
    penalties_collected: float
    outstanding_penalties: float
    loan_payments_received: float
    active_loans_count: int
    active_loans_balance: float
    has_outstanding_issues: bool


@dataclass(frozen=True)
class FundReport:
    available_funds: float
    total_savings: float
    expected_monthly_collection: float
    total_interest_earned: float
    total_penalties_collected: float
    active_loans_capital: float
    total_loans_given: float
    total_loan_payments_received: float
    savers_count: int
    active_loans_count: int


@dataclass(frozen=True)
class ReminderNotice:
    day: int
    track: Track
    message: str
    savers_pending: Tuple[str, ...] = field(default_factory=tuple)
