"""Business logic engine for the savings fund.

This module provides the FundEngine class, a facade over the rules in
savings_fund/services and the DatabaseManager. It is the surface screens,
exporters and API handlers call.

Every mutation runs as one database transaction. Loan creation also holds a
per-saver lock and re-reads the whole fund inside the transaction, so the
eligibility verdict and the available funds used for approval are never
stale.
"""
import math
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime

from savings_fund.config import DEFAULT_ENABLE_REMINDERS, DEFAULT_INTEREST_RATE
from savings_fund.data_structures import FundSettings, Track
from savings_fund.exceptions import (
    LoanNotFoundError,
    PeriodNotFoundError,
    SaverNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from savings_fund.logging_config import get_logger
from savings_fund.services import (
    amortization,
    eligibility,
    fund_ledger,
    penalty_policy,
    period_generator,
    period_state,
    reminders,
)
from savings_fund.session import FundSession

logger = get_logger(__name__)


def _as_track(track) -> Track:
    if isinstance(track, Track):
        return track
    try:
        return Track(str(track).upper())
    except ValueError:
        raise ValidationError(f"Unknown half-month '{track}'", {'track': track})


class FundEngine:
    """Handles business logic, interfacing with DatabaseManager.

    Attributes:
        db: DatabaseManager instance for data persistence.
    """

    def __init__(self, db_manager):
        self.db = db_manager
        self._saver_locks = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _saver_scope(self, saver_id):
        """Exclusive section for one saver, wrapping a single transaction."""
        with self._locks_guard:
            lock = self._saver_locks.setdefault(saver_id, threading.Lock())
        with lock:
            with self.db.transaction():
                yield

    # ========== ACCOUNTS ==========

    def register_user(self, name, email):
        """Create an account with default fund settings and open a session for it."""
        if not name or not str(name).strip():
            raise ValidationError("Name is required")
        if not email or "@" not in str(email):
            raise ValidationError(f"Invalid email '{email}'", {'email': email})
        if self.db.get_user_by_email(email):
            raise ValidationError(f"Email '{email}' is already registered", {'email': email})

        with self.db.transaction():
            user_id = self.db.add_user(name.strip(), email)
            self.db.save_settings(self._default_settings(user_id))
        logger.info("Registered user %s", user_id)
        return FundSession(user_id, name.strip(), email)

    def open_session(self, email):
        """Log in. Raises UserNotFoundError for an unknown email."""
        user = self.db.get_user_by_email(email)
        if not user:
            raise UserNotFoundError(email)
        return FundSession(user.id, user.name, user.email)

    # ========== SETTINGS ==========

    @staticmethod
    def _default_settings(user_id, today=None):
        today = today or date.today()
        return FundSettings(
            user_id=user_id,
            interest_rate=DEFAULT_INTEREST_RATE,
            start_date=date(today.year, 1, 1),
            end_date=date(today.year, 12, 31),
            enable_reminders=DEFAULT_ENABLE_REMINDERS,
        )

    def get_settings(self, session: FundSession) -> FundSettings:
        session.require_open()
        settings = self.db.get_settings(session.user_id)
        if settings is None:
            settings = self.db.save_settings(self._default_settings(session.user_id))
        return settings

    def update_settings(self, session: FundSession, interest_rate=None, start_date=None,
                        end_date=None, enable_reminders=None) -> FundSettings:
        """Change fund settings. Existing loans keep the rate they were created with."""
        current = self.get_settings(session)
        changes = {}
        if interest_rate is not None:
            rate = float(interest_rate)
            if not math.isfinite(rate):
                raise ValidationError(f"Invalid interest rate '{interest_rate}'", {'interest_rate': str(rate)})
            if rate < 0:
                raise ValidationError("Interest rate cannot be negative", {'interest_rate': rate})
            changes['interest_rate'] = rate
        if start_date is not None:
            changes['start_date'] = start_date
        if end_date is not None:
            changes['end_date'] = end_date
        if enable_reminders is not None:
            changes['enable_reminders'] = bool(enable_reminders)

        updated = replace(current, **changes)
        if updated.start_date > updated.end_date:
            raise ValidationError(
                "Fund start date must not be after its end date",
                {'start_date': updated.start_date.isoformat(), 'end_date': updated.end_date.isoformat()}
            )
        with self.db.transaction():
            saved = self.db.save_settings(updated)
        logger.info("Updated settings for user %s: %s", session.user_id, sorted(changes))
        return saved

    # ========== SAVERS ==========

    def list_savers(self, session: FundSession):
        session.require_open()
        return self.db.get_savers(session.user_id)

    def get_saver(self, session: FundSession, saver_id):
        """Saver with periods and loans.

        Raises:
            SaverNotFoundError: If unknown or owned by another account.
        """
        session.require_open()
        saver = self.db.get_saver(saver_id)
        if saver is None or saver.user_id != session.user_id:
            raise SaverNotFoundError(saver_id)
        return saver

    @staticmethod
    def _validate_due(bi_weekly_amount) -> float:
        if isinstance(bi_weekly_amount, bool):
            raise ValidationError(f"Invalid bi-weekly amount '{bi_weekly_amount}'")
        try:
            amount = float(bi_weekly_amount)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid bi-weekly amount '{bi_weekly_amount}'")
        if not math.isfinite(amount):
            raise ValidationError(f"Invalid bi-weekly amount '{bi_weekly_amount}'",
                                  {'bi_weekly_amount': str(amount)})
        if amount <= 0:
            raise ValidationError("Bi-weekly amount must be greater than zero",
                                  {'bi_weekly_amount': amount})
        return amount

    def create_saver(self, session: FundSession, name, bi_weekly_amount, start_date=None):
        """Add a saver and their first period.

        Args:
            session: Open session.
            name: Saver's display name.
            bi_weekly_amount: Fixed due per half-month.
            start_date: First month of saving (default: fund start date).
        """
        settings = self.get_settings(session)
        if not name or not str(name).strip():
            raise ValidationError("Saver name is required")
        amount = self._validate_due(bi_weekly_amount)
        start_date = start_date or settings.start_date
        if start_date > settings.end_date:
            raise ValidationError(
                "Saver cannot start after the fund closes",
                {'start_date': start_date.isoformat(), 'end_date': settings.end_date.isoformat()}
            )

        with self.db.transaction():
            saver_id = self.db.add_saver(session.user_id, name.strip(), amount, start_date)
            self.db.add_period(saver_id, period_generator.initial_period(start_date))
        logger.info("Created saver %s for user %s", saver_id, session.user_id)
        return self.get_saver(session, saver_id)

    def update_saver(self, session: FundSession, saver_id, name=None, bi_weekly_amount=None):
        """Rename a saver or change their due.

        The fund ledger values every paid due at the saver's current amount,
        so a new amount applies to the whole history.
        """
        saver = self.get_saver(session, saver_id)
        new_name = saver.name if name is None else str(name).strip()
        if not new_name:
            raise ValidationError("Saver name is required")
        amount = saver.bi_weekly_amount if bi_weekly_amount is None else self._validate_due(bi_weekly_amount)
        with self._saver_scope(saver_id):
            self.db.update_saver(saver_id, new_name, amount)
        return self.get_saver(session, saver_id)

    def delete_saver(self, session: FundSession, saver_id):
        """Delete a saver with all their periods and loans."""
        self.get_saver(session, saver_id)
        with self._saver_scope(saver_id):
            self.db.delete_saver(saver_id)
        with self._locks_guard:
            self._saver_locks.pop(saver_id, None)
        logger.info("Deleted saver %s", saver_id)

    # ========== PERIODS ==========

    def _locate_period(self, session, period_id):
        period = self.db.get_period(period_id)
        if period is None:
            raise PeriodNotFoundError(period_id)
        try:
            saver = self.get_saver(session, period.saver_id)
        except SaverNotFoundError:
            raise PeriodNotFoundError(period_id)
        return saver, period_state.index_of(saver.periods, period_id)

    def toggle_due(self, session: FundSession, period_id, track):
        """Flip a half-month due between paid and unpaid.

        When this settles the saver's last period the next period is generated
        in the same transaction.

        Returns:
            Tuple of (updated period, generated period or None).

        Raises:
            LockedPeriodError: If the period is locked.
        """
        track = _as_track(track)
        saver, _ = self._locate_period(session, period_id)

        with self._saver_scope(saver.id):
            settings = self.get_settings(session)
            saver = self.get_saver(session, saver.id)
            index = period_state.index_of(saver.periods, period_id)
            try:
                updated = period_state.toggle_due(saver.periods, index, track)
            except Exception as e:
                logger.warning("Rejected due toggle on period %s: %s", period_id, e)
                raise
            self.db.update_period(updated)

            periods = saver.periods[:index] + (updated,) + saver.periods[index + 1:]
            generated = None
            if period_generator.should_generate(periods, index):
                candidate = period_generator.generate_next_period(replace(saver, periods=periods), settings)
                if candidate is not None:
                    generated = self.db.add_period(saver.id, candidate)
                    logger.info("Generated period %s for saver %s", generated.month_id, saver.id)
                else:
                    logger.info("Fund closed; no period after %s for saver %s", updated.month_id, saver.id)

        return updated, generated

    def toggle_penalty(self, session: FundSession, period_id, track):
        """Flip the paid flag of an assessed penalty."""
        track = _as_track(track)
        saver, _ = self._locate_period(session, period_id)
        with self._saver_scope(saver.id):
            saver = self.get_saver(session, saver.id)
            index = period_state.index_of(saver.periods, period_id)
            try:
                updated = period_state.toggle_penalty_paid(saver.periods, index, track)
            except Exception as e:
                logger.warning("Rejected penalty toggle on period %s: %s", period_id, e)
                raise
            self.db.update_period(updated)
        return updated

    def assess_penalty(self, session: FundSession, period_id, track, amount):
        """Record a penalty amount supplied by whoever assesses penalties.

        The amount is stored as given. A changed amount is unpaid until its
        paid flag is toggled; an amount of zero clears the penalty.

        Raises:
            LockedPeriodError: If the period is locked.
        """
        track = _as_track(track)
        amount = penalty_policy.validate_penalty_amount(amount)
        saver, _ = self._locate_period(session, period_id)
        with self._saver_scope(saver.id):
            saver = self.get_saver(session, saver.id)
            index = period_state.index_of(saver.periods, period_id)
            try:
                updated = period_state.assess_penalty(saver.periods, index, track, amount)
            except Exception as e:
                logger.warning("Rejected penalty on period %s: %s", period_id, e)
                raise
            self.db.update_period(updated)
        logger.info("Recorded penalty %s on period %s (%s)", amount, period_id, track.value)
        return updated

    def period_statuses(self, session: FundSession, saver_id, now=None):
        """Paid/late/locked status of every period of a saver at ``now``."""
        now = now or datetime.now()
        saver = self.get_saver(session, saver_id)
        return period_state.evaluate_periods(saver.periods, self.get_settings(session), now)

    def generate_next_period(self, session: FundSession, saver_id):
        """Append the next period if the last one is settled and the fund is open.

        Returns:
            The new Period, or None when nothing was generated.
        """
        self.get_saver(session, saver_id)
        with self._saver_scope(saver_id):
            settings = self.get_settings(session)
            saver = self.get_saver(session, saver_id)
            candidate = period_generator.generate_next_period(saver, settings)
            if candidate is None:
                return None
            generated = self.db.add_period(saver_id, candidate)
        logger.info("Generated period %s for saver %s", generated.month_id, saver_id)
        return generated

    # ========== LOANS ==========

    def check_eligibility(self, session: FundSession, saver_id, now=None):
        now = now or datetime.now()
        saver = self.get_saver(session, saver_id)
        return eligibility.check_loan_eligibility(saver.periods, self.get_settings(session), now)

    def max_loan_duration(self, session: FundSession, now=None) -> int:
        now = now or datetime.now()
        return amortization.max_duration(self.get_settings(session), now)

    def quote_loan(self, session: FundSession, amount, duration_months, now=None):
        """Amortization preview at the current fund rate. Nothing is stored."""
        now = now or datetime.now()
        settings = self.get_settings(session)
        principal, duration = amortization.validate_terms(amount, duration_months, settings, now)
        return amortization.calculate_amortization(principal, settings.interest_rate, duration)

    def create_loan(self, session: FundSession, saver_id, amount, duration_months, now=None):
        """Issue a loan after the eligibility, horizon and funds checks.

        Raises:
            ValidationError: Non-positive amount or duration.
            ExceedsFundHorizonError: Duration runs past the fund close.
            IneligibleError: Outstanding penalty or overdue due.
            InsufficientFundsError: Amount exceeds the available funds.
        """
        now = now or datetime.now()
        self.get_saver(session, saver_id)

        with self._saver_scope(saver_id):
            settings = self.get_settings(session)
            saver = self.get_saver(session, saver_id)
            try:
                principal, duration = amortization.validate_terms(amount, duration_months, settings, now)
                eligibility.require_eligible(saver.periods, settings, now)
                available = fund_ledger.calculate_available_funds(self.db.get_savers(session.user_id))
                amortization.require_funds(principal, available)
            except Exception as e:
                logger.warning("Rejected loan for saver %s: %s", saver_id, e)
                raise
            quote = amortization.calculate_amortization(principal, settings.interest_rate, duration)
            loan = self.db.add_loan(amortization.new_loan(saver_id, quote, now.date()))

        logger.info("Created loan %s for saver %s: %s over %s months",
                    loan.id, saver_id, loan.amount, loan.duration_months)
        return loan

    def _get_loan(self, session, loan_id):
        loan = self.db.get_loan(loan_id)
        if loan is None:
            raise LoanNotFoundError(loan_id)
        try:
            self.get_saver(session, loan.saver_id)
        except SaverNotFoundError:
            raise LoanNotFoundError(loan_id)
        return loan

    def record_payment(self, session: FundSession, loan_id):
        """Record one monthly installment of a loan."""
        loan = self._get_loan(session, loan_id)
        with self._saver_scope(loan.saver_id):
            loan = self.db.get_loan(loan_id)
            updated = self.db.update_loan_progress(amortization.record_payment(loan))
        logger.info("Recorded payment %s/%s on loan %s",
                    updated.payments_made, updated.duration_months, loan_id)
        return updated

    def delete_loan(self, session: FundSession, loan_id):
        loan = self._get_loan(session, loan_id)
        with self._saver_scope(loan.saver_id):
            self.db.delete_loan(loan_id)
        logger.info("Deleted loan %s", loan_id)

    # ========== FUND FIGURES ==========

    def available_funds(self, session: FundSession) -> float:
        return fund_ledger.calculate_available_funds(self.list_savers(session))

    def saver_totals(self, session: FundSession, saver_id):
        return fund_ledger.saver_totals(self.get_saver(session, saver_id))

    def get_report(self, session: FundSession):
        return fund_ledger.build_fund_report(self.list_savers(session))

    def check_reminder(self, session: FundSession, today=None):
        today = today or date.today()
        return reminders.check_reminder(self.get_settings(session), today, self.list_savers(session))
