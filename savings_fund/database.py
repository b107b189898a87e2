"""Database management module for the savings fund."""
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime

from savings_fund.config import DATE_FORMAT_STORAGE, DEFAULT_DB_NAME
from savings_fund.data_structures import FundSettings, Loan, Period, Saver, User
from savings_fund.exceptions import DatabaseError, TransactionError
from savings_fund.logging_config import get_logger

logger = get_logger(__name__)


def _to_date(value):
    return datetime.strptime(value[:10], DATE_FORMAT_STORAGE).date()


def _to_str(value):
    return value.strftime(DATE_FORMAT_STORAGE)


class DatabaseManager:
    """Handles all SQLite database operations.

    Write methods commit immediately unless they run inside ``transaction()``,
    in which case the whole block commits or rolls back together.
    """

    def __init__(self, db_name=DEFAULT_DB_NAME):
        self.db_name = db_name
        self.conn = sqlite3.connect(db_name, check_same_thread=False)
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._lock = threading.RLock()
        self._depth = 0
        self._closed = False
        self.create_tables()

    def close(self):
        """Close the database connection."""
        if self.conn and not self._closed:
            self.conn.close()
            self._closed = True

    def __del__(self):
        """Ensure connection is closed on garbage collection."""
        if hasattr(self, "_closed"):
            self.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @property
    def in_transaction(self):
        return self._depth > 0

    @contextmanager
    def transaction(self):
        """Context manager for atomic units of work.

        Usage:
            with db.transaction():
                db.update_period(...)
                db.add_period(...)

        Nested blocks join the outermost one. If any exception occurs the
        outermost block rolls everything back.
        """
        with self._lock:
            self._depth += 1
            try:
                yield self
            except sqlite3.Error as e:
                self._depth -= 1
                if self._depth == 0:
                    self.conn.rollback()
                raise TransactionError(f"Transaction failed: {str(e)}")
            except BaseException:
                self._depth -= 1
                if self._depth == 0:
                    self.conn.rollback()
                raise
            else:
                self._depth -= 1
                if self._depth == 0:
                    self.conn.commit()

    def _commit(self):
        if not self.in_transaction:
            self.conn.commit()

    def _execute(self, query, params=()):
        with self._lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute(query, params)
                return cursor
            except sqlite3.Error as e:
                logger.error("Query failed: %s", e)
                raise DatabaseError(f"Database operation failed: {str(e)}", {'query': query.split()[0]})

    def _write(self, query, params=()):
        with self._lock:
            cursor = self._execute(query, params)
            self._commit()
            return cursor

    def _fetch_one(self, query, params=()):
        with self._lock:
            cursor = self._execute(query, params)
            row = cursor.fetchone()
            if row:
                cols = [description[0] for description in cursor.description]
                return dict(zip(cols, row))
            return None

    def _fetch_all(self, query, params=()):
        with self._lock:
            cursor = self._execute(query, params)
            cols = [description[0] for description in cursor.description]
            return [dict(zip(cols, row)) for row in cursor.fetchall()]

    def create_tables(self):
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                email TEXT NOT NULL UNIQUE,
                created_at TEXT
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS fund_settings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL UNIQUE,
                interest_rate REAL NOT NULL,
                start_date TEXT NOT NULL,
                end_date TEXT NOT NULL,
                enable_reminders INTEGER DEFAULT 1,
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS savers (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                name TEXT NOT NULL,
                bi_weekly_amount REAL NOT NULL,
                start_date TEXT NOT NULL,
                created_at TEXT,
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS periods (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                saver_id INTEGER NOT NULL,
                month_id TEXT NOT NULL,
                q1_paid INTEGER DEFAULT 0,
                q1_penalty REAL DEFAULT 0,
                q1_penalty_paid INTEGER DEFAULT 0,
                q2_paid INTEGER DEFAULT 0,
                q2_penalty REAL DEFAULT 0,
                q2_penalty_paid INTEGER DEFAULT 0,
                is_locked INTEGER DEFAULT 0,
                UNIQUE(saver_id, month_id),
                FOREIGN KEY(saver_id) REFERENCES savers(id) ON DELETE CASCADE
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS loans (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                saver_id INTEGER NOT NULL,
                amount REAL NOT NULL,
                duration_months INTEGER NOT NULL,
                interest_rate REAL NOT NULL,
                total_interest REAL NOT NULL,
                total_to_pay REAL NOT NULL,
                monthly_payment REAL NOT NULL,
                start_date TEXT NOT NULL,
                status TEXT DEFAULT 'active',
                payments_made INTEGER DEFAULT 0,
                FOREIGN KEY(saver_id) REFERENCES savers(id) ON DELETE CASCADE
            )
        """)
        self.conn.commit()

    # ========== USERS ==========

    def add_user(self, name, email):
        cursor = self._write(
            "INSERT INTO users (name, email, created_at) VALUES (?, ?, ?)",
            (name, email, datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
        )
        return cursor.lastrowid

    def get_user(self, user_id):
        row = self._fetch_one("SELECT id, name, email FROM users WHERE id=?", (user_id,))
        return User(**row) if row else None

    def get_user_by_email(self, email):
        row = self._fetch_one("SELECT id, name, email FROM users WHERE email=?", (email,))
        return User(**row) if row else None

    # ========== SETTINGS ==========

    def get_settings(self, user_id):
        row = self._fetch_one("SELECT * FROM fund_settings WHERE user_id=?", (user_id,))
        if not row:
            return None
        return FundSettings(
            id=row['id'],
            user_id=row['user_id'],
            interest_rate=row['interest_rate'],
            start_date=_to_date(row['start_date']),
            end_date=_to_date(row['end_date']),
            enable_reminders=bool(row['enable_reminders']),
        )

    def save_settings(self, settings: FundSettings):
        """Insert or replace the settings row of the settings' user."""
        self._write("""
            INSERT INTO fund_settings (user_id, interest_rate, start_date, end_date, enable_reminders)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                interest_rate=excluded.interest_rate,
                start_date=excluded.start_date,
                end_date=excluded.end_date,
                enable_reminders=excluded.enable_reminders
        """, (settings.user_id, settings.interest_rate, _to_str(settings.start_date),
              _to_str(settings.end_date), int(settings.enable_reminders)))
        return self.get_settings(settings.user_id)

    # ========== SAVERS ==========

    def add_saver(self, user_id, name, bi_weekly_amount, start_date):
        cursor = self._write(
            "INSERT INTO savers (user_id, name, bi_weekly_amount, start_date, created_at) VALUES (?, ?, ?, ?, ?)",
            (user_id, name, bi_weekly_amount, _to_str(start_date),
             datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
        )
        return cursor.lastrowid

    def _saver_from_row(self, row):
        return Saver(
            id=row['id'],
            user_id=row['user_id'],
            name=row['name'],
            bi_weekly_amount=row['bi_weekly_amount'],
            start_date=_to_date(row['start_date']),
            periods=tuple(self.get_periods(row['id'])),
            loans=tuple(self.get_loans(row['id'])),
        )

    def get_saver(self, saver_id):
        """Saver with its periods and loans, or None."""
        row = self._fetch_one("SELECT * FROM savers WHERE id=?", (saver_id,))
        return self._saver_from_row(row) if row else None

    def get_savers(self, user_id):
        rows = self._fetch_all("SELECT * FROM savers WHERE user_id=? ORDER BY id", (user_id,))
        return [self._saver_from_row(row) for row in rows]

    def update_saver(self, saver_id, name, bi_weekly_amount):
        self._write("UPDATE savers SET name=?, bi_weekly_amount=? WHERE id=?",
                    (name, bi_weekly_amount, saver_id))

    def delete_saver(self, saver_id):
        """Delete a saver together with all of its periods and loans."""
        with self.transaction():
            self._execute("DELETE FROM periods WHERE saver_id=?", (saver_id,))
            self._execute("DELETE FROM loans WHERE saver_id=?", (saver_id,))
            self._execute("DELETE FROM savers WHERE id=?", (saver_id,))

    # ========== PERIODS ==========

    @staticmethod
    def _period_from_row(row):
        return Period(
            id=row['id'],
            saver_id=row['saver_id'],
            month_id=row['month_id'],
            q1_paid=bool(row['q1_paid']),
            q1_penalty=row['q1_penalty'] or 0.0,
            q1_penalty_paid=bool(row['q1_penalty_paid']),
            q2_paid=bool(row['q2_paid']),
            q2_penalty=row['q2_penalty'] or 0.0,
            q2_penalty_paid=bool(row['q2_penalty_paid']),
            is_locked=bool(row['is_locked']),
        )

    def add_period(self, saver_id, period: Period):
        cursor = self._write("""
            INSERT INTO periods (
                saver_id, month_id, q1_paid, q1_penalty, q1_penalty_paid,
                q2_paid, q2_penalty, q2_penalty_paid, is_locked
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (saver_id, period.month_id, int(period.q1_paid), period.q1_penalty,
              int(period.q1_penalty_paid), int(period.q2_paid), period.q2_penalty,
              int(period.q2_penalty_paid), int(period.is_locked)))
        return replace(period, id=cursor.lastrowid, saver_id=saver_id)

    def update_period(self, period: Period):
        """Persist the flags and penalty amounts of a period. The month id never changes."""
        self._write("""
            UPDATE periods
            SET q1_paid=?, q1_penalty=?, q1_penalty_paid=?,
                q2_paid=?, q2_penalty=?, q2_penalty_paid=?, is_locked=?
            WHERE id=?
        """, (int(period.q1_paid), period.q1_penalty, int(period.q1_penalty_paid),
              int(period.q2_paid), period.q2_penalty, int(period.q2_penalty_paid),
              int(period.is_locked), period.id))
        return period

    def get_period(self, period_id):
        row = self._fetch_one("SELECT * FROM periods WHERE id=?", (period_id,))
        return self._period_from_row(row) if row else None

    def get_periods(self, saver_id):
        rows = self._fetch_all("SELECT * FROM periods WHERE saver_id=? ORDER BY month_id", (saver_id,))
        return [self._period_from_row(row) for row in rows]

    # ========== LOANS ==========

    @staticmethod
    def _loan_from_row(row):
        return Loan(
            id=row['id'],
            saver_id=row['saver_id'],
            amount=row['amount'],
            duration_months=row['duration_months'],
            interest_rate=row['interest_rate'],
            total_interest=row['total_interest'],
            total_to_pay=row['total_to_pay'],
            monthly_payment=row['monthly_payment'],
            start_date=_to_date(row['start_date']),
            status=row['status'],
            payments_made=row['payments_made'],
        )

    def add_loan(self, loan: Loan):
        cursor = self._write("""
            INSERT INTO loans (
                saver_id, amount, duration_months, interest_rate, total_interest,
                total_to_pay, monthly_payment, start_date, status, payments_made
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (loan.saver_id, loan.amount, loan.duration_months, loan.interest_rate,
              loan.total_interest, loan.total_to_pay, loan.monthly_payment,
              _to_str(loan.start_date), loan.status, loan.payments_made))
        return replace(loan, id=cursor.lastrowid)

    def update_loan_progress(self, loan: Loan):
        """Persist payments_made and status. Loan amounts are never rewritten."""
        self._write("UPDATE loans SET payments_made=?, status=? WHERE id=?",
                    (loan.payments_made, loan.status, loan.id))
        return loan

    def get_loan(self, loan_id):
        row = self._fetch_one("SELECT * FROM loans WHERE id=?", (loan_id,))
        return self._loan_from_row(row) if row else None

    def get_loans(self, saver_id):
        rows = self._fetch_all("SELECT * FROM loans WHERE saver_id=? ORDER BY id", (saver_id,))
        return [self._loan_from_row(row) for row in rows]

    def delete_loan(self, loan_id):
        self._write("DELETE FROM loans WHERE id=?", (loan_id,))
