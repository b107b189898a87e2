"""Account-scope session.

A session names the account whose savers and settings an operation works
on. Opening one is logging in; ``close()`` is logging out. Every engine
operation receives the session explicitly instead of reading a global.
"""
from datetime import datetime

from savings_fund.exceptions import SessionClosedError


class FundSession:
    """Explicit login context for one account.

    Attributes:
        user_id: ID of the account owner.
        user_name: Display name of the account owner.
        email: Login email.
        opened_at: When the session was opened.
    """

    def __init__(self, user_id: int, user_name: str, email: str, opened_at: datetime = None):
        self.user_id = user_id
        self.user_name = user_name
        self.email = email
        self.opened_at = opened_at or datetime.now()
        self._closed = False

    @property
    def is_open(self) -> bool:
        return not self._closed

    def require_open(self):
        """Raise SessionClosedError once the session has been closed."""
        if self._closed:
            raise SessionClosedError(self.user_id)

    def close(self):
        """Log out. Closing twice is harmless."""
        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self):
        state = "open" if self.is_open else "closed"
        return f"FundSession(user_id={self.user_id}, email={self.email!r}, {state})"
