"""Custom exceptions for the savings fund ledger."""


class FundError(Exception):
    """Base exception for all savings fund errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class DatabaseError(FundError):
    """Raised when a database operation fails."""
    pass


class TransactionError(DatabaseError):
    """Raised when a database transaction fails to complete."""
    pass


class ValidationError(FundError):
    """Raised when an input value is rejected (amounts, durations, dates)."""
    pass


class IneligibleError(FundError):
    """Raised when a saver has an outstanding penalty or an overdue due."""

    def __init__(self, verdict):
        details = {
            'month_id': verdict.month_id,
            'track': verdict.track.value if verdict.track else None,
            'kind': verdict.kind,
        }
        super().__init__(verdict.reason, details)
        self.verdict = verdict


class InsufficientFundsError(FundError):
    """Raised when the requested principal exceeds the available funds."""

    def __init__(self, required: float, available: float):
        details = {
            'required': required,
            'available': available
        }
        message = f"Insufficient funds: required {required}, available {available}"
        super().__init__(message, details)
        self.required = required
        self.available = available


class ExceedsFundHorizonError(FundError):
    """Raised when a loan duration runs past the fund closing date."""

    def __init__(self, duration_months: int, max_months: int, end_date: str = None):
        details = {
            'duration_months': duration_months,
            'max_months': max_months
        }
        if end_date:
            details['end_date'] = end_date
        message = (f"Loan of {duration_months} months exceeds the fund horizon "
                   f"(maximum {max_months} months)")
        super().__init__(message, details)
        self.max_months = max_months


class LockedPeriodError(FundError):
    """Raised when a mutation is attempted on a locked period."""

    def __init__(self, month_id: str, reason: str):
        details = {'month_id': month_id, 'reason': reason}
        message = f"Period {month_id} is locked: {reason}"
        super().__init__(message, details)


class NotFoundError(FundError):
    """Raised when a saver, loan, period or user reference is unknown."""

    entity = "Record"

    def __init__(self, ref=None):
        details = {}
        message = f"{self.entity} not found"
        if ref is not None:
            details['ref'] = ref
            message = f"{self.entity} '{ref}' not found"
        super().__init__(message, details)


class SaverNotFoundError(NotFoundError):
    entity = "Saver"


class LoanNotFoundError(NotFoundError):
    entity = "Loan"


class PeriodNotFoundError(NotFoundError):
    entity = "Period"


class UserNotFoundError(NotFoundError):
    entity = "User"


class LoanInactiveError(ValidationError):
    """Raised when a payment is recorded against a loan that is already paid."""

    def __init__(self, loan_id, status: str):
        details = {
            'loan_id': loan_id,
            'status': status
        }
        message = f"Loan '{loan_id}' is not active (status: {status})"
        super().__init__(message, details)


class SessionClosedError(FundError):
    """Raised when an operation is attempted through a closed session."""

    def __init__(self, user_id=None):
        super().__init__("Session is closed", {'user_id': user_id} if user_id else None)
